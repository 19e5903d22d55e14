"""Application settings."""
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import Dict, List


class Settings(BaseSettings):
    """Settings loaded from the environment / .env."""

    # App
    APP_NAME: str = "Study Guide Generator"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Topic store
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/study_guides.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3057,http://localhost:5173"

    # Providers (relay side)
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_API_URL: str = "https://api.anthropic.com/v1/messages"
    ANTHROPIC_VERSION: str = "2023-06-01"
    GROQ_API_KEY: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    UPSTREAM_TIMEOUT_SEC: int = 60
    # Comma separated model ids, first one is the default
    CLAUDE_MODELS: str = "claude-haiku-4-5-20251001,claude-sonnet-4-20250514,claude-sonnet-4-5-20250929"
    GROQ_MODELS: str = "llama-3.3-70b-versatile,llama-3.1-8b-instant"

    # Streaming client (caller side): base URL of the relay endpoints
    GENERATION_BASE_URL: str = "http://localhost:8000/api/v1/analyze"
    GENERATION_MAX_TOKENS: int = 4096
    STREAM_MAX_RETRIES: int = 3
    STREAM_BASE_DELAY_SEC: float = 2.0

    # Generation run
    CHUNK_MAX_TOKENS: int = 6000
    MIN_SECTION_CHARS: int = 100
    LOW_CONFIDENCE_MIN_CHARS: int = 400
    # Pause between sections; Groq free tier is capped at ~12K tokens/min
    INTER_REQUEST_DELAY_CLAUDE_SEC: float = 1.0
    INTER_REQUEST_DELAY_GROQ_SEC: float = 8.0

    # Structure analysis
    TOC_TEXT_MAX_CHARS: int = 12000
    STRUCTURE_SAMPLE_TOKENS_CLAUDE: int = 8000
    STRUCTURE_SAMPLE_TOKENS_GROQ: int = 2500

    # Topic chat: cheapest model per provider, short answers
    CHAT_MODEL_CLAUDE: str = "claude-haiku-4-5-20251001"
    CHAT_MODEL_GROQ: str = "llama-3.1-8b-instant"
    CHAT_MAX_TOKENS: int = 1024
    CHAT_MAX_HISTORY_MESSAGES: int = 20
    CHAT_CONTEXT_MAX_CHARS: int = 2000

    @model_validator(mode="before")
    @classmethod
    def treat_empty_env_as_unset(cls, data):
        """
        Treat empty env values as unset so a blank line in .env
        does not override a usable default.
        """
        if not isinstance(data, dict):
            return data

        cleaned = dict(data)
        for field_name, field in cls.model_fields.items():
            default = field.default
            if default in (None, ""):
                continue
            if cleaned.get(field_name) == "":
                cleaned.pop(field_name, None)
        return cleaned

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def provider_models(self) -> Dict[str, List[str]]:
        """Model catalogue per provider."""
        return {
            "claude": [m.strip() for m in self.CLAUDE_MODELS.split(",") if m.strip()],
            "groq": [m.strip() for m in self.GROQ_MODELS.split(",") if m.strip()],
        }

    def default_model(self, provider: str) -> str:
        models = self.provider_models.get(provider) or []
        return models[0] if models else ""

    def provider_configured(self, provider: str) -> bool:
        if provider == "claude":
            return bool(self.ANTHROPIC_API_KEY)
        if provider == "groq":
            return bool(self.GROQ_API_KEY)
        return False

    def inter_request_delay(self, provider: str) -> float:
        if provider == "groq":
            return self.INTER_REQUEST_DELAY_GROQ_SEC
        return self.INTER_REQUEST_DELAY_CLAUDE_SEC

    def structure_sample_tokens(self, provider: str) -> int:
        if provider == "groq":
            return self.STRUCTURE_SAMPLE_TOKENS_GROQ
        return self.STRUCTURE_SAMPLE_TOKENS_CLAUDE

    def chat_model(self, provider: str) -> str:
        if provider == "groq":
            return self.CHAT_MODEL_GROQ
        return self.CHAT_MODEL_CLAUDE

    class Config:
        env_file = (".env", "backend/.env")
        case_sensitive = True
        extra = "ignore"


settings = Settings()
