"""Generation relay schemas."""

from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Literal

PromptVersion = Literal["structure", "studyGuide", "summary", "chat"]


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class AnalyzeRequest(BaseModel):
    """Body accepted by the provider relay endpoints."""
    prompt: str = ""
    messages: List[ChatTurn] = Field(default_factory=list, description="Multi-turn conversation, replaces prompt")
    model: str = Field("", description="Model id, provider default when empty")
    prompt_version: PromptVersion = "structure"
    max_tokens: int = Field(4096, gt=0)

    @model_validator(mode="after")
    def require_prompt_or_messages(self):
        if not self.prompt.strip() and not self.messages:
            raise ValueError("prompt or messages is required")
        return self

    def conversation(self) -> List[Dict[str, str]]:
        if self.messages:
            return [turn.model_dump() for turn in self.messages]
        return [{"role": "user", "content": self.prompt}]
