"""Topic chat schemas."""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Literal

from studyguide.schemas.generation import ProviderChoice


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class TopicChatRequest(ProviderChoice):
    message: str = Field(..., min_length=1, max_length=4000)

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("message must not be blank")
        return value
