"""Study guide topic schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field
from typing import List, Literal

from studyguide.schemas.document import Confidence, NodeId

Relevance = Literal["core", "supporting", "detail"]


class QuizItem(BaseModel):
    question: str
    answer: str = ""


class Topic(BaseModel):
    """Generated study guide for one section."""

    id: NodeId
    section_title: str
    level: int = 1
    relevance: Relevance = "supporting"
    summary: str
    key_concepts: List[str] = Field(default_factory=list)
    expanded_explanation: str = ""
    connections: List[str] = Field(default_factory=list)
    quiz: List[QuizItem] = Field(default_factory=list)
    confidence: Confidence = "low"
