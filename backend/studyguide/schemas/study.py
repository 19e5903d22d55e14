"""Study progress, learning path and connection schemas."""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from studyguide.schemas.document import NodeId
from studyguide.schemas.topic import Relevance, Topic

Mastery = Literal["not-started", "seen", "learning", "mastered", "expert"]


class QuizScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    date: datetime = Field(default_factory=datetime.utcnow)


class ProgressReset(BaseModel):
    date: datetime = Field(default_factory=datetime.utcnow)
    previous_scores: List[QuizScore] = Field(default_factory=list)


class TopicProgress(BaseModel):
    """What the student did with one topic. Resets keep the old scores."""

    studied: bool = False
    quiz_scores: List[QuizScore] = Field(default_factory=list)
    resets: List[ProgressReset] = Field(default_factory=list)


class TopicProgressOut(TopicProgress):
    topic_id: str
    mastery: Mastery
    proficiency: int


class QuizScoreRequest(BaseModel):
    score: int = Field(..., ge=0, le=100, description="Quiz result in percent")


class DocumentStats(BaseModel):
    total: int
    by_mastery: Dict[str, int]
    avg_proficiency: int = 0
    quizzes_taken: int = 0
    studied_count: int = 0


class ProgressResponse(BaseModel):
    topics: List[TopicProgressOut]
    stats: DocumentStats


class LearningPathEntry(BaseModel):
    topic: Topic
    mastery: Mastery
    phase: Relevance
    phase_label: str


class Recommendation(BaseModel):
    topic: Topic
    reason: str
    phase: Relevance


class PhaseStats(BaseModel):
    key: Relevance
    label: str
    total: int
    mastered: int
    pct: int


class LearningPathResponse(BaseModel):
    path: List[LearningPathEntry]
    next: Optional[Recommendation] = None
    phases: List[PhaseStats]


class EnrichedConnection(BaseModel):
    """A topic connection string plus the topic it points to, when one matches."""

    text: str
    target_topic_id: Optional[NodeId] = None
    target_title: Optional[str] = None
