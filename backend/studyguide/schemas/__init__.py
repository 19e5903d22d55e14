"""Schemas package."""
from studyguide.schemas.document import (
    Page,
    DocumentText,
    StructureNode,
    DocumentStructure,
    ExtractionResult,
    TOCPage,
    TOCRegion,
    TOCDetection,
)
from studyguide.schemas.topic import QuizItem, Topic
from studyguide.schemas.generation import (
    GenerateRequest,
    RegenerateRequest,
    StructureRequest,
    LocateRequest,
    TOCRequest,
    TOCResponse,
    GenerationProgress,
    GenerationResult,
)
from studyguide.schemas.llm import AnalyzeRequest, ChatTurn
from studyguide.schemas.study import (
    QuizScore,
    ProgressReset,
    TopicProgress,
    TopicProgressOut,
    QuizScoreRequest,
    DocumentStats,
    ProgressResponse,
    LearningPathEntry,
    Recommendation,
    PhaseStats,
    LearningPathResponse,
    EnrichedConnection,
)
from studyguide.schemas.chat import ChatMessage, TopicChatRequest

__all__ = [
    # Document schemas
    "Page",
    "DocumentText",
    "StructureNode",
    "DocumentStructure",
    "ExtractionResult",
    "TOCPage",
    "TOCRegion",
    "TOCDetection",
    # Topic schemas
    "QuizItem",
    "Topic",
    # Generation schemas
    "GenerateRequest",
    "RegenerateRequest",
    "StructureRequest",
    "LocateRequest",
    "TOCRequest",
    "TOCResponse",
    "GenerationProgress",
    "GenerationResult",
    # Relay schemas
    "AnalyzeRequest",
    "ChatTurn",
    # Study progress schemas
    "QuizScore",
    "ProgressReset",
    "TopicProgress",
    "TopicProgressOut",
    "QuizScoreRequest",
    "DocumentStats",
    "ProgressResponse",
    "LearningPathEntry",
    "Recommendation",
    "PhaseStats",
    "LearningPathResponse",
    "EnrichedConnection",
    # Chat schemas
    "ChatMessage",
    "TopicChatRequest",
]
