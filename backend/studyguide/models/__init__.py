"""Models package."""
from studyguide.models.base import Base
from studyguide.models.topic import StudyTopic
from studyguide.models.progress import TopicProgressRecord
from studyguide.models.chat import TopicChat

__all__ = [
    "Base",
    "StudyTopic",
    "TopicProgressRecord",
    "TopicChat",
]
