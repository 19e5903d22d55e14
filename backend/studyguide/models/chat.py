"""Topic chat history model."""
from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from studyguide.models.base import Base


class TopicChat(Base):
    """Tutor conversation attached to one topic."""
    __tablename__ = "topic_chats"

    document_id = Column(String(200), primary_key=True)
    topic_id = Column(String(100), primary_key=True)
    messages = Column(Text, nullable=False, default="[]")  # JSON array of ChatMessage
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<TopicChat {self.document_id}/{self.topic_id}>"
