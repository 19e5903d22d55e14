"""Per-topic study progress model."""
from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from studyguide.models.base import Base


class TopicProgressRecord(Base):
    """Studied flag, quiz scores and reset history of one topic."""
    __tablename__ = "topic_progress"

    document_id = Column(String(200), primary_key=True)
    topic_id = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False)  # TopicProgress as JSON
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<TopicProgressRecord {self.document_id}/{self.topic_id}>"
