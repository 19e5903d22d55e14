"""Generated topic model."""
from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from studyguide.models.base import Base


class StudyTopic(Base):
    """One study guide entry per (document, section)."""
    __tablename__ = "study_topics"

    document_id = Column(String(200), primary_key=True)
    section_id = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False)  # Topic as JSON
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<StudyTopic {self.document_id}/{self.section_id}>"
