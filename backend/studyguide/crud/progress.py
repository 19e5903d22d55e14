"""CRUD operations for study progress."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select
from typing import Dict

from studyguide.models.progress import TopicProgressRecord
from studyguide.schemas.study import TopicProgress


class CRUDProgress:
    """Progress CRUD operations."""

    async def list_by_document(self, db: AsyncSession, document_id: str) -> Dict[str, TopicProgress]:
        result = await db.execute(
            select(TopicProgressRecord).where(TopicProgressRecord.document_id == document_id)
        )
        return {
            row.topic_id: TopicProgress.model_validate_json(row.payload)
            for row in result.scalars().all()
        }

    async def save(
        self,
        db: AsyncSession,
        document_id: str,
        topic_id: str,
        progress: TopicProgress,
    ) -> TopicProgressRecord:
        """Insert or overwrite the progress of one topic."""
        payload = progress.model_dump_json()
        row = await db.get(TopicProgressRecord, (document_id, topic_id))
        if row:
            row.payload = payload
        else:
            row = TopicProgressRecord(document_id=document_id, topic_id=topic_id, payload=payload)
            db.add(row)

        await db.commit()
        await db.refresh(row)
        return row

    async def delete_by_document(self, db: AsyncSession, document_id: str) -> int:
        result = await db.execute(
            delete(TopicProgressRecord).where(TopicProgressRecord.document_id == document_id)
        )
        await db.commit()
        return result.rowcount


progress_crud = CRUDProgress()
