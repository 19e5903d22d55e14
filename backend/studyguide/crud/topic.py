"""CRUD operations for generated topics."""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import delete, select
from typing import List

from studyguide.models.topic import StudyTopic
from studyguide.schemas.topic import Topic


class CRUDTopic:
    """Topic CRUD operations."""

    async def upsert(self, db: AsyncSession, document_id: str, topic: Topic) -> StudyTopic:
        """Insert or overwrite the topic for one section."""
        section_id = str(topic.id)
        payload = topic.model_dump_json()

        row = await db.get(StudyTopic, (document_id, section_id))
        if row:
            row.payload = payload
        else:
            row = StudyTopic(
                document_id=document_id,
                section_id=section_id,
                payload=payload,
            )
            db.add(row)

        await db.commit()
        await db.refresh(row)
        return row

    async def list_by_document(self, db: AsyncSession, document_id: str) -> List[Topic]:
        result = await db.execute(
            select(StudyTopic)
            .where(StudyTopic.document_id == document_id)
            .order_by(StudyTopic.created_at, StudyTopic.section_id)
        )
        return [Topic.model_validate_json(row.payload) for row in result.scalars().all()]

    async def delete_by_document(self, db: AsyncSession, document_id: str) -> int:
        result = await db.execute(
            delete(StudyTopic).where(StudyTopic.document_id == document_id)
        )
        await db.commit()
        return result.rowcount


topic_crud = CRUDTopic()


class SqlTopicRepository:
    """Topic repository on the database, one session (and commit) per call."""

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker

    async def save_topic(self, doc_id: str, topic: Topic) -> None:
        async with self._session_maker() as db:
            await topic_crud.upsert(db, doc_id, topic)

    async def get_topics(self, doc_id: str) -> List[Topic]:
        async with self._session_maker() as db:
            return await topic_crud.list_by_document(db, doc_id)

    async def delete_topics(self, doc_id: str) -> int:
        async with self._session_maker() as db:
            return await topic_crud.delete_by_document(db, doc_id)
