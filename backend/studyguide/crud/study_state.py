"""Study progress and chat repository on the database."""
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import Dict, List

from studyguide.crud.chat import chat_crud
from studyguide.crud.progress import progress_crud
from studyguide.schemas.chat import ChatMessage
from studyguide.schemas.study import TopicProgress


class SqlStudyStateRepository:
    """One session (and commit) per call, like SqlTopicRepository."""

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker

    async def get_progress(self, doc_id: str) -> Dict[str, TopicProgress]:
        async with self._session_maker() as db:
            return await progress_crud.list_by_document(db, doc_id)

    async def save_progress(self, doc_id: str, topic_id: str, progress: TopicProgress) -> None:
        async with self._session_maker() as db:
            await progress_crud.save(db, doc_id, topic_id, progress)

    async def get_chat(self, doc_id: str, topic_id: str) -> List[ChatMessage]:
        async with self._session_maker() as db:
            return await chat_crud.get_messages(db, doc_id, topic_id)

    async def save_chat(self, doc_id: str, topic_id: str, messages: List[ChatMessage]) -> None:
        async with self._session_maker() as db:
            await chat_crud.save_messages(db, doc_id, topic_id, messages)

    async def delete_chat(self, doc_id: str, topic_id: str) -> bool:
        async with self._session_maker() as db:
            return await chat_crud.delete(db, doc_id, topic_id)

    async def delete_document(self, doc_id: str) -> None:
        async with self._session_maker() as db:
            await progress_crud.delete_by_document(db, doc_id)
            await chat_crud.delete_by_document(db, doc_id)
