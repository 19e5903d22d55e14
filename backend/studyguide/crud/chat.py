"""CRUD operations for topic chat histories."""
from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete
from typing import List

from studyguide.models.chat import TopicChat
from studyguide.schemas.chat import ChatMessage

_messages_adapter = TypeAdapter(List[ChatMessage])


class CRUDChat:
    """Chat history CRUD operations."""

    async def get_messages(self, db: AsyncSession, document_id: str, topic_id: str) -> List[ChatMessage]:
        row = await db.get(TopicChat, (document_id, topic_id))
        if not row:
            return []
        return _messages_adapter.validate_json(row.messages)

    async def save_messages(
        self,
        db: AsyncSession,
        document_id: str,
        topic_id: str,
        messages: List[ChatMessage],
    ) -> TopicChat:
        payload = _messages_adapter.dump_json(messages).decode("utf-8")
        row = await db.get(TopicChat, (document_id, topic_id))
        if row:
            row.messages = payload
        else:
            row = TopicChat(document_id=document_id, topic_id=topic_id, messages=payload)
            db.add(row)

        await db.commit()
        await db.refresh(row)
        return row

    async def delete(self, db: AsyncSession, document_id: str, topic_id: str) -> bool:
        result = await db.execute(
            delete(TopicChat).where(TopicChat.document_id == document_id, TopicChat.topic_id == topic_id)
        )
        await db.commit()
        return result.rowcount > 0

    async def delete_by_document(self, db: AsyncSession, document_id: str) -> int:
        result = await db.execute(delete(TopicChat).where(TopicChat.document_id == document_id))
        await db.commit()
        return result.rowcount


chat_crud = CRUDChat()
