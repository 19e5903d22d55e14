"""Study progress and topic chat repository contract plus a process-local implementation."""

from __future__ import annotations

from typing import Dict, List, Protocol, Tuple

from studyguide.schemas.chat import ChatMessage
from studyguide.schemas.study import TopicProgress


class StudyStateRepository(Protocol):
    async def get_progress(self, doc_id: str) -> Dict[str, TopicProgress]:
        ...

    async def save_progress(self, doc_id: str, topic_id: str, progress: TopicProgress) -> None:
        ...

    async def get_chat(self, doc_id: str, topic_id: str) -> List[ChatMessage]:
        ...

    async def save_chat(self, doc_id: str, topic_id: str, messages: List[ChatMessage]) -> None:
        ...

    async def delete_chat(self, doc_id: str, topic_id: str) -> bool:
        ...

    async def delete_document(self, doc_id: str) -> None:
        ...


class InMemoryStudyStateStore:
    """Dict-backed repository keyed by (document id, topic id)."""

    def __init__(self) -> None:
        self._progress: Dict[Tuple[str, str], TopicProgress] = {}
        self._chats: Dict[Tuple[str, str], List[ChatMessage]] = {}

    async def get_progress(self, doc_id: str) -> Dict[str, TopicProgress]:
        return {topic_id: p.model_copy(deep=True) for (doc, topic_id), p in self._progress.items() if doc == doc_id}

    async def save_progress(self, doc_id: str, topic_id: str, progress: TopicProgress) -> None:
        self._progress[(doc_id, topic_id)] = progress.model_copy(deep=True)

    async def get_chat(self, doc_id: str, topic_id: str) -> List[ChatMessage]:
        return list(self._chats.get((doc_id, topic_id), []))

    async def save_chat(self, doc_id: str, topic_id: str, messages: List[ChatMessage]) -> None:
        self._chats[(doc_id, topic_id)] = list(messages)

    async def delete_chat(self, doc_id: str, topic_id: str) -> bool:
        return self._chats.pop((doc_id, topic_id), None) is not None

    async def delete_document(self, doc_id: str) -> None:
        for store in (self._progress, self._chats):
            for key in [k for k in store if k[0] == doc_id]:
                del store[key]
