"""Topic repository contract plus a process-local implementation."""

from __future__ import annotations

from typing import Dict, List, Protocol

from studyguide.schemas.topic import Topic


class TopicRepository(Protocol):
    async def save_topic(self, doc_id: str, topic: Topic) -> None:
        ...

    async def get_topics(self, doc_id: str) -> List[Topic]:
        ...

    async def delete_topics(self, doc_id: str) -> int:
        ...


class InMemoryTopicStore:
    """Dict-backed repository; saving a section again replaces it."""

    def __init__(self) -> None:
        self._topics: Dict[str, Dict[str, Topic]] = {}
        self.save_count = 0

    async def save_topic(self, doc_id: str, topic: Topic) -> None:
        self._topics.setdefault(doc_id, {})[str(topic.id)] = topic.model_copy(deep=True)
        self.save_count += 1

    async def get_topics(self, doc_id: str) -> List[Topic]:
        return list(self._topics.get(doc_id, {}).values())

    async def delete_topics(self, doc_id: str) -> int:
        return len(self._topics.pop(doc_id, {}))
