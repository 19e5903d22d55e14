"""Conversation payload for the per-topic tutor chat."""

from __future__ import annotations

from typing import Dict, List, Sequence

from studyguide.schemas.chat import ChatMessage
from studyguide.schemas.topic import Topic

CONTEXT_SEPARATOR = "\n\n---\n\n"
QUESTION_PREFIX = "STUDENT QUESTION: "


def build_context_message(topic: Topic, max_explanation_chars: int = 2000) -> str:
    parts = [f'TOPIC: "{topic.section_title}"', f"SUMMARY: {topic.summary}"]
    if topic.key_concepts:
        parts.append(f"KEY CONCEPTS: {', '.join(topic.key_concepts)}")
    if topic.expanded_explanation:
        parts.append(f"TOPIC EXPLANATION:\n{topic.expanded_explanation[:max_explanation_chars]}")
    return "\n\n".join(parts)


def trim_history(messages: Sequence[ChatMessage], max_messages: int = 20) -> List[ChatMessage]:
    """Keep the opening exchange plus the most recent messages."""
    if len(messages) <= max_messages:
        return list(messages)
    tail = max(0, max_messages - 2)
    return [*messages[:2], *(messages[-tail:] if tail else [])]


def build_chat_messages(
    topic: Topic,
    history: Sequence[ChatMessage],
    *,
    max_messages: int = 20,
    max_explanation_chars: int = 2000,
) -> List[Dict[str, str]]:
    """
    Provider turns for `history` (which ends with the new question).

    The topic context rides on the first user turn, so the model always sees
    it even after older turns are trimmed away.
    """
    context = build_context_message(topic, max_explanation_chars)
    turns: List[Dict[str, str]] = []
    for index, message in enumerate(trim_history(history, max_messages)):
        content = message.content
        if index == 0 and message.role == "user":
            content = f"{context}{CONTEXT_SEPARATOR}{QUESTION_PREFIX}{content}"
        turns.append({"role": message.role, "content": content})
    return turns
