"""Resolve free-form topic connections to other topics of the same document.

The model writes connections as sentences ("Related to 'Supply and Demand':
both ..."); the target title is pulled out and matched against the titles of
generated topics by normalized similarity.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
import re

from studyguide.schemas.document import NodeId
from studyguide.schemas.study import EnrichedConnection
from studyguide.schemas.topic import Topic
from studyguide.services.text.normalizer import normalize

MIN_MATCH_SCORE = 0.3
MIN_TARGET_CHARS = 3
MAX_TARGET_CHARS = 120

_QUOTED_RES = (
    re.compile(r"'([^']{3,})'"),
    re.compile(r'"([^"]{3,})"'),
    re.compile(r"[‘“]([^’”]{3,})[’”]"),
)
_WITH_RE = re.compile(r"\b(?:con|with)\s+(.+?)(?:\s*:|$)", re.IGNORECASE)
_SECTION_RE = re.compile(
    r"(?:secci[oó]n|cap[ií]tulo|section|chapter)\s+(?:(?:sobre|on|about)\s+)?(.+?)(?:\s*[:.;,]|$)",
    re.IGNORECASE,
)


def parse_connection_target(connection: str) -> Optional[str]:
    """Section name a connection sentence refers to, if one can be told apart."""
    if not connection:
        return None

    for pattern in _QUOTED_RES:
        match = pattern.search(connection)
        if match:
            return match.group(1).strip()

    match = _WITH_RE.search(connection)
    if match:
        candidate = match.group(1).strip()
        if MIN_TARGET_CHARS <= len(candidate) <= MAX_TARGET_CHARS:
            return candidate

    match = _SECTION_RE.search(connection)
    if match:
        return match.group(1).strip()
    return None


def similarity(a: str, b: str) -> float:
    """0..1 for two normalized strings: containment ratio, else word Jaccard."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return min(len(a), len(b)) / max(len(a), len(b))

    words_a = {w for w in a.split(" ") if len(w) > 2}
    words_b = {w for w in b.split(" ") if len(w) > 2}
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def find_related_topic(
    target: str,
    topics: Sequence[Topic],
    exclude_id: Optional[NodeId] = None,
) -> Optional[Tuple[Topic, float]]:
    norm_target = normalize(target)
    if len(norm_target) < MIN_TARGET_CHARS:
        return None

    excluded = str(exclude_id) if exclude_id is not None else None
    best: Optional[Topic] = None
    best_score = 0.0
    for topic in topics:
        if str(topic.id) == excluded:
            continue
        score = similarity(norm_target, normalize(topic.section_title))
        if score > best_score:
            best, best_score = topic, score

    if best is None or best_score < MIN_MATCH_SCORE:
        return None
    return best, best_score


def enrich_connections(topic: Topic, topics: Sequence[Topic]) -> List[EnrichedConnection]:
    """Every connection of `topic`, with the id and title of the topic it names."""
    enriched: List[EnrichedConnection] = []
    for text in topic.connections:
        target = parse_connection_target(text)
        match = find_related_topic(target, topics, exclude_id=topic.id) if target else None
        if match is None:
            enriched.append(EnrichedConnection(text=text))
            continue
        related, _ = match
        enriched.append(
            EnrichedConnection(text=text, target_topic_id=related.id, target_title=related.section_title)
        )
    return enriched
