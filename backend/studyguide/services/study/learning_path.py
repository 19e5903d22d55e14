"""Recommended study order: core, then supporting, then detail topics."""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from studyguide.schemas.document import NodeId
from studyguide.schemas.study import LearningPathEntry, PhaseStats, Recommendation, TopicProgress
from studyguide.schemas.topic import Topic
from studyguide.services.study.proficiency import mastery_level

PHASES = (
    ("core", "Fundamentals"),
    ("supporting", "Reinforcement"),
    ("detail", "Deep dive"),
)

# First match wins, scanned over the whole path each time.
_RECOMMENDATION_RULES = (
    ("not-started", None),
    ("seen", "Already read, take the quiz to consolidate it"),
    ("learning", "Needs review, try to improve the quiz score"),
    ("mastered", "Mastered, one more review to reach expert"),
)


def build_learning_path(topics: Sequence[Topic], progress: Mapping[str, TopicProgress]) -> List[LearningPathEntry]:
    """Topics grouped by relevance phase, document order kept inside each phase."""
    path: List[LearningPathEntry] = []
    for key, label in PHASES:
        for topic in topics:
            if topic.relevance != key:
                continue
            path.append(
                LearningPathEntry(
                    topic=topic,
                    mastery=mastery_level(progress.get(str(topic.id))),
                    phase=key,
                    phase_label=label,
                )
            )
    return path


def next_recommendation(
    topics: Sequence[Topic],
    progress: Mapping[str, TopicProgress],
    current_topic_id: Optional[NodeId] = None,
) -> Optional[Recommendation]:
    """Next topic to study, or None once everything is at expert level."""
    current = str(current_topic_id) if current_topic_id is not None else None
    path = build_learning_path(topics, progress)

    for mastery, reason in _RECOMMENDATION_RULES:
        for entry in path:
            if entry.mastery != mastery or str(entry.topic.id) == current:
                continue
            text = reason or f"Next {entry.phase_label.lower()} topic not started yet"
            return Recommendation(topic=entry.topic, reason=text, phase=entry.phase)
    return None


def phase_stats(topics: Sequence[Topic], progress: Mapping[str, TopicProgress]) -> List[PhaseStats]:
    stats: List[PhaseStats] = []
    for key, label in PHASES:
        phase_topics = [t for t in topics if t.relevance == key]
        if not phase_topics:
            continue
        mastered = sum(
            1 for t in phase_topics if mastery_level(progress.get(str(t.id))) in ("mastered", "expert")
        )
        stats.append(
            PhaseStats(
                key=key,
                label=label,
                total=len(phase_topics),
                mastered=mastered,
                pct=int(mastered * 100 / len(phase_topics) + 0.5),
            )
        )
    return stats
