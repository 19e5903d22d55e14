"""Mastery levels and proficiency from quiz history.

Review note:
- Mastery follows the LAST quiz score: >= 85 expert, >= 60 mastered, else
  learning. Without a quiz, the studied flag gives "seen".
- Proficiency is a weighted mean where the last score counts double.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence
import math

from studyguide.schemas.study import DocumentStats, Mastery, ProgressReset, QuizScore, TopicProgress
from studyguide.schemas.topic import Topic

MASTERY_LEVELS = ("not-started", "seen", "learning", "mastered", "expert")
EXPERT_MIN_SCORE = 85
MASTERED_MIN_SCORE = 60


def _round(value: float) -> int:
    # Half up, not banker's rounding.
    return int(math.floor(value + 0.5))


def mastery_level(progress: Optional[TopicProgress]) -> Mastery:
    if progress is None:
        return "not-started"
    if progress.quiz_scores:
        last = progress.quiz_scores[-1].score
        if last >= EXPERT_MIN_SCORE:
            return "expert"
        if last >= MASTERED_MIN_SCORE:
            return "mastered"
        return "learning"
    return "seen" if progress.studied else "not-started"


def proficiency(progress: Optional[TopicProgress]) -> int:
    """0-100 from the quiz history; 0 when no quiz was taken."""
    if progress is None or not progress.quiz_scores:
        return 0
    scores = [q.score for q in progress.quiz_scores]
    if len(scores) == 1:
        return scores[0]
    weights = [1] * (len(scores) - 1) + [2]
    weighted = sum(s * w for s, w in zip(scores, weights))
    return _round(weighted / sum(weights))


def mark_studied(progress: Optional[TopicProgress]) -> TopicProgress:
    current = progress or TopicProgress()
    return current.model_copy(update={"studied": True})


def add_quiz_score(progress: Optional[TopicProgress], score: int) -> TopicProgress:
    current = progress or TopicProgress()
    return current.model_copy(update={"quiz_scores": [*current.quiz_scores, QuizScore(score=score)]})


def reset_progress(progress: Optional[TopicProgress]) -> TopicProgress:
    """Clear studied flag and scores; the old scores move to the reset history."""
    current = progress or TopicProgress()
    entry = ProgressReset(previous_scores=list(current.quiz_scores))
    return TopicProgress(studied=False, quiz_scores=[], resets=[*current.resets, entry])


def document_stats(topics: Sequence[Topic], progress: Mapping[str, TopicProgress]) -> DocumentStats:
    by_mastery = {key: 0 for key in MASTERY_LEVELS}
    quizzes_taken = 0
    studied_count = 0
    proficiency_sum = 0
    proficiency_count = 0

    for topic in topics:
        tp = progress.get(str(topic.id))
        by_mastery[mastery_level(tp)] += 1
        if tp is None:
            continue
        if tp.studied:
            studied_count += 1
        if tp.quiz_scores:
            quizzes_taken += len(tp.quiz_scores)
            proficiency_sum += proficiency(tp)
            proficiency_count += 1

    return DocumentStats(
        total=len(topics),
        by_mastery=by_mastery,
        avg_proficiency=_round(proficiency_sum / proficiency_count) if proficiency_count else 0,
        quizzes_taken=quizzes_taken,
        studied_count=studied_count,
    )
