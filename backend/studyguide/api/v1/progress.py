"""Study progress API: mastery, learning path and topic connections.

Review note:
- Progress is keyed by topic id (the section id of the topic), per document.
- Marking or scoring a topic that has no stored topic answers 404.
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Dict, List, Optional
import logging

from studyguide.api.v1.study import get_study_state_repository, get_topic_repository
from studyguide.schemas.study import (
    EnrichedConnection,
    LearningPathResponse,
    ProgressResponse,
    QuizScoreRequest,
    TopicProgress,
    TopicProgressOut,
)
from studyguide.schemas.topic import Topic
from studyguide.services.cache.study_state_store import StudyStateRepository
from studyguide.services.cache.topic_store import TopicRepository
from studyguide.services.study.connections import enrich_connections
from studyguide.services.study.learning_path import build_learning_path, next_recommendation, phase_stats
from studyguide.services.study.proficiency import (
    add_quiz_score,
    document_stats,
    mark_studied,
    mastery_level,
    proficiency,
    reset_progress,
)

logger = logging.getLogger("uvicorn.error")

router = APIRouter()


def _progress_out(topic_id: str, progress: Optional[TopicProgress]) -> TopicProgressOut:
    current = progress or TopicProgress()
    return TopicProgressOut(
        topic_id=topic_id,
        mastery=mastery_level(progress),
        proficiency=proficiency(progress),
        **current.model_dump(),
    )


def find_topic(topics: List[Topic], topic_id: str) -> Topic:
    for topic in topics:
        if str(topic.id) == topic_id:
            return topic
    raise HTTPException(status_code=404, detail=f"Topic not found: {topic_id}")


async def _progress_response(
    document_id: str,
    topics: List[Topic],
    state: StudyStateRepository,
) -> ProgressResponse:
    progress = await state.get_progress(document_id)
    return ProgressResponse(
        topics=[_progress_out(str(t.id), progress.get(str(t.id))) for t in topics],
        stats=document_stats(topics, progress),
    )


@router.get("/study/{document_id}/progress", response_model=ProgressResponse)
async def get_progress(
    document_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    """Per-topic progress and document-level stats."""
    topics = await repository.get_topics(document_id)
    return await _progress_response(document_id, topics, state)


@router.post("/study/{document_id}/progress/reset", response_model=ProgressResponse)
async def reset_document_progress(
    document_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    """Reset every topic of the document; previous scores are kept in the history."""
    topics = await repository.get_topics(document_id)
    progress = await state.get_progress(document_id)
    reset_ids = [str(t.id) for t in topics if str(t.id) in progress]
    for topic_id in reset_ids:
        await state.save_progress(document_id, topic_id, reset_progress(progress[topic_id]))
    logger.info("progress-reset doc=%s topics=%d", document_id, len(reset_ids))
    return await _progress_response(document_id, topics, state)


async def _update_topic_progress(
    document_id: str,
    topic_id: str,
    repository: TopicRepository,
    state: StudyStateRepository,
    change,
) -> TopicProgressOut:
    find_topic(await repository.get_topics(document_id), topic_id)
    progress: Dict[str, TopicProgress] = await state.get_progress(document_id)
    updated = change(progress.get(topic_id))
    await state.save_progress(document_id, topic_id, updated)
    return _progress_out(topic_id, updated)


@router.post("/study/{document_id}/topics/{topic_id}/studied", response_model=TopicProgressOut)
async def mark_topic_studied(
    document_id: str,
    topic_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    return await _update_topic_progress(document_id, topic_id, repository, state, mark_studied)


@router.post("/study/{document_id}/topics/{topic_id}/quiz", response_model=TopicProgressOut)
async def save_quiz_score(
    document_id: str,
    topic_id: str,
    request: QuizScoreRequest,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    """Append one quiz result (percent)."""
    return await _update_topic_progress(
        document_id, topic_id, repository, state, lambda p: add_quiz_score(p, request.score)
    )


@router.post("/study/{document_id}/topics/{topic_id}/progress/reset", response_model=TopicProgressOut)
async def reset_topic_progress(
    document_id: str,
    topic_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    return await _update_topic_progress(document_id, topic_id, repository, state, reset_progress)


@router.get("/study/{document_id}/learning-path", response_model=LearningPathResponse)
async def get_learning_path(
    document_id: str,
    current_topic_id: Optional[str] = None,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    """Core -> supporting -> detail study order, next suggestion and per-phase stats."""
    topics = await repository.get_topics(document_id)
    progress = await state.get_progress(document_id)
    return LearningPathResponse(
        path=build_learning_path(topics, progress),
        next=next_recommendation(topics, progress, current_topic_id),
        phases=phase_stats(topics, progress),
    )


@router.get("/study/{document_id}/topics/{topic_id}/connections", response_model=List[EnrichedConnection])
async def get_connections(
    document_id: str,
    topic_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
):
    """Topic connections with the id of the topic each one names, when it can be matched."""
    topics = await repository.get_topics(document_id)
    return enrich_connections(find_topic(topics, topic_id), topics)
