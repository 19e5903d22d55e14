"""Study guide API.

Review note:
- `generate` streams SSE events: status / progress / topic / skip, then one
  terminal `done` or `stopped` carrying the run counters (or `error`).
- One run per document; `stop` cancels it, including the request in flight.
- Topics are saved as they are produced, so `resume=true` after a stop only
  generates the sections that have no stored topic yet.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from typing import Any, AsyncGenerator, Dict, List
import asyncio
import json
import logging

from studyguide.config import settings
from studyguide.crud.study_state import SqlStudyStateRepository
from studyguide.crud.topic import SqlTopicRepository
from studyguide.database import async_session_maker
from studyguide.schemas.document import DocumentStructure, ExtractionResult
from studyguide.schemas.generation import (
    GenerateRequest,
    LocateRequest,
    RegenerateRequest,
    StructureRequest,
    TOCRequest,
    TOCResponse,
)
from studyguide.schemas.topic import Topic
from studyguide.services.cache.study_state_store import StudyStateRepository
from studyguide.services.cache.topic_store import TopicRepository
from studyguide.services.llm.stream_client import GenerationServiceError, StreamingClient
from studyguide.services.locator.section_locator import locate_section
from studyguide.services.pipeline.structure_analysis import StructureAnalysisError, analyze_structure
from studyguide.services.pipeline.study_pipeline import PipelineOptions, SectionRejected, StudyGuideOrchestrator
from studyguide.services.session.generation_runs import GenerationInProgressError, generation_runs
from studyguide.services.toc.toc_detector import detect_toc_regions, extract_toc_text

logger = logging.getLogger("uvicorn.error")

router = APIRouter()


def get_topic_repository() -> TopicRepository:
    return SqlTopicRepository(async_session_maker)


def get_study_state_repository() -> StudyStateRepository:
    return SqlStudyStateRepository(async_session_maker)


def get_streaming_client() -> StreamingClient:
    return StreamingClient.from_settings(settings)


def sse_event(event: str, payload: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


@router.post("/study/toc", response_model=TOCResponse)
async def detect_toc(request: TOCRequest):
    """Find contents-listing pages and return their combined text."""
    detection = detect_toc_regions(request.document.pages)
    return TOCResponse(detection=detection, toc_text=extract_toc_text(detection, request.max_chars))


@router.post("/study/locate", response_model=ExtractionResult)
async def locate(request: LocateRequest):
    """Extract the text span of one outline node."""
    return locate_section(request.document, request.sections, request.target_id)


@router.post("/study/structure", response_model=DocumentStructure)
async def detect_structure(
    request: StructureRequest,
    client: StreamingClient = Depends(get_streaming_client),
):
    """Detect the document outline with the selected provider."""
    try:
        return await analyze_structure(
            request.document,
            client,
            provider=request.provider,
            model=request.model or settings.default_model(request.provider),
            sample_tokens=settings.structure_sample_tokens(request.provider),
            toc_max_chars=settings.TOC_TEXT_MAX_CHARS,
            max_tokens=settings.GENERATION_MAX_TOKENS,
        )
    except GenerationServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except StructureAnalysisError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.post("/study/{document_id}/generate")
async def generate_study_guide(
    document_id: str,
    request: GenerateRequest,
    repository: TopicRepository = Depends(get_topic_repository),
    client: StreamingClient = Depends(get_streaming_client),
):
    """Generate topics for every study section (SSE)."""
    try:
        cancel = generation_runs.start(document_id)
    except GenerationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    options = PipelineOptions.from_settings(settings, request.provider, request.model)
    orchestrator = StudyGuideOrchestrator(client, repository, options)

    async def event_generator() -> AsyncGenerator[str, None]:
        run_task = None
        try:
            skip_ids = set()
            if request.resume:
                skip_ids = {str(topic.id) for topic in await repository.get_topics(document_id)}

            event_queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
            run_task = asyncio.create_task(
                orchestrator.generate(
                    document_id,
                    request.document,
                    request.structure,
                    skip_ids=skip_ids,
                    cancel=cancel,
                    on_event=event_queue.put_nowait,
                )
            )
            while not run_task.done():
                try:
                    payload = await asyncio.wait_for(event_queue.get(), timeout=0.12)
                except asyncio.TimeoutError:
                    continue
                yield sse_event(payload.pop("type"), payload)

            while not event_queue.empty():
                payload = event_queue.get_nowait()
                yield sse_event(payload.pop("type"), payload)

            result = await run_task
            yield sse_event("stopped" if result.phase == "stopped" else "done", result.model_dump())
        except Exception as exc:
            logger.exception("study-run-failed doc=%s", document_id)
            yield sse_event("error", {"error": str(exc)})
        finally:
            if run_task is not None and not run_task.done():
                # Client went away
                cancel.cancel()
            generation_runs.finish(document_id, cancel)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/study/{document_id}/stop")
async def stop_generation(document_id: str):
    """Stop the active run for a document."""
    if generation_runs.stop(document_id):
        return {"success": True, "message": "Stop signal sent"}
    return {"success": False, "message": "No active generation"}


@router.get("/study/{document_id}/topics", response_model=List[Topic])
async def list_topics(
    document_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
):
    return await repository.get_topics(document_id)


@router.delete("/study/{document_id}/topics")
async def delete_topics(
    document_id: str,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    """Drop every stored topic of a document, with its progress and chats (start over)."""
    if generation_runs.is_active(document_id):
        raise HTTPException(status_code=409, detail="Stop the active generation first")
    deleted = await repository.delete_topics(document_id)
    await state.delete_document(document_id)
    return {"success": True, "deleted": deleted}


@router.post("/study/{document_id}/sections/{section_id}/regenerate", response_model=Topic)
async def regenerate_section(
    document_id: str,
    section_id: str,
    request: RegenerateRequest,
    repository: TopicRepository = Depends(get_topic_repository),
    client: StreamingClient = Depends(get_streaming_client),
):
    """Generate one section again and overwrite its stored topic."""
    try:
        cancel = generation_runs.start(document_id)
    except GenerationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    options = PipelineOptions.from_settings(settings, request.provider, request.model)
    orchestrator = StudyGuideOrchestrator(client, repository, options)
    try:
        topic = await orchestrator.regenerate_section(
            document_id,
            request.document,
            request.structure,
            section_id,
            cancel=cancel,
        )
    except SectionRejected as exc:
        status = 404 if exc.reason == "unknown-section" else 422
        raise HTTPException(status_code=status, detail=str(exc))
    except GenerationServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    finally:
        generation_runs.finish(document_id, cancel)

    if topic is None:
        raise HTTPException(status_code=409, detail="Regeneration stopped")
    return topic
