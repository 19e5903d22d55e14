"""Per-topic tutor chat API.

Review note:
- `POST .../chat` streams SSE events: token {content}, then one terminal
  `done` {message}, `stopped` {message} or `error` {error}.
- The question and the answer are stored together once the answer ends;
  a stopped answer is stored with the text received so far, a failed one
  stores nothing.
- One answer per topic at a time; `chat/stop` cancels the request in flight.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from typing import Any, AsyncGenerator, Dict, List
import asyncio
import logging

from studyguide.api.v1.progress import find_topic
from studyguide.api.v1.study import (
    sse_event,
    get_streaming_client,
    get_study_state_repository,
    get_topic_repository,
)
from studyguide.config import settings
from studyguide.schemas.chat import ChatMessage, TopicChatRequest
from studyguide.services.cache.study_state_store import StudyStateRepository
from studyguide.services.cache.topic_store import TopicRepository
from studyguide.services.llm.stream_client import StreamingClient, StreamRequest
from studyguide.services.session.generation_runs import GenerationInProgressError, chat_runs
from studyguide.services.study.topic_chat import build_chat_messages

logger = logging.getLogger("uvicorn.error")

router = APIRouter()


def _run_key(document_id: str, topic_id: str) -> str:
    return f"{document_id}/{topic_id}"


@router.get("/study/{document_id}/topics/{topic_id}/chat", response_model=List[ChatMessage])
async def get_chat(
    document_id: str,
    topic_id: str,
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    return await state.get_chat(document_id, topic_id)


@router.delete("/study/{document_id}/topics/{topic_id}/chat")
async def clear_chat(
    document_id: str,
    topic_id: str,
    state: StudyStateRepository = Depends(get_study_state_repository),
):
    if chat_runs.is_active(_run_key(document_id, topic_id)):
        raise HTTPException(status_code=409, detail="Stop the active answer first")
    deleted = await state.delete_chat(document_id, topic_id)
    return {"success": True, "deleted": deleted}


@router.post("/study/{document_id}/topics/{topic_id}/chat")
async def ask_topic(
    document_id: str,
    topic_id: str,
    request: TopicChatRequest,
    repository: TopicRepository = Depends(get_topic_repository),
    state: StudyStateRepository = Depends(get_study_state_repository),
    client: StreamingClient = Depends(get_streaming_client),
):
    """Ask the tutor about one topic (SSE)."""
    topic = find_topic(await repository.get_topics(document_id), topic_id)
    run_key = _run_key(document_id, topic_id)
    try:
        cancel = chat_runs.start(run_key)
    except GenerationInProgressError:
        raise HTTPException(status_code=409, detail="An answer is already streaming for this topic")

    history = await state.get_chat(document_id, topic_id)
    question = ChatMessage(role="user", content=request.message)
    stream_request = StreamRequest(
        prompt="",
        provider=request.provider,
        model=request.model or settings.chat_model(request.provider),
        prompt_version="chat",
        max_tokens=settings.CHAT_MAX_TOKENS,
        messages=build_chat_messages(
            topic,
            [*history, question],
            max_messages=settings.CHAT_MAX_HISTORY_MESSAGES,
            max_explanation_chars=settings.CHAT_CONTEXT_MAX_CHARS,
        ),
    )

    async def event_generator() -> AsyncGenerator[str, None]:
        received: List[str] = []
        answer_task = None
        try:
            token_queue: asyncio.Queue[str] = asyncio.Queue()

            def on_token(_full_text: str, token: str) -> None:
                received.append(token)
                token_queue.put_nowait(token)

            answer_task = asyncio.create_task(
                client.stream(stream_request, on_token=on_token, cancel=cancel)
            )
            while not answer_task.done():
                try:
                    token = await asyncio.wait_for(token_queue.get(), timeout=0.12)
                except asyncio.TimeoutError:
                    continue
                yield sse_event("token", {"content": token})

            while not token_queue.empty():
                yield sse_event("token", {"content": token_queue.get_nowait()})

            text = await answer_task
            stopped = text is None
            answer = ChatMessage(role="assistant", content="".join(received) if stopped else text)
            await state.save_chat(document_id, topic_id, [*history, question, answer])
            logger.info(
                "topic-chat doc=%s topic=%s stopped=%s chars=%d",
                document_id,
                topic_id,
                stopped,
                len(answer.content),
            )
            payload: Dict[str, Any] = {"message": answer.model_dump(mode="json")}
            yield sse_event("stopped" if stopped else "done", payload)
        except Exception as exc:
            logger.exception("topic-chat-failed doc=%s topic=%s", document_id, topic_id)
            yield sse_event("error", {"error": str(exc)})
        finally:
            if answer_task is not None and not answer_task.done():
                # Client went away
                cancel.cancel()
            chat_runs.finish(run_key, cancel)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/study/{document_id}/topics/{topic_id}/chat/stop")
async def stop_chat(document_id: str, topic_id: str):
    if chat_runs.stop(_run_key(document_id, topic_id)):
        return {"success": True, "message": "Stop signal sent"}
    return {"success": False, "message": "No active answer"}
