"""Provider relay API.

Review note:
- Answers with the upstream status and `{error, status}` when the provider
  refuses, so the streaming client can tell rate limits from other errors.
- Once streaming has started, an upstream failure just ends the stream.
"""
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Any, AsyncGenerator, Dict
import json
import logging

from studyguide.config import settings
from studyguide.schemas.llm import AnalyzeRequest
from studyguide.services.llm.prompt_builder import get_system_prompt
from studyguide.services.llm.stream_client import PROVIDER_NAMES
from studyguide.utils.anthropic_helper import UpstreamError, stream_anthropic_completion
from studyguide.utils.openai_helper import stream_openai_compatible_completion

logger = logging.getLogger("uvicorn.error")

router = APIRouter()

API_KEY_NAMES = {"claude": "ANTHROPIC_API_KEY", "groq": "GROQ_API_KEY"}


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _provider_events(provider: str, request: AnalyzeRequest) -> AsyncGenerator[Dict[str, Any], None]:
    system_prompt = get_system_prompt(request.prompt_version)
    model = request.model or settings.default_model(provider)
    if provider == "claude":
        return stream_anthropic_completion(
            api_url=settings.ANTHROPIC_API_URL,
            api_key=settings.ANTHROPIC_API_KEY,
            api_version=settings.ANTHROPIC_VERSION,
            model=model,
            system_prompt=system_prompt,
            prompt=request.prompt,
            max_tokens=request.max_tokens,
            timeout=settings.UPSTREAM_TIMEOUT_SEC,
            messages=request.conversation(),
        )
    return stream_openai_compatible_completion(
        api_key=settings.GROQ_API_KEY,
        base_url=settings.GROQ_BASE_URL,
        model=model,
        system_prompt=system_prompt,
        prompt=request.prompt,
        max_tokens=request.max_tokens,
        timeout=settings.UPSTREAM_TIMEOUT_SEC,
        messages=request.conversation(),
    )


async def _prepend(first: Dict[str, Any], events: AsyncGenerator[Dict[str, Any], None]):
    yield first
    async for event in events:
        yield event


@router.get("/analyze/health")
async def analyze_health():
    """Per-provider availability and model catalogue."""
    result: Dict[str, Any] = {}
    for provider in PROVIDER_NAMES:
        available = settings.provider_configured(provider)
        result[provider] = {
            "available": available,
            "models": settings.provider_models[provider] if available else [],
        }
    ok = any(item["available"] for item in result.values())
    return JSONResponse(
        status_code=200 if ok else 503,
        content={"status": "ok" if ok else "error", **result},
    )


@router.post("/analyze/{provider}")
async def analyze(provider: str, request: AnalyzeRequest):
    """Stream one completion as `data: {"token"}` lines and a final `data: {"done": true}`."""
    if provider not in PROVIDER_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")
    if not settings.provider_configured(provider):
        return JSONResponse(status_code=401, content={"error": f"{API_KEY_NAMES[provider]} not configured"})

    events = _provider_events(provider, request)
    try:
        first = await events.__anext__()
    except StopAsyncIteration:
        first = {"type": "done"}
    except UpstreamError as exc:
        logger.warning("relay-upstream-refused provider=%s status=%d error=%s", provider, exc.status, exc)
        return JSONResponse(status_code=exc.status, content={"error": str(exc), "status": exc.status})

    async def event_generator() -> AsyncGenerator[str, None]:
        done = False
        try:
            async for event in _prepend(first, events):
                if event.get("type") == "token":
                    yield _sse({"token": event["content"]})
                elif event.get("type") == "done" and not done:
                    done = True
                    yield _sse({"done": True})
        except UpstreamError as exc:
            logger.warning("relay-upstream-failed provider=%s status=%d error=%s", provider, exc.status, exc)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
