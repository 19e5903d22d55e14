"""Streaming client for the generation relay.

Review note:
- One POST per attempt; the response is a `data: {json}` line stream carrying
  `{"token": ...}` pieces and a final `{"done": true}`.
- Rate limit / overload answers are retried with exponential backoff
  (base * 2^attempt); spending limits and anything else fail immediately.
- Cancellation aborts the in-flight request and resolves to None, no error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import asyncio
import json
import logging

import httpx

from studyguide.utils.cancellation import CancellationToken, SleepFn

logger = logging.getLogger("uvicorn.error")

PROVIDER_NAMES = {"claude": "Anthropic", "groq": "Groq"}
RETRYABLE_KINDS = {"rate_limit", "overloaded"}
EVENT_PREFIX = "data: "

TokenCallback = Callable[[str, str], None]
TextCallback = Callable[[str], None]


class GenerationServiceError(RuntimeError):
    """Terminal failure talking to the generation service."""

    def __init__(self, message: str, kind: str = "other", provider: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.status = status


@dataclass
class StreamRequest:
    prompt: str
    provider: str = "claude"
    model: str = ""
    prompt_version: str = "studyGuide"
    max_tokens: int = 4096
    # user/assistant turns; sent instead of a single prompt when present
    messages: Optional[List[Dict[str, str]]] = None


def provider_display_name(provider: str) -> str:
    return PROVIDER_NAMES.get(provider, provider or "")


def classify_error(status: Optional[int], message: str) -> str:
    msg = (message or "").lower()
    if "usage limit" in msg or "spending limit" in msg or "will regain access" in msg:
        return "spending_limit"
    if status == 429 or "rate limit" in msg or "too many request" in msg:
        return "rate_limit"
    if status == 529 or "overloaded" in msg:
        return "overloaded"
    return "other"


class StreamingClient:
    """Async client for the per-provider relay endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        max_retries: int = 3,
        base_delay_sec: float = 2.0,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.max_retries = max(0, int(max_retries))
        self.base_delay_sec = float(base_delay_sec)
        # The stream lives as long as the provider keeps it open.
        self.timeout = timeout or httpx.Timeout(30.0, read=None)
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "StreamingClient":
        return cls(
            settings.GENERATION_BASE_URL,
            max_retries=settings.STREAM_MAX_RETRIES,
            base_delay_sec=settings.STREAM_BASE_DELAY_SEC,
            **kwargs,
        )

    def endpoint(self, provider: str) -> str:
        if provider not in PROVIDER_NAMES:
            raise ValueError(f"Unknown provider: {provider}")
        return f"{self.base_url}/{provider}"

    async def stream(
        self,
        request: StreamRequest,
        *,
        on_token: Optional[TokenCallback] = None,
        on_done: Optional[TextCallback] = None,
        on_error: Optional[TextCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        """
        Run one generation request to completion.

        Returns the accumulated text, or None when cancelled.
        Raises GenerationServiceError for terminal failures (after on_error).
        """
        url = self.endpoint(request.provider)
        provider_name = provider_display_name(request.provider)

        for attempt in range(self.max_retries + 1):
            if cancel is not None and cancel.cancelled:
                return None
            attempt_call = self._attempt(url, request, on_token, on_done)
            try:
                if cancel is None:
                    return await attempt_call
                text = await cancel.run(attempt_call)
                if cancel.cancelled:
                    logger.info("stream-cancelled provider=%s attempt=%d", request.provider, attempt + 1)
                    return None
                return text
            except GenerationServiceError as exc:
                error = exc
                if exc.kind in RETRYABLE_KINDS and attempt < self.max_retries:
                    delay = self.base_delay_sec * (2 ** attempt)
                    logger.warning(
                        "stream-retry kind=%s provider=%s attempt=%d/%d delay=%.1fs",
                        exc.kind,
                        request.provider,
                        attempt + 1,
                        self.max_retries,
                        delay,
                    )
                    if cancel is None:
                        await self._sleep(delay)
                    elif await cancel.sleep(delay, self._sleep):
                        return None
                    continue
                if exc.kind in RETRYABLE_KINDS:
                    error = GenerationServiceError(
                        f"{provider_name} rate limit exceeded after {self.max_retries} retries. "
                        "Wait a few minutes and try again.",
                        kind=exc.kind,
                        provider=request.provider,
                        status=exc.status,
                    )
                if on_error is not None:
                    on_error(str(error))
                if error is exc:
                    raise
                raise error from exc
        return None

    async def _attempt(
        self,
        url: str,
        request: StreamRequest,
        on_token: Optional[TokenCallback],
        on_done: Optional[TextCallback],
    ) -> str:
        payload = {
            "prompt": request.prompt,
            "model": request.model,
            "prompt_version": request.prompt_version,
            "max_tokens": request.max_tokens,
        }
        if request.messages:
            payload["messages"] = request.messages
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                async with client.stream("POST", url, json=payload) as resp:
                    if resp.status_code >= 300:
                        body = await resp.aread()
                        raise self._status_error(request.provider, resp.status_code, body)
                    return await self._consume(resp, request.provider, on_token, on_done)
        except httpx.HTTPError as exc:
            raise GenerationServiceError(
                f"Generation request failed: {exc}",
                kind="other",
                provider=request.provider,
            ) from exc

    @staticmethod
    def _status_error(provider: str, status: int, body: bytes) -> GenerationServiceError:
        message = ""
        try:
            detail = json.loads(body.decode("utf-8", errors="ignore") or "{}")
            if isinstance(detail, dict):
                message = str(detail.get("error") or "")
        except ValueError:
            message = ""
        message = message or f"HTTP {status}"

        kind = classify_error(status, message)
        if kind == "spending_limit":
            message = (
                f"Monthly spending limit reached on {provider_display_name(provider)}. "
                "Check your plan in the provider console or switch to another provider."
            )
        return GenerationServiceError(message, kind=kind, provider=provider, status=status)

    @staticmethod
    async def _consume(
        resp: httpx.Response,
        provider: str,
        on_token: Optional[TokenCallback],
        on_done: Optional[TextCallback],
    ) -> str:
        full_text = ""
        done_called = False
        async for line in resp.aiter_lines():
            if not line.startswith(EVENT_PREFIX):
                continue
            try:
                event = json.loads(line[len(EVENT_PREFIX):])
            except ValueError:
                continue
            if not isinstance(event, dict):
                continue

            token = event.get("token")
            if token:
                full_text += str(token)
                if on_token is not None:
                    on_token(full_text, str(token))
            if event.get("done") and not done_called:
                done_called = True
                if on_done is not None:
                    on_done(full_text)

        if not done_called:
            if not full_text:
                raise GenerationServiceError(
                    "The model produced no content. Try another model or a shorter document.",
                    kind="empty",
                    provider=provider,
                )
            if on_done is not None:
                on_done(full_text)
        return full_text
