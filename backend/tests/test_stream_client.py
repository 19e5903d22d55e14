import asyncio
import json

import httpx
import pytest

from studyguide.services.llm.stream_client import (
    GenerationServiceError,
    StreamingClient,
    StreamRequest,
    classify_error,
)
from studyguide.utils.cancellation import CancellationToken

BASE_URL = "http://relay.test/api/v1/analyze"


def _sse_body(*events) -> str:
    return "".join(f"data: {json.dumps(e)}\n\n" for e in events)


def _ok_response(*events) -> httpx.Response:
    return httpx.Response(200, text=_sse_body(*events), headers={"content-type": "text/event-stream"})


def _client(handler, sleeps=None, **kwargs) -> StreamingClient:
    async def fake_sleep(seconds):
        if sleeps is not None:
            sleeps.append(seconds)

    return StreamingClient(BASE_URL, transport=httpx.MockTransport(handler), sleep=fake_sleep, **kwargs)


def test_streams_tokens_and_calls_done_once():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return _ok_response({"token": "Hel"}, {"token": "lo"}, {"done": True}, {"done": True})

    tokens, done = [], []
    client = _client(handler)
    text = asyncio.run(
        client.stream(
            StreamRequest(prompt="p", provider="groq", model="m", max_tokens=100),
            on_token=lambda full, token: tokens.append((full, token)),
            on_done=done.append,
        )
    )

    assert text == "Hello"
    assert tokens == [("Hel", "Hel"), ("Hello", "lo")]
    assert done == ["Hello"]
    assert seen["url"] == f"{BASE_URL}/groq"
    assert seen["body"] == {"prompt": "p", "model": "m", "prompt_version": "studyGuide", "max_tokens": 100}


def test_conversation_turns_are_sent_with_the_request():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return _ok_response({"token": "Hm?"}, {"done": True})

    turns = [{"role": "user", "content": "Why?"}]
    request = StreamRequest(prompt="", provider="claude", prompt_version="chat", messages=turns)
    text = asyncio.run(_client(handler).stream(request))

    assert text == "Hm?"
    assert seen["body"]["messages"] == turns
    assert seen["body"]["prompt_version"] == "chat"


def test_rate_limit_is_retried_with_exponential_backoff():
    calls = []
    sleeps = []

    def handler(request):
        calls.append(request)
        if len(calls) <= 2:
            return httpx.Response(429, json={"error": "Claude API (429): rate limited", "status": 429})
        return _ok_response({"token": "ok"}, {"done": True})

    text = asyncio.run(_client(handler, sleeps).stream(StreamRequest(prompt="p")))

    assert text == "ok"
    assert len(calls) == 3
    assert sleeps == [2.0, 4.0]


def test_retries_exhausted_reports_provider_rate_limit():
    calls = []
    sleeps = []
    errors = []

    def handler(request):
        calls.append(request)
        return httpx.Response(529, json={"error": "Overloaded"})

    with pytest.raises(GenerationServiceError) as exc_info:
        asyncio.run(_client(handler, sleeps).stream(StreamRequest(prompt="p"), on_error=errors.append))

    assert len(calls) == 4
    assert sleeps == [2.0, 4.0, 8.0]
    assert "Anthropic rate limit exceeded after 3 retries" in str(exc_info.value)
    assert exc_info.value.kind == "overloaded"
    assert errors == [str(exc_info.value)]


def test_spending_limit_fails_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(
            400,
            json={"error": "You have reached your specified API usage limits. You will regain access on 2026-11-01"},
        )

    with pytest.raises(GenerationServiceError) as exc_info:
        asyncio.run(_client(handler, []).stream(StreamRequest(prompt="p", provider="groq")))

    assert len(calls) == 1
    assert exc_info.value.kind == "spending_limit"
    assert str(exc_info.value).startswith("Monthly spending limit reached on Groq.")


def test_other_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="boom")

    with pytest.raises(GenerationServiceError) as exc_info:
        asyncio.run(_client(handler, []).stream(StreamRequest(prompt="p")))

    assert len(calls) == 1
    assert exc_info.value.kind == "other"
    assert str(exc_info.value) == "HTTP 500"


def test_connection_error_becomes_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GenerationServiceError) as exc_info:
        asyncio.run(_client(handler).stream(StreamRequest(prompt="p")))

    assert exc_info.value.kind == "other"


def test_malformed_lines_are_skipped():
    body = 'data: {not json}\n\n: keep-alive\n\ndata: {"token": "ok"}\n\ndata: [1, 2]\n\ndata: {"done": true}\n\n'

    def handler(request):
        return httpx.Response(200, text=body)

    assert asyncio.run(_client(handler).stream(StreamRequest(prompt="p"))) == "ok"


def test_missing_done_still_completes_with_text():
    done = []

    def handler(request):
        return _ok_response({"token": "partial"})

    text = asyncio.run(_client(handler).stream(StreamRequest(prompt="p"), on_done=done.append))

    assert text == "partial"
    assert done == ["partial"]


def test_empty_stream_is_an_error():
    def handler(request):
        return httpx.Response(200, text="")

    with pytest.raises(GenerationServiceError) as exc_info:
        asyncio.run(_client(handler).stream(StreamRequest(prompt="p")))

    assert exc_info.value.kind == "empty"


def test_cancel_aborts_in_flight_request():
    started = []

    async def handler(request):
        started.append(request)
        await asyncio.sleep(10)
        return _ok_response({"token": "late"}, {"done": True})

    async def run():
        token = CancellationToken()
        client = StreamingClient(BASE_URL, transport=httpx.MockTransport(handler))
        task = asyncio.create_task(client.stream(StreamRequest(prompt="p"), cancel=token))
        await asyncio.sleep(0.05)
        token.cancel()
        return await asyncio.wait_for(task, timeout=2)

    assert asyncio.run(run()) is None
    assert len(started) == 1


def test_cancelled_before_start_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return _ok_response({"token": "x"}, {"done": True})

    async def run():
        token = CancellationToken()
        token.cancel()
        return await _client(handler).stream(StreamRequest(prompt="p"), cancel=token)

    assert asyncio.run(run()) is None
    assert calls == []


def test_cancel_during_backoff_returns_none():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"error": "rate limited"})

    async def run():
        token = CancellationToken()

        async def sleep_and_cancel(seconds):
            token.cancel()
            await asyncio.sleep(10)

        client = StreamingClient(BASE_URL, transport=httpx.MockTransport(handler), sleep=sleep_and_cancel)
        return await asyncio.wait_for(client.stream(StreamRequest(prompt="p"), cancel=token), timeout=2)

    assert asyncio.run(run()) is None
    assert len(calls) == 1


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError):
        StreamingClient(BASE_URL).endpoint("mistral")


def test_classify_error():
    assert classify_error(429, "") == "rate_limit"
    assert classify_error(529, "") == "overloaded"
    assert classify_error(400, "Overloaded, try later") == "overloaded"
    assert classify_error(400, "monthly spending limit hit") == "spending_limit"
    assert classify_error(400, "Too many requests") == "rate_limit"
    assert classify_error(500, "boom") == "other"
