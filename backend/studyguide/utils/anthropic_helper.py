"""Anthropic Messages API streaming helper."""
from typing import AsyncGenerator, Dict, Any, List, Optional
import json
import httpx

RELAY_MAX_TOKENS = 8192


class UpstreamError(RuntimeError):
    """Provider answered with a non-success status (or could not be reached)."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status


def upstream_detail(body: bytes) -> str:
    """Pull `error.message` out of a provider error body, else its first 200 chars."""
    text = body.decode("utf-8", errors="ignore")
    try:
        data = json.loads(text)
    except ValueError:
        return text[:200]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return text[:200]


async def stream_anthropic_completion(
    api_url: str,
    api_key: str,
    api_version: str,
    model: str,
    system_prompt: str,
    prompt: str,
    max_tokens: int = 4096,
    timeout: float = 60.0,
    messages: Optional[List[Dict[str, str]]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncGenerator[Dict[str, Any], None]:
    """
    Stream one completion from the Messages API.

    Yields {"type": "token", "content": ...} and a final {"type": "done"}.
    Raises UpstreamError before the first yield when the provider refuses.
    `messages` (user/assistant turns) replaces the single `prompt` turn when given.
    """
    payload: Dict[str, Any] = {
        "model": model,
        "max_tokens": min(max_tokens, RELAY_MAX_TOKENS),
        "stream": True,
        "system": system_prompt,
        "messages": messages or [{"role": "user", "content": prompt}],
    }
    headers = {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": api_version,
    }

    done = False
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout, read=None), transport=transport) as client:
            async with client.stream("POST", api_url, headers=headers, json=payload) as resp:
                if resp.status_code != 200:
                    body = await resp.aread()
                    raise UpstreamError(
                        resp.status_code,
                        f"Claude API ({resp.status_code}): {upstream_detail(body)}",
                    )

                async for line in resp.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    data_str = line[6:].strip()
                    if data_str == "[DONE]":
                        continue
                    try:
                        data = json.loads(data_str)
                    except ValueError:
                        continue
                    if not isinstance(data, dict):
                        continue

                    if data.get("type") == "content_block_delta":
                        text = (data.get("delta") or {}).get("text")
                        if text:
                            yield {"type": "token", "content": text}
                    elif data.get("type") == "message_stop" and not done:
                        done = True
                        yield {"type": "done"}
    except httpx.HTTPError as e:
        raise UpstreamError(502, f"Claude API unreachable: {e}") from e

    if not done:
        yield {"type": "done"}
