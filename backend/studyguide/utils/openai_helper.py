"""OpenAI-compatible (Groq) streaming helper."""
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from typing import AsyncGenerator, Dict, Any, List, Optional
from httpx import Timeout

from studyguide.utils.anthropic_helper import RELAY_MAX_TOKENS, UpstreamError


async def stream_openai_compatible_completion(
    api_key: str,
    base_url: str,
    model: str,
    system_prompt: str,
    prompt: str,
    max_tokens: int = 4096,
    timeout: float = 60.0,
    messages: Optional[List[Dict[str, str]]] = None,
    client: Optional[AsyncOpenAI] = None,
) -> AsyncGenerator[Dict[str, Any], None]:
    """
    Stream one chat completion through the openai SDK.

    Yields {"type": "token", "content": ...} and a final {"type": "done"}.
    Raises UpstreamError when the provider refuses or cannot be reached.
    """
    if client is None:
        client_kwargs = {
            "api_key": api_key,
            "timeout": Timeout(timeout),
            # Retries belong to the caller, which reads the 429 itself
            "max_retries": 0,
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        client = AsyncOpenAI(**client_kwargs)

    try:
        stream = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                *(messages or [{"role": "user", "content": prompt}]),
            ],
            max_tokens=min(max_tokens, RELAY_MAX_TOKENS),
            stream=True,
        )

        async for chunk in stream:
            if chunk.choices and len(chunk.choices) > 0:
                delta = chunk.choices[0].delta
                if delta and delta.content:
                    yield {"type": "token", "content": delta.content}
    except APIStatusError as e:
        raise UpstreamError(e.status_code, f"Groq API ({e.status_code}): {e.message}") from e
    except APIConnectionError as e:
        raise UpstreamError(502, f"Groq API unreachable: {e}") from e

    yield {"type": "done"}
