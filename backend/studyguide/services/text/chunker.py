"""Split oversized section text into token-budgeted chunks."""

from __future__ import annotations

import math
from typing import List

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def _split_point(text: str, max_chars: int) -> int:
    """Length of the next chunk: paragraph break, else sentence end, else hard cut."""
    split_idx = text.rfind("\n\n", 0, max_chars)
    if split_idx < max_chars * 0.5:
        split_idx = text.rfind(". ", 0, max_chars)
    if split_idx < max_chars * 0.3:
        return max_chars
    # Keep the separator's first char with the chunk it ends.
    return split_idx + 1


def chunk_text(text: str, max_tokens: int = 6000) -> List[str]:
    """
    Chunks concatenate back to the input exactly; boundaries are deterministic.
    """
    max_chars = max(1, int(max_tokens)) * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return [text]

    chunks: List[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= max_chars:
            chunks.append(remaining)
            break
        cut = _split_point(remaining, max_chars)
        chunks.append(remaining[:cut])
        remaining = remaining[cut:]
    return chunks
