"""Text canonicalization for fuzzy title matching."""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple
import re
import unicodedata

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WS_RE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: str) -> str:
    """Strip accents, lowercase, punctuation -> space, collapse whitespace."""
    value = strip_diacritics(text).lower()
    value = _NON_ALNUM_RE.sub(" ", value)
    return _WS_RE.sub(" ", value).strip()


@lru_cache(maxsize=4096)
def _normalize_char(ch: str) -> str:
    # Same pipeline as normalize(), minus the whitespace collapse.
    value = strip_diacritics(ch).lower()
    return _NON_ALNUM_RE.sub(" ", value)


@dataclass(frozen=True)
class NormalizedText:
    """normalize(original) plus, for every normalized char, its offset in original.

    `lines` holds (original line start, normalize(line)) for every source line.
    """

    text: str
    offsets: Tuple[int, ...]
    original_length: int
    lines: Tuple[Tuple[int, str], ...] = ()

    def to_original(self, norm_index: int) -> int:
        if norm_index >= len(self.offsets):
            return self.original_length
        return self.offsets[max(0, norm_index)]

    def to_normalized(self, orig_index: int) -> int:
        return bisect_left(self.offsets, orig_index)

    def lines_from(self, orig_index: int) -> Tuple[Tuple[int, str], ...]:
        """Lines starting at or after `orig_index`."""
        first = bisect_left(self.lines, (orig_index, ""))
        return self.lines[first:]


def build_normalized_text(text: str) -> NormalizedText:
    """
    Normalize a whole document once, keeping an offset map back to the source.

    The output string is identical to normalize(text); the map lets fuzzy
    matches found in normalized space be reported as original offsets.
    Per-line normalized text is collected in the same pass.
    """
    source = text or ""
    chars: List[str] = []
    offsets: List[int] = []
    lines: List[Tuple[int, str]] = []
    pending_space = -1
    line_start = 0
    line_chars = 0

    for idx, ch in enumerate(source):
        if ch == "\n":
            lines.append((line_start, "".join(chars[line_chars:]).strip()))
            line_start = idx + 1
            line_chars = len(chars)
        for out in _normalize_char(ch):
            if out.isspace():
                if pending_space < 0:
                    pending_space = idx
                continue
            if pending_space >= 0 and chars:
                chars.append(" ")
                offsets.append(pending_space)
            pending_space = -1
            chars.append(out)
            offsets.append(idx)
    lines.append((line_start, "".join(chars[line_chars:]).strip()))

    return NormalizedText(
        text="".join(chars),
        offsets=tuple(offsets),
        original_length=len(source),
        lines=tuple(lines),
    )
