"""Table-of-contents page detection.

Review note:
- Each page gets a score from three signals (header keyword, dot leaders,
  short lines ending in a page number); pages scoring >= 30 are candidates.
- Candidates within a 3-page gap and with compatible types form one region.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging
import re

from studyguide.schemas.document import Page, TOCDetection, TOCPage, TOCRegion, TOCType
from studyguide.services.text.normalizer import strip_diacritics

logger = logging.getLogger("uvicorn.error")

CANDIDATE_MIN_SCORE = 30
MAX_REGION_GAP = 3
HEADER_CHARS = 300

ANALYTICAL_KEYWORDS = (
    "índice analítico", "índice temático", "índice de materias",
    "analytical index", "subject index",
)
GENERAL_KEYWORDS = (
    "índice general", "tabla de contenidos", "table of contents",
    "contenido", "contents", "sumario",
)
TOC_KEYWORDS = (
    "índice de contenidos", "índice",
)

_DOT_LEADER_RE = re.compile(r"[.…·]{3,}\s*\d{1,4}\s*$", re.MULTILINE)
_SHORT_NUM_RE = re.compile(r"^.{10,100}\s+\d{1,4}\s*$", re.MULTILINE)

_TYPE_PRIORITY = {"analytical": 0, "general": 1, "unknown": 2}


def _fold(text: str) -> str:
    return strip_diacritics(text).lower()


_ANALYTICAL = tuple(_fold(k) for k in ANALYTICAL_KEYWORDS)
_GENERAL = tuple(_fold(k) for k in GENERAL_KEYWORDS)
_FALLBACK = tuple(_fold(k) for k in TOC_KEYWORDS)


@dataclass
class _Candidate:
    page: TOCPage
    type: TOCType


def _keyword_type(page_text: str) -> Optional[TOCType]:
    header = _fold(page_text[:HEADER_CHARS])
    if any(kw in header for kw in _ANALYTICAL):
        return "analytical"
    if any(kw in header for kw in _GENERAL + _FALLBACK):
        return "general"
    return None


def score_toc_page(page_text: str) -> Tuple[int, TOCType]:
    """Score how much a page looks like a contents listing."""
    text = page_text or ""
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return 0, "unknown"

    score = 0
    kw_type = _keyword_type(text)
    if kw_type is not None:
        score += 30
    page_type: TOCType = kw_type or "unknown"

    dot_ratio = len(_DOT_LEADER_RE.findall(text)) / len(lines)
    if dot_ratio >= 0.3:
        score += 40
    elif dot_ratio >= 0.15:
        score += 20

    short_ratio = len(_SHORT_NUM_RE.findall(text)) / len(lines)
    if short_ratio >= 0.25:
        score += 20
    elif short_ratio >= 0.12:
        score += 10

    return score, page_type


def _close_region(group: List[_Candidate], region_type: TOCType) -> TOCRegion:
    return TOCRegion(
        type=region_type,
        start_page=group[0].page.page_number,
        end_page=group[-1].page.page_number,
        pages=[c.page for c in group],
    )


def detect_toc_regions(pages: Sequence[Page]) -> TOCDetection:
    """Scan every page and group TOC-looking pages into typed regions."""
    candidates: List[_Candidate] = []
    for page in sorted(pages, key=lambda p: p.page_number):
        score, page_type = score_toc_page(page.text)
        if score >= CANDIDATE_MIN_SCORE:
            candidates.append(
                _Candidate(TOCPage(page_number=page.page_number, text=page.text, score=score), page_type)
            )

    if not candidates:
        logger.info("toc-detect regions=0")
        return TOCDetection(has_toc=False, regions=[])

    regions: List[TOCRegion] = []
    group = [candidates[0]]
    group_type: TOCType = candidates[0].type
    for prev, cur in zip(candidates, candidates[1:]):
        gap = cur.page.page_number - prev.page.page_number
        compatible = cur.type == group_type or "unknown" in (cur.type, group_type)
        if gap <= MAX_REGION_GAP and compatible:
            group.append(cur)
            if group_type == "unknown" and cur.type != "unknown":
                group_type = cur.type
            continue
        regions.append(_close_region(group, group_type))
        group = [cur]
        group_type = cur.type
    regions.append(_close_region(group, group_type))

    logger.info(
        "toc-detect regions=%d detail=%s",
        len(regions),
        "; ".join(
            f"{r.type} p{r.start_page}-{r.end_page} n={len(r.pages)} "
            f"avg={round(sum(p.score for p in r.pages) / len(r.pages))}"
            for r in regions
        ),
    )
    return TOCDetection(has_toc=True, regions=regions)


def extract_toc_text(detection: TOCDetection, max_chars: int = 12000) -> str:
    """Concatenate region pages, analytical first, up to a character budget."""
    if not detection.has_toc or not detection.regions:
        return ""

    ordered = sorted(detection.regions, key=lambda r: _TYPE_PRIORITY.get(r.type, 2))
    parts: List[str] = []
    used = 0
    for region in ordered:
        for page in region.pages:
            if used >= max_chars:
                break
            parts.append(page.text)
            used += len(page.text) + (2 if len(parts) > 1 else 0)
    return "\n\n".join(parts)[:max_chars]


def get_sampled_text(pages: Sequence[Page], max_tokens: int = 8000, toc_text: str = "") -> str:
    """
    Text sample for the structure prompt.

    With TOC text: 40% of the budget goes to the TOC, the rest to page samples.
    Without: the first five pages act as a pseudo-TOC, then samples.
    """
    max_chars = max_tokens * 4
    step = max(1, len(pages) // 20)

    if toc_text:
        toc_budget = int(max_chars * 0.4)
        result = f"=== DOCUMENT INDEX ===\n{toc_text[:toc_budget]}\n=== END OF INDEX ===\n\n"
        for i in range(0, len(pages), step):
            if len(result) >= max_chars:
                break
            result += f"\n\n--- Page {pages[i].page_number} ---\n{pages[i].text[:500]}"
        return result[:max_chars]

    result = "\n\n".join(p.text for p in pages[:5])
    if len(result) >= max_chars:
        return result[:max_chars]
    for i in range(5, len(pages), step):
        if len(result) >= max_chars:
            break
        result += f"\n\n--- Page {pages[i].page_number} ---\n{pages[i].text[:500]}"
    return result[:max_chars]
