"""Resolve an outline node to a span of document text.

Review note:
- Strategies run in order: page range -> title match -> proportional split.
- Every strategy returns a `SpanMatch` or None; nothing here raises on a miss,
  the caller always gets text plus a confidence grade (possibly empty / low).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging
import math
import re

from studyguide.schemas.document import (
    Confidence,
    DocumentText,
    ExtractionResult,
    NodeId,
    StructureNode,
)
from studyguide.services.text.normalizer import NormalizedText, build_normalized_text, normalize

logger = logging.getLogger("uvicorn.error")

MIN_SPAN_CHARS = 100
MIN_PROPORTIONAL_CHARS = 50
DEFAULT_PAGE_SPAN = 20
MIN_PAGE_SPAN = 5
KEYWORD_MIN_LEN = 4
KEYWORD_MIN_RATIO = 0.6
PAGE_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class SpanMatch:
    text: str
    confidence: Confidence
    strategy: str


@dataclass(frozen=True)
class TitleHit:
    index: int
    confidence: Confidence


def _find_node(nodes: Sequence[StructureNode], node_id: NodeId) -> int:
    wanted = str(node_id)
    for idx, node in enumerate(nodes):
        if str(node.id) == wanted:
            return idx
    return -1


def next_boundary_node(nodes: Sequence[StructureNode], index: int) -> Optional[StructureNode]:
    """First later node at the same or a higher level (smaller level number)."""
    level = nodes[index].level
    for node in nodes[index + 1:]:
        if node.level <= level:
            return node
    return None


# ---------------------------------------------------------------------------
# Strategy 1: explicit page range
# ---------------------------------------------------------------------------

def page_range_span(doc: DocumentText, nodes: Sequence[StructureNode], index: int) -> Optional[SpanMatch]:
    node = nodes[index]
    if not node.page_start or node.page_start < 1:
        return None

    total = len(doc.pages)
    start = node.page_start - 1
    if start >= total:
        return None

    if node.page_end:
        end = node.page_end
    else:
        end = start + DEFAULT_PAGE_SPAN
        level = node.level
        for later in nodes[index + 1:]:
            if later.level <= level and later.page_start:
                end = later.page_start - 1
                break
    if end <= start:
        end = start + MIN_PAGE_SPAN
    end = min(end, total)

    text = PAGE_SEPARATOR.join(p.text for p in doc.pages[start:end]).strip()
    if len(text) < MIN_SPAN_CHARS:
        return None
    return SpanMatch(text=text, confidence="high", strategy="page_range")


# ---------------------------------------------------------------------------
# Strategy 2: title match on the full text
# ---------------------------------------------------------------------------

def _keyword_index(normalized: NormalizedText, title: str, start: int) -> int:
    keywords = [w for w in normalize(title).split(" ") if len(w) >= KEYWORD_MIN_LEN]
    if len(keywords) < 2:
        return -1

    best_score = 0.0
    best_offset = -1
    for offset, norm_line in normalized.lines_from(start):
        if not norm_line:
            continue
        hits = sum(1 for kw in keywords if kw in norm_line)
        score = hits / len(keywords)
        if score > best_score and score >= KEYWORD_MIN_RATIO:
            best_score = score
            best_offset = offset
    return best_offset


def find_title(
    full_text: str,
    title: str,
    normalized: NormalizedText,
    start: int = 0,
) -> Optional[TitleHit]:
    """Locate a title at or after `start`: exact, case-insensitive, normalized, keywords."""
    if not title or not title.strip():
        return None

    idx = full_text.find(title, start)
    if idx != -1:
        return TitleHit(idx, "medium")

    match = re.compile(re.escape(title), re.IGNORECASE).search(full_text, start)
    if match:
        return TitleHit(match.start(), "medium")

    norm_title = normalize(title)
    if norm_title:
        norm_idx = normalized.text.find(norm_title, normalized.to_normalized(start))
        if norm_idx != -1:
            return TitleHit(normalized.to_original(norm_idx), "low")

    kw_idx = _keyword_index(normalized, title, start)
    if kw_idx != -1:
        return TitleHit(kw_idx, "low")
    return None


def title_match_span(
    doc: DocumentText,
    nodes: Sequence[StructureNode],
    index: int,
    normalized: NormalizedText,
) -> Optional[SpanMatch]:
    node = nodes[index]
    full_text = doc.full_text
    hit = find_title(full_text, node.title, normalized)
    if hit is None:
        return None

    end = len(full_text)
    boundary = next_boundary_node(nodes, index)
    if boundary is not None:
        search_from = min(len(full_text), hit.index + len(node.title))
        nxt = find_title(full_text, boundary.title, normalized, start=search_from)
        if nxt is not None:
            end = nxt.index

    text = full_text[hit.index:end].strip()
    if len(text) < MIN_SPAN_CHARS:
        return None
    return SpanMatch(text=text, confidence=hit.confidence, strategy="title_match")


# ---------------------------------------------------------------------------
# Strategy 3: proportional distribution over pages
# ---------------------------------------------------------------------------

def proportional_span(doc: DocumentText, nodes: Sequence[StructureNode], node_id: NodeId) -> Optional[SpanMatch]:
    top_level: List[StructureNode] = [n for n in nodes if n.level <= 2]
    ordinal = _find_node(top_level, node_id)
    total_pages = len(doc.pages)
    if ordinal < 0 or not top_level or total_pages == 0:
        return None

    count = len(top_level)
    start = math.floor(ordinal * total_pages / count)
    end = math.ceil((ordinal + 1) * total_pages / count)
    text = PAGE_SEPARATOR.join(p.text for p in doc.pages[start:end]).strip()
    if not text:
        return None
    confidence: Confidence = "medium" if len(text) >= MIN_PROPORTIONAL_CHARS else "low"
    return SpanMatch(text=text, confidence=confidence, strategy="proportional")


# ---------------------------------------------------------------------------
# Ladder
# ---------------------------------------------------------------------------

def locate_section(
    doc: DocumentText,
    nodes: Sequence[StructureNode],
    target_id: NodeId,
    normalized: Optional[NormalizedText] = None,
) -> ExtractionResult:
    """
    Best-effort text span for one node.

    `normalized` should be built once per document (build_normalized_text)
    and shared across calls; it is rebuilt here when omitted.
    """
    index = _find_node(nodes, target_id)
    if index < 0:
        return ExtractionResult(text="", confidence="low")

    found = page_range_span(doc, nodes, index)
    if found is None:
        if normalized is None:
            normalized = build_normalized_text(doc.full_text)
        found = title_match_span(doc, nodes, index, normalized)
    if found is None:
        found = proportional_span(doc, nodes, target_id)
    if found is None:
        return ExtractionResult(text="", confidence="low")

    logger.debug(
        "locate-section id=%s strategy=%s confidence=%s chars=%d",
        target_id,
        found.strategy,
        found.confidence,
        len(found.text),
    )
    return ExtractionResult(text=found.text, confidence=found.confidence)
