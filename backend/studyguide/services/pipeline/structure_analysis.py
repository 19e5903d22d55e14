"""Outline detection for a document that has none yet."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from studyguide.schemas.document import DocumentStructure, DocumentText, StructureNode
from studyguide.services.llm.prompt_builder import build_structure_prompt
from studyguide.services.llm.stream_client import StreamingClient, StreamRequest
from studyguide.services.pipeline.guide_parser import GuideParseError, extract_json_object
from studyguide.services.toc.toc_detector import detect_toc_regions, extract_toc_text, get_sampled_text
from studyguide.utils.cancellation import CancellationToken

logger = logging.getLogger("uvicorn.error")


class StructureAnalysisError(RuntimeError):
    """The model answer could not be turned into an outline."""


def _level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        return 1
    return min(3, max(1, level))


def _page(value: Any) -> Optional[int]:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return None
    return page if page > 0 else None


def parse_structure(payload: Dict[str, Any]) -> DocumentStructure:
    """Build an outline from the model JSON; sections without an id get their 1-based position."""
    sections: List[StructureNode] = []
    raw_sections = payload.get("sections")
    for position, raw in enumerate(raw_sections if isinstance(raw_sections, list) else [], start=1):
        if not isinstance(raw, dict):
            continue
        title = str(raw.get("title") or "").strip()
        if not title:
            continue
        sections.append(
            StructureNode(
                id=raw.get("id") or position,
                title=title,
                level=_level(raw.get("level")),
                parent_id=raw.get("parentId", raw.get("parent_id")),
                page_start=_page(raw.get("pageStart", raw.get("page_start"))),
                page_end=_page(raw.get("pageEnd", raw.get("page_end"))),
            )
        )
    author = payload.get("author")
    return DocumentStructure(
        title=str(payload.get("title") or "").strip(),
        author=str(author).strip() if author else None,
        sections=sections,
    )


async def analyze_structure(
    document: DocumentText,
    client: StreamingClient,
    *,
    provider: str,
    model: str,
    sample_tokens: int = 8000,
    toc_max_chars: int = 12000,
    max_tokens: int = 4096,
    cancel: Optional[CancellationToken] = None,
) -> Optional[DocumentStructure]:
    """
    Detect the document outline with one model call.

    Returns None when cancelled. Raises StructureAnalysisError when the
    answer holds no usable outline; GenerationServiceError propagates.
    """
    detection = detect_toc_regions(document.pages)
    toc_text = extract_toc_text(detection, toc_max_chars)
    sample = get_sampled_text(document.pages, sample_tokens, toc_text)
    prompt = build_structure_prompt(sample, document.total_pages)

    raw = await client.stream(
        StreamRequest(
            prompt=prompt,
            provider=provider,
            model=model,
            prompt_version="structure",
            max_tokens=max_tokens,
        ),
        cancel=cancel,
    )
    if raw is None:
        return None

    try:
        payload = extract_json_object(raw)
    except GuideParseError as exc:
        logger.warning("structure-unparseable provider=%s head=%r", provider, raw[:500])
        raise StructureAnalysisError("No valid structure detected. Try another model.") from exc

    structure = parse_structure(payload)
    if not structure.sections:
        raise StructureAnalysisError("The detected structure has no sections. Try another model.")
    logger.info(
        "structure-detected provider=%s toc=%s sections=%d",
        provider,
        detection.has_toc,
        len(structure.sections),
    )
    return structure
