"""Defensive JSON extraction from free-form model output."""

from __future__ import annotations

from typing import Any, Dict, List
import json
import re

from studyguide.schemas.document import Confidence, StructureNode
from studyguide.schemas.topic import QuizItem, Topic

_FENCE_OPEN_RE = re.compile(r"^\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```\s*$")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

RELEVANCE_VALUES = {"core", "supporting", "detail"}


class GuideParseError(ValueError):
    """Model output holds no usable JSON object."""


def strip_code_fences(text: str) -> str:
    cleaned = _FENCE_OPEN_RE.sub("", text or "")
    return _FENCE_CLOSE_RE.sub("", cleaned)


def extract_json_object(text: str) -> Dict[str, Any]:
    """Strip fences, take the greedy first-`{` to last-`}` span, parse it."""
    cleaned = strip_code_fences(text)
    match = _OBJECT_RE.search(cleaned)
    if not match:
        raise GuideParseError("no JSON object in model output")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise GuideParseError(f"invalid JSON in model output: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise GuideParseError("model output JSON is not an object")
    return payload


def is_insufficient(guide: Dict[str, Any]) -> bool:
    """True when the model flagged the text as unusable or left the summary empty."""
    flag = guide.get("insufficientText", guide.get("insufficient_text"))
    if flag is True or str(flag).strip().lower() == "true":
        return True
    return not str(guide.get("summary") or "").strip()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v or "").strip()]


def _quiz(value: Any) -> List[QuizItem]:
    if not isinstance(value, list):
        return []
    items: List[QuizItem] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        question = str(entry.get("question") or "").strip()
        if not question:
            continue
        items.append(QuizItem(question=question, answer=str(entry.get("answer") or "").strip()))
    return items


def build_topic(node: StructureNode, guide: Dict[str, Any], confidence: Confidence) -> Topic:
    relevance = str(guide.get("relevance") or "").strip().lower()
    if relevance not in RELEVANCE_VALUES:
        relevance = "supporting"
    explanation = guide.get("expandedExplanation") or guide.get("expandedExplantion") or ""
    return Topic(
        id=node.id,
        section_title=node.title,
        level=node.level,
        relevance=relevance,
        summary=str(guide.get("summary") or "").strip(),
        key_concepts=_string_list(guide.get("keyConcepts")),
        expanded_explanation=str(explanation).strip(),
        connections=_string_list(guide.get("connections")),
        quiz=_quiz(guide.get("quiz")),
        confidence=confidence,
    )
