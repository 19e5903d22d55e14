"""Which outline nodes are worth a study guide, and which texts are real content."""

from __future__ import annotations

from typing import List, Optional, Sequence
import re

from studyguide.schemas.document import StructureNode
from studyguide.services.text.normalizer import normalize

# Matched against the whole of normalize(title): no accents, no case, no punctuation.
# Appendix-like titles may carry a label ("Apéndice A", "Appendix II: Tables").
_LABELLED = r"(?:\s+(?:[a-z]|[0-9]+|[ivxlc]+)\b.*)?"
STRUCTURAL_TITLE_PATTERNS = (
    r"indice(?: (?:general|analitico|alfabetico|tematico|de materias))?",
    r"index(?:es)?",
    r"(?:tabla de )?contenidos?",
    r"table of contents",
    r"contents",
    r"sumario",
    r"bibliografias?(?: (?:basica|recomendada|complementaria|general|citada))?",
    r"bibliography",
    r"referencias(?: bibliograficas)?",
    r"references",
    r"works cited",
    r"apendices?" + _LABELLED,
    r"appendi(?:x|ces)" + _LABELLED,
    r"anexos?" + _LABELLED,
    r"annex(?:es)?" + _LABELLED,
    r"glosario(?: de terminos)?",
    r"glossary(?: of terms)?",
    r"agradecimientos?",
    r"acknowledge?ments?",
    r"lista de (?:figuras|tablas|ilustraciones|abreviaturas)",
    r"list of (?:figures|tables|illustrations|abbreviations)",
    r"colofon",
    r"colophon",
    r"sobre (?:el autor|la autora|los autores)",
    r"about the authors?",
)
_STRUCTURAL_TITLE_RE = re.compile(
    r"^(?:(?:capitulo|chapter|parte|part|seccion|section)\s+[0-9ivxlc]+\s+)?"
    r"(?:" + "|".join(STRUCTURAL_TITLE_PATTERNS) + r")$"
)

_TOC_LINE_RE = re.compile(r"[.…·]{3,}\s*\d{1,3}\s*$")
TOC_LINE_MAX_RATIO = 0.3


def is_structural_title(title: str) -> bool:
    """Index, bibliography, appendix, glossary, TOC and similar non-content nodes."""
    return bool(_STRUCTURAL_TITLE_RE.match(normalize(title)))


def select_study_sections(nodes: Sequence[StructureNode]) -> List[StructureNode]:
    """Level <= 2 content nodes, in document order."""
    return [n for n in nodes if n.level <= 2 and not is_structural_title(n.title)]


def toc_line_ratio(text: str) -> float:
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]
    if not lines:
        return 0.0
    hits = sum(1 for line in lines if _TOC_LINE_RE.search(line))
    return hits / len(lines)


def rejection_reason(text: str, min_chars: int) -> Optional[str]:
    """None if `text` can be sent for generation, otherwise a short reason."""
    stripped = (text or "").strip()
    if len(stripped) < min_chars:
        return "too-short"
    if toc_line_ratio(stripped) > TOC_LINE_MAX_RATIO:
        return "toc-like"
    return None
