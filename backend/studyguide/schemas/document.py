"""Document, outline and located-span schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional, Union

Confidence = Literal["high", "medium", "low"]
TOCType = Literal["analytical", "general", "unknown"]
NodeId = Union[int, str]


class Page(BaseModel):
    page_number: int = Field(..., ge=1)
    text: str = ""


class DocumentText(BaseModel):
    """Page-segmented text of one document. Read-only for the core."""

    pages: List[Page] = Field(default_factory=list)
    full_text: str = ""

    @model_validator(mode="after")
    def _derive_full_text(self):
        if not self.full_text and self.pages:
            self.full_text = "\n\n".join(p.text for p in self.pages)
        return self

    @property
    def total_pages(self) -> int:
        return len(self.pages)


class StructureNode(BaseModel):
    id: NodeId
    title: str
    level: int = Field(default=1, ge=1, le=3)
    parent_id: Optional[NodeId] = None
    page_start: Optional[int] = None
    page_end: Optional[int] = None


class DocumentStructure(BaseModel):
    title: str = ""
    author: Optional[str] = None
    sections: List[StructureNode] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    text: str = ""
    confidence: Confidence = "low"


class TOCPage(BaseModel):
    page_number: int
    text: str
    score: int


class TOCRegion(BaseModel):
    type: TOCType = "unknown"
    start_page: int
    end_page: int
    pages: List[TOCPage] = Field(default_factory=list)


class TOCDetection(BaseModel):
    has_toc: bool = False
    regions: List[TOCRegion] = Field(default_factory=list)
