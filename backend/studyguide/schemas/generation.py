"""Generation run request / result schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from studyguide.schemas.document import DocumentStructure, DocumentText, NodeId, StructureNode, TOCDetection

Provider = Literal["claude", "groq"]
Phase = Literal["idle", "analyzing", "generating", "ready", "stopped"]


class ProviderChoice(BaseModel):
    provider: Provider = "claude"
    model: Optional[str] = Field(None, description="Model id, provider default when empty")


class GenerateRequest(ProviderChoice):
    document: DocumentText
    structure: DocumentStructure
    resume: bool = Field(False, description="Skip sections that already have a stored topic")


class RegenerateRequest(ProviderChoice):
    document: DocumentText
    structure: DocumentStructure


class StructureRequest(ProviderChoice):
    document: DocumentText


class LocateRequest(BaseModel):
    document: DocumentText
    sections: List[StructureNode]
    target_id: NodeId


class TOCRequest(BaseModel):
    document: DocumentText
    max_chars: int = Field(12000, gt=0)


class GenerationProgress(BaseModel):
    current: int
    total: int
    title: Optional[str] = None


class GenerationResult(BaseModel):
    completed: bool
    total: int
    generated: int = 0
    skipped: int = 0
    phase: Phase = "ready"


class TOCResponse(BaseModel):
    detection: TOCDetection
    toc_text: str = ""
