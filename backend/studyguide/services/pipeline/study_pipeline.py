"""Study guide generation run.

Review note:
- Sections are generated strictly one at a time, in document order.
- Each accepted topic is saved before moving on, so a stop never loses work;
  a later run with `skip_ids` (ids already saved) resumes where it stopped.
- Per-section failures (no text, TOC-like text, provider error, bad JSON,
  empty summary) are logged and skipped; only cancellation ends a run early.
- Locating and chunking are CPU bound and run in a worker thread, so the
  event stream and stop requests are served while a large document is scanned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple
import asyncio
import logging

from studyguide.schemas.document import Confidence, DocumentStructure, DocumentText, NodeId, StructureNode
from studyguide.schemas.generation import GenerationProgress, GenerationResult
from studyguide.schemas.topic import Topic
from studyguide.services.cache.topic_store import TopicRepository
from studyguide.services.llm.prompt_builder import build_study_guide_prompt
from studyguide.services.llm.stream_client import GenerationServiceError, StreamingClient, StreamRequest
from studyguide.services.locator.section_locator import locate_section
from studyguide.services.pipeline.guide_parser import (
    GuideParseError,
    build_topic,
    extract_json_object,
    is_insufficient,
)
from studyguide.services.pipeline.section_filter import rejection_reason, select_study_sections
from studyguide.services.text.chunker import chunk_text
from studyguide.services.text.normalizer import NormalizedText, build_normalized_text
from studyguide.utils.cancellation import CancellationToken, SleepFn

logger = logging.getLogger("uvicorn.error")
EventCallback = Optional[Callable[[Dict[str, Any]], None]]


class StudyPipelineError(RuntimeError):
    """A section could not be turned into a topic."""


class SectionRejected(StudyPipelineError):
    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or reason)
        self.reason = reason


@dataclass
class PipelineOptions:
    provider: str = "claude"
    model: str = ""
    max_tokens: int = 4096
    chunk_max_tokens: int = 6000
    min_section_chars: int = 100
    low_confidence_min_chars: int = 400
    inter_request_delay_sec: float = 1.0

    @classmethod
    def from_settings(cls, settings, provider: str, model: Optional[str] = None) -> "PipelineOptions":
        return cls(
            provider=provider,
            model=model or settings.default_model(provider),
            max_tokens=settings.GENERATION_MAX_TOKENS,
            chunk_max_tokens=settings.CHUNK_MAX_TOKENS,
            min_section_chars=settings.MIN_SECTION_CHARS,
            low_confidence_min_chars=settings.LOW_CONFIDENCE_MIN_CHARS,
            inter_request_delay_sec=settings.inter_request_delay(provider),
        )


@dataclass
class GenerationJob:
    """Mutable state of one run over one document."""

    sections_ordered: List[StructureNode]
    skip_set: Set[str] = field(default_factory=set)
    cursor: int = 0
    cancelled: bool = False
    completed_count: int = 0
    skipped_count: int = 0

    @property
    def total(self) -> int:
        return len(self.sections_ordered)

    def has_pending_after(self, index: int) -> bool:
        return any(str(n.id) not in self.skip_set for n in self.sections_ordered[index + 1:])


def _progress(current: int, total: int, title: Optional[str] = None) -> Dict[str, Any]:
    return {"type": "progress", **GenerationProgress(current=current, total=total, title=title).model_dump()}


def _emit(callback: EventCallback, payload: Dict[str, Any]) -> None:
    if callback is None:
        return
    try:
        callback(payload)
    except Exception:
        # Listeners only drive the UI; they never stop the run.
        logger.exception("study-event-callback-failed type=%s", payload.get("type"))


class StudyGuideOrchestrator:
    """Drives locate -> validate -> chunk -> stream -> parse -> persist per section."""

    def __init__(
        self,
        client: StreamingClient,
        repository: TopicRepository,
        options: PipelineOptions,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.client = client
        self.repository = repository
        self.options = options
        self._sleep = sleep

    async def generate(
        self,
        doc_id: str,
        document: DocumentText,
        structure: DocumentStructure,
        *,
        skip_ids: Iterable[NodeId] = (),
        cancel: Optional[CancellationToken] = None,
        on_event: EventCallback = None,
    ) -> GenerationResult:
        cancel = cancel or CancellationToken()
        job = GenerationJob(
            sections_ordered=select_study_sections(structure.sections),
            skip_set={str(i) for i in skip_ids},
        )
        normalized = await asyncio.to_thread(build_normalized_text, document.full_text)
        all_titles = [n.title for n in job.sections_ordered]
        persisted: Set[str] = set()

        logger.info(
            "study-run-start doc=%s sections=%d skip=%d provider=%s model=%s",
            doc_id,
            job.total,
            len(job.skip_set),
            self.options.provider,
            self.options.model,
        )
        _emit(on_event, {"type": "status", "phase": "generating"})

        for index, node in enumerate(job.sections_ordered):
            job.cursor = index
            if cancel.cancelled:
                job.cancelled = True
                break

            node_key = str(node.id)
            if node_key in job.skip_set or node_key in persisted:
                _emit(on_event, _progress(index + 1, job.total, node.title))
                continue

            _emit(on_event, _progress(index, job.total, node.title))
            requested = False
            try:
                prompt, confidence = await asyncio.to_thread(
                    self._prepare_prompt, document, structure, node, normalized, structure.title, all_titles
                )
                if cancel.cancelled:
                    job.cancelled = True
                    break
                requested = True
                raw = await self._request_guide(prompt, cancel)
                if raw is None:
                    job.cancelled = True
                    break
                topic = self._accept(node, raw, confidence)
                await self.repository.save_topic(doc_id, topic)
            except SectionRejected as exc:
                job.skipped_count += 1
                logger.warning("study-section-skip reason=%s section=%s", exc.reason, node.title)
                _emit(on_event, {"type": "skip", "section_id": node.id, "title": node.title, "reason": exc.reason})
            except GenerationServiceError as exc:
                if cancel.cancelled:
                    job.cancelled = True
                    break
                job.skipped_count += 1
                logger.warning(
                    "study-section-skip reason=service-%s section=%s error=%s", exc.kind, node.title, exc
                )
                _emit(
                    on_event,
                    {"type": "skip", "section_id": node.id, "title": node.title, "reason": f"service-{exc.kind}", "error": str(exc)},
                )
            else:
                persisted.add(node_key)
                job.completed_count += 1
                logger.info("study-topic-saved doc=%s section=%s confidence=%s", doc_id, node.title, topic.confidence)
                _emit(on_event, {"type": "topic", "topic": topic.model_dump()})

            if cancel.cancelled:
                job.cancelled = True
                break
            if requested and job.has_pending_after(index):
                if await cancel.sleep(self.options.inter_request_delay_sec, self._sleep):
                    job.cancelled = True
                    break

        phase = "stopped" if job.cancelled else "ready"
        if not job.cancelled:
            _emit(on_event, _progress(job.total, job.total))
        logger.info(
            "study-run-end doc=%s phase=%s generated=%d skipped=%d total=%d",
            doc_id,
            phase,
            job.completed_count,
            job.skipped_count,
            job.total,
        )
        return GenerationResult(
            completed=not job.cancelled,
            total=job.total,
            generated=job.completed_count,
            skipped=job.skipped_count,
            phase=phase,
        )

    async def regenerate_section(
        self,
        doc_id: str,
        document: DocumentText,
        structure: DocumentStructure,
        section_id: NodeId,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[Topic]:
        """
        Rebuild one topic and overwrite the stored one.

        Raises SectionRejected / GenerationServiceError instead of skipping.
        Returns None if cancelled.
        """
        node = next((n for n in structure.sections if str(n.id) == str(section_id)), None)
        if node is None:
            raise SectionRejected("unknown-section", f"Section not found: {section_id}")

        all_titles = [n.title for n in select_study_sections(structure.sections)]
        normalized = await asyncio.to_thread(build_normalized_text, document.full_text)
        prompt, confidence = await asyncio.to_thread(
            self._prepare_prompt, document, structure, node, normalized, structure.title, all_titles
        )
        raw = await self._request_guide(prompt, cancel or CancellationToken())
        if raw is None:
            return None
        topic = self._accept(node, raw, confidence)
        await self.repository.save_topic(doc_id, topic)
        logger.info("study-topic-regenerated doc=%s section=%s", doc_id, node.title)
        return topic

    def _prepare_prompt(
        self,
        document: DocumentText,
        structure: DocumentStructure,
        node: StructureNode,
        normalized: NormalizedText,
        document_title: str,
        all_titles: List[str],
    ) -> Tuple[str, Confidence]:
        located = locate_section(document, structure.sections, node.id, normalized)
        reason = rejection_reason(located.text, self.options.min_section_chars)
        if reason is not None:
            raise SectionRejected(reason, f"Not enough usable text for \"{node.title}\" ({reason})")
        if located.confidence == "low" and len(located.text) < self.options.low_confidence_min_chars:
            raise SectionRejected("low-confidence", f"Located text for \"{node.title}\" is unreliable")

        chunks = chunk_text(located.text, self.options.chunk_max_tokens)
        prompt = build_study_guide_prompt(
            node.title,
            chunks[0],
            document_title,
            all_titles,
            truncated=len(chunks) > 1,
        )
        return prompt, located.confidence

    async def _request_guide(self, prompt: str, cancel: CancellationToken) -> Optional[str]:
        request = StreamRequest(
            prompt=prompt,
            provider=self.options.provider,
            model=self.options.model,
            prompt_version="studyGuide",
            max_tokens=self.options.max_tokens,
        )
        return await self.client.stream(request, cancel=cancel)

    @staticmethod
    def _accept(node: StructureNode, raw: str, confidence: Confidence) -> Topic:
        try:
            guide = extract_json_object(raw)
        except GuideParseError as exc:
            logger.warning("study-guide-unparseable section=%s head=%r", node.title, raw[:300])
            raise SectionRejected("unparseable-output", str(exc)) from exc
        if is_insufficient(guide):
            raise SectionRejected("insufficient-text", f"Model reported insufficient text for \"{node.title}\"")
        return build_topic(node, guide, confidence)
