"""Active generation runs, one per document (and one per topic chat).

Review note:
- Process-local: the registry only coordinates runs served by this worker.
- `finish` removes the entry only if it still belongs to the finishing run.
"""

from __future__ import annotations

from typing import Dict

from studyguide.utils.cancellation import CancellationToken


class GenerationInProgressError(RuntimeError):
    def __init__(self, doc_id: str):
        super().__init__(f"A generation run is already active for document {doc_id}")
        self.doc_id = doc_id


class GenerationRunRegistry:
    def __init__(self) -> None:
        self._runs: Dict[str, CancellationToken] = {}

    def start(self, doc_id: str) -> CancellationToken:
        if doc_id in self._runs:
            raise GenerationInProgressError(doc_id)
        token = CancellationToken()
        self._runs[doc_id] = token
        return token

    def stop(self, doc_id: str) -> bool:
        token = self._runs.get(doc_id)
        if token is None:
            return False
        token.cancel()
        return True

    def finish(self, doc_id: str, token: CancellationToken) -> None:
        if self._runs.get(doc_id) is token:
            del self._runs[doc_id]

    def is_active(self, doc_id: str) -> bool:
        return doc_id in self._runs


generation_runs = GenerationRunRegistry()
# Topic chat answers, keyed "{document_id}/{topic_id}"
chat_runs = GenerationRunRegistry()
