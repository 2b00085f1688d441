# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-22
# Description: conftest.py
# -----------------------------------------------------------------------------

import hashlib
import re
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pytest

# add project root to sys.path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from embedding.EmbeddingErrors import InvalidInputError, ProviderError  # noqa: E402
from records.InMemoryCRMRecordRepository import InMemoryCRMRecordRepository  # noqa: E402
from services.CRMBackfillService import CRMBackfillService  # noqa: E402
from services.CRMEmbeddingStore import CRMEmbeddingStore  # noqa: E402
from services.CRMSearchService import CRMSearchService  # noqa: E402
from services.CRMSyncService import CRMSyncService  # noqa: E402
from services.EmbeddingJobLedger import EmbeddingJobLedger  # noqa: E402
from vectorstore.InMemoryCRMVectorStore import InMemoryCRMVectorStore  # noqa: E402

FAKE_DIM = 1024


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder: every token is hashed into one of
    FAKE_DIM buckets, so texts sharing words get a high cosine similarity.

    `gates` lets a test hold back the embedding of any text containing a marker
    until the matching event is set; `started` fires when such a call begins.
    """

    def __init__(self, dim: int = FAKE_DIM) -> None:
        self.dim = dim
        self.calls: List[str] = []
        self.failures: List[Exception] = []  # raised (and consumed) in order
        self.fail_when: Optional[str] = None  # any text containing this marker raises ProviderError
        self.gates: Dict[str, threading.Event] = {}
        self.started: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def gate(self, marker: str) -> threading.Event:
        self.started[marker] = threading.Event()
        self.gates[marker] = threading.Event()
        return self.gates[marker]

    def embed(self, text: str) -> np.ndarray:
        if text is None or not str(text).strip():
            raise InvalidInputError("Cannot embed empty text")

        with self._lock:
            self.calls.append(text)
            failure = self.failures.pop(0) if self.failures else None
        if failure is not None:
            raise failure
        if self.fail_when and self.fail_when in text:
            raise ProviderError("provider unavailable", status=503)

        for marker, gate in self.gates.items():
            if marker in text:
                self.started[marker].set()
                assert gate.wait(timeout=10), f"gate '{marker}' never opened"

        vec = np.zeros(self.dim, dtype=np.float32)
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % self.dim
            vec[bucket] += 1.0
        norm = np.linalg.norm(vec)
        return vec / norm if norm else vec

    def test_connection(self) -> bool:
        return True


@pytest.fixture
def repo() -> InMemoryCRMRecordRepository:
    return InMemoryCRMRecordRepository()


@pytest.fixture
def vector_store() -> InMemoryCRMVectorStore:
    return InMemoryCRMVectorStore()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store(repo, vector_store) -> CRMEmbeddingStore:
    return CRMEmbeddingStore(vector_store=vector_store, repository=repo)


@pytest.fixture
def ledger() -> EmbeddingJobLedger:
    return EmbeddingJobLedger(max_jobs=500)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def sync(repo, embedder, store, ledger, sleeps):
    svc = CRMSyncService(
        repository=repo,
        embedder=embedder,
        store=store,
        ledger=ledger,
        max_workers=4,
        max_attempts=3,
        retry_delay=0.8,
        retry_backoff=1.7,
        sleep=sleeps.append,
    )
    yield svc
    svc.shutdown(wait=True)


@pytest.fixture
def backfill(store, sync) -> CRMBackfillService:
    return CRMBackfillService(store=store, sync_service=sync, sleep=lambda _: None)


@pytest.fixture
def search(embedder, store, repo) -> CRMSearchService:
    return CRMSearchService(embedder=embedder, store=store, repository=repo)
