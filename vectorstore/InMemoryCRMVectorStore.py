# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-08
# Description: InMemoryCRMVectorStore
# -----------------------------------------------------------------------------
from __future__ import annotations

import copy
import logging
from threading import Lock
from typing import Dict, List, Optional, Tuple

import numpy as np

from embedding.EmbeddingRecord import EmbeddingFingerprint, StoredEmbedding
from records.CRMRecord import RecordType
from utility.logging_utils import get_class_logger


def cosine_similarity(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Row-wise cosine of `matrix` against `query`, clamped to [0, 1]."""
    q = np.asarray(query, dtype=np.float32)
    m = np.asarray(matrix, dtype=np.float32)
    norms = np.linalg.norm(m, axis=1) * (np.linalg.norm(q) + 1e-12) + 1e-12
    sims = (m @ q) / norms
    return np.clip(sims, 0.0, 1.0)


class InMemoryCRMVectorStore:
    """numpy-backed vector index for tests and local development."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_class_logger(self.__class__)
        self._lock = Lock()
        self._data: Dict[Tuple[RecordType, str], Dict[str, StoredEmbedding]] = {}

    def test_connection(self) -> bool:
        return True

    def _partition(self, record_type: RecordType, owner_id: str) -> Dict[str, StoredEmbedding]:
        return self._data.setdefault((record_type, str(owner_id)), {})

    def upsert_embedding(self, embedding: StoredEmbedding) -> None:
        stored = copy.deepcopy(embedding)
        stored.vector = np.asarray(stored.vector, dtype=np.float32)
        with self._lock:
            self._partition(stored.record_type, stored.owner_id)[stored.record_id] = stored
        self.logger.debug(
            "Upserted embedding %s/%s (owner=%s)",
            stored.record_type.value,
            stored.record_id,
            stored.owner_id,
        )

    def get_embedding(
            self,
            record_type: RecordType,
            owner_id: str,
            record_id: str,
    ) -> Optional[StoredEmbedding]:
        with self._lock:
            found = self._partition(record_type, owner_id).get(str(record_id))
            return copy.deepcopy(found) if found is not None else None

    def list_fingerprints(self, record_type: RecordType, owner_id: str) -> Dict[str, EmbeddingFingerprint]:
        with self._lock:
            return {
                rid: EmbeddingFingerprint(rid, e.content_hash, e.computed_at)
                for rid, e in self._partition(record_type, owner_id).items()
            }

    def query_similar(
            self,
            record_type: RecordType,
            owner_id: str,
            vector: np.ndarray,
            n_results: int,
    ) -> List[Tuple[str, float]]:
        with self._lock:
            items = list(self._partition(record_type, owner_id).items())

        if not items or n_results <= 0:
            return []

        ids = [rid for rid, _ in items]
        matrix = np.vstack([e.vector for _, e in items])
        sims = cosine_similarity(vector, matrix)

        # stable: equal scores keep insertion order
        order = np.argsort(-sims, kind="stable")[:n_results]
        return [(ids[i], float(sims[i])) for i in order]

    def delete_embedding(self, record_type: RecordType, owner_id: str, record_id: str) -> int:
        with self._lock:
            removed = self._partition(record_type, owner_id).pop(str(record_id), None)
        return 1 if removed is not None else 0

    def count(self, record_type: RecordType, owner_id: str) -> int:
        with self._lock:
            return len(self._partition(record_type, owner_id))
