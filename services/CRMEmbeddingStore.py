# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-10
# Description: CRMEmbeddingStore.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import List, Optional, Tuple
from weakref import WeakValueDictionary

import numpy as np

import settings
from composer.CRMTextComposer import CRMTextComposer
from embedding.EmbeddingErrors import RecordNotFoundError
from embedding.EmbeddingRecord import StoredEmbedding
from records.CRMRecord import RecordType, utc_now
from records.CRMRecordRepository import CRMRecordRepository
from utility.logging_utils import get_class_logger
from vectorstore.CRMVectorStore import CRMVectorStore


@dataclass
class RecordContext:
    """What the embedding of one record is (or would be) computed from."""
    record_type: RecordType
    record_id: str
    owner_id: str
    text: str
    content_hash: str
    stored_hash: Optional[str] = None
    computed_at: Optional[datetime] = None

    @property
    def is_current(self) -> bool:
        return self.stored_hash is not None and self.stored_hash == self.content_hash


class CRMEmbeddingStore:
    """
    Logical embedding store: the vector index plus the knowledge needed to tell
    whether a stored vector still matches its record.

    Staleness is decided by re-deriving the composed text from the repository
    and comparing its fingerprint with the stored content hash. Record and
    activity timestamps are only a prefilter for that comparison.
    """

    def __init__(
            self,
            *,
            vector_store: CRMVectorStore,
            repository: CRMRecordRepository,
            composer: CRMTextComposer | None = None,
            clock_skew_seconds: float = settings.STALENESS_CLOCK_SKEW_SECONDS,
            logger: logging.Logger | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.repository = repository
        self.composer = composer or CRMTextComposer()
        self.clock_skew = timedelta(seconds=max(0.0, clock_skew_seconds))
        self.logger = logger or get_class_logger(self.__class__)

        self._locks_guard = Lock()
        # entries live only while some caller holds the lock object
        self._record_locks: WeakValueDictionary = WeakValueDictionary()

    def _record_lock(self, record_type: RecordType, record_id: str) -> Lock:
        key = (record_type, str(record_id))
        with self._locks_guard:
            lock = self._record_locks.get(key)
            if lock is None:
                lock = Lock()
                self._record_locks[key] = lock
            return lock

    def current_fingerprint(self, record_type: RecordType, record_id: str, owner_id: str) -> str:
        """Fingerprint of the record's content right now. Raises RecordNotFoundError."""
        return self.describe(record_type, record_id, owner_id).content_hash

    def describe(self, record_type: RecordType, record_id: str, owner_id: str) -> RecordContext:
        record = self.repository.get_record(record_type, record_id, owner_id)
        activities = self.repository.list_activities(record_type, record_id, owner_id)
        text, content_hash = self.composer.compose_with_fingerprint(record, activities)

        stored = self.vector_store.get_embedding(record_type, owner_id, record_id)
        return RecordContext(
            record_type=record_type,
            record_id=str(record_id),
            owner_id=str(owner_id),
            text=text,
            content_hash=content_hash,
            stored_hash=stored.content_hash if stored else None,
            computed_at=stored.computed_at if stored else None,
        )

    def _write(
            self,
            record_type: RecordType,
            record_id: str,
            vector: np.ndarray,
            source_text_hash: str,
            computed_at: Optional[datetime],
            owner_id: str,
    ) -> None:
        self.vector_store.upsert_embedding(
            StoredEmbedding(
                record_type=record_type,
                record_id=str(record_id),
                owner_id=str(owner_id),
                vector=np.asarray(vector, dtype=np.float32),
                content_hash=source_text_hash,
                computed_at=computed_at or utc_now(),
            )
        )

    def upsert(
            self,
            record_type: RecordType,
            record_id: str,
            vector: np.ndarray,
            source_text_hash: str,
            computed_at: Optional[datetime] = None,
            *,
            owner_id: str,
    ) -> None:
        """Unconditional, idempotent overwrite of the record's vector."""
        with self._record_lock(record_type, record_id):
            self._write(record_type, record_id, vector, source_text_hash, computed_at, owner_id)

    def upsert_if_current(
            self,
            record_type: RecordType,
            record_id: str,
            vector: np.ndarray,
            source_text_hash: str,
            computed_at: Optional[datetime] = None,
            *,
            owner_id: str,
    ) -> bool:
        """
        Write only if `source_text_hash` still matches the record's current
        content. Returns False when the vector was computed from superseded
        content. Raises RecordNotFoundError if the record is gone.
        """
        with self._record_lock(record_type, record_id):
            current = self.current_fingerprint(record_type, record_id, owner_id)
            if current != source_text_hash:
                self.logger.info(
                    "Discarding stale embedding for %s '%s' (computed from %s, current %s)",
                    record_type.value,
                    record_id,
                    source_text_hash[:12],
                    current[:12],
                )
                return False

            self._write(record_type, record_id, vector, source_text_hash, computed_at, owner_id)
            return True

    def get(self, record_type: RecordType, record_id: str, *, owner_id: str) -> Optional[StoredEmbedding]:
        return self.vector_store.get_embedding(record_type, owner_id, record_id)

    def delete(self, record_type: RecordType, record_id: str, *, owner_id: str) -> bool:
        with self._record_lock(record_type, record_id):
            deleted = self.vector_store.delete_embedding(record_type, owner_id, record_id)
        return deleted > 0

    def _missing_ids(self, record_type: RecordType, owner_id: str) -> List[str]:
        versions = self.repository.list_record_versions(record_type, owner_id)
        fingerprints = self.vector_store.list_fingerprints(record_type, owner_id)

        missing: List[str] = []
        for v in versions:
            fp = fingerprints.get(v.record_id)
            if fp is None:
                missing.append(v.record_id)
                continue

            changed_at = v.content_changed_at
            # computed_at is app time, changed_at is database time: only a vector newer
            # by more than the allowed skew is trusted without a hash check
            if changed_at is None or fp.computed_at is None or fp.computed_at > changed_at + self.clock_skew:
                continue

            # Possibly touched since the vector was computed; stale only if the text differs
            try:
                current = self.current_fingerprint(record_type, v.record_id, owner_id)
            except RecordNotFoundError:
                continue
            if current != fp.content_hash:
                missing.append(v.record_id)

        return missing

    def list_missing(
            self,
            record_type: RecordType,
            owner_id: str,
            page_size: int,
            offset: int = 0,
    ) -> List[str]:
        """
        Ids of records with no vector or a stale one, ordered by record
        creation time then id, paged by (offset, page_size).
        """
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        missing = self._missing_ids(record_type, owner_id)
        page = missing[max(offset, 0): max(offset, 0) + page_size]

        self.logger.debug(
            "list_missing: type=%s owner=%s offset=%d -> %d of %d",
            record_type.value,
            owner_id,
            offset,
            len(page),
            len(missing),
        )
        return page

    def count_missing(self, record_type: RecordType, owner_id: str) -> int:
        return len(self._missing_ids(record_type, owner_id))

    def count_embedded(self, record_type: RecordType, owner_id: str) -> int:
        return self.vector_store.count(record_type, owner_id)

    def query_similar(
            self,
            record_type: RecordType,
            owner_id: str,
            vector: np.ndarray,
            n_results: int,
    ) -> List[Tuple[str, float]]:
        return self.vector_store.query_similar(record_type, owner_id, vector, n_results)
