# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-12
# Description: CRMSyncService.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import dataclasses
import itertools
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

import settings
from composer.CRMTextComposer import CRMTextComposer, truncate_for_embedding
from embedding.EmbeddingErrors import ProviderError, RecordNotFoundError
from embedding.EmbeddingJob import EmbeddingJob, RecordSyncStatus, SyncState
from records.CRMRecord import RecordType, utc_now
from records.CRMRecordRepository import CRMRecordRepository
from services.CRMEmbeddingStore import CRMEmbeddingStore
from services.EmbeddingJobLedger import EmbeddingJobLedger
from utility.logging_utils import get_class_logger

_Key = Tuple[RecordType, str]


def _parent_refs(deal_id: Optional[str], contact_id: Optional[str], lead_id: Optional[str]) -> List[_Key]:
    refs = ((RecordType.DEAL, deal_id), (RecordType.CONTACT, contact_id), (RecordType.LEAD, lead_id))
    return [(rt, str(ref)) for rt, ref in refs if ref]


class CRMSyncService:
    """
    Keeps record embeddings in step with CRM changes.

    Pipeline per record:
      - fetch record + activities
      - compose text + fingerprint
      - embed (bounded retries on ProviderError)
      - write only if the fingerprint is still current

    Triggers are fire-and-forget: they schedule work on a thread pool and
    return a Future. Failures are logged, recorded on the job and in the
    record's sync state; they never reach the caller.
    """

    def __init__(
        self,
        *,
        repository: CRMRecordRepository,
        embedder: Any,
        store: CRMEmbeddingStore,
        ledger: EmbeddingJobLedger | None = None,
        composer: CRMTextComposer | None = None,
        max_workers: int = settings.SYNC_WORKERS,
        max_attempts: int = settings.EMBED_MAX_ATTEMPTS,
        retry_delay: float = settings.EMBED_RETRY_DELAY_SECONDS,
        retry_backoff: float = settings.EMBED_RETRY_BACKOFF,
        max_chars: int = settings.EMBED_MAX_CHARS,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repository = repository
        self.embedder = embedder
        self.store = store
        self.ledger = ledger or EmbeddingJobLedger()
        self.composer = composer or CRMTextComposer()
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self.max_chars = max_chars
        self.sleep = sleep
        self.logger = logger or get_class_logger(self.__class__)

        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="crm-sync")

        self._state_lock = Lock()
        self._status: Dict[_Key, RecordSyncStatus] = {}
        # Latest generation started per record; only that run may move the state.
        # Generations come from one counter so a pruned entry can never be reused.
        self._generation: Dict[_Key, int] = {}
        self._generations = itertools.count(1)

    # ------------------------------------------------------------------ triggers
    def on_record_created(self, record_type: Union[str, RecordType], record_id: str, owner_id: str) -> Future:
        rt = RecordType.parse(record_type)
        return self._submit(self.process_record, rt, str(record_id), str(owner_id), "record_created")

    def on_record_updated(self, record_type: Union[str, RecordType], record_id: str, owner_id: str) -> Future:
        rt = RecordType.parse(record_type)
        return self._submit(self.process_record, rt, str(record_id), str(owner_id), "record_updated")

    def on_record_deleted(self, record_type: Union[str, RecordType], record_id: str, owner_id: str) -> Future:
        rt = RecordType.parse(record_type)
        return self._submit(self._delete_record, rt, str(record_id), str(owner_id))

    def on_activity_changed(
        self,
        activity_id: str,
        owner_id: str,
        *,
        deal_id: Optional[str] = None,
        contact_id: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> Future:
        """
        Activity created or updated: re-embed every parent it references now,
        plus the former parents the caller names (an edit may have moved the
        activity away from them).
        """
        former = _parent_refs(deal_id, contact_id, lead_id)
        return self._submit(self._process_activity, str(activity_id), str(owner_id), former)

    def on_activity_deleted(
        self,
        owner_id: str,
        *,
        deal_id: Optional[str] = None,
        contact_id: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> Future:
        """The activity row is gone, so the caller passes its former parents."""
        parents = _parent_refs(deal_id, contact_id, lead_id)
        return self._submit(self._process_parents, parents, str(owner_id), "activity_deleted")

    def _submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        return self.executor.submit(self._guarded, fn, *args)

    def _guarded(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception as e:
            self.logger.exception("Background sync task '%s' failed: %s", fn.__name__, e)
            return None

    def _process_activity(
        self,
        activity_id: str,
        owner_id: str,
        former: List[_Key],
    ) -> List[EmbeddingJob]:
        try:
            activity = self.repository.get_activity(activity_id, owner_id)
            current = [(rt, str(rid)) for rt, rid in activity.parent_refs().items()]
        except RecordNotFoundError:
            self.logger.info("Activity '%s' vanished before sync", activity_id)
            current = []

        parents = list(dict.fromkeys(current + former))
        if not parents:
            self.logger.info("Activity '%s' has no parent record; nothing to re-embed", activity_id)
        return self._process_parents(parents, owner_id, "activity_changed")

    def _process_parents(self, parents: List[_Key], owner_id: str, trigger: str) -> List[EmbeddingJob]:
        return [self.process_record(rt, rid, owner_id, trigger) for rt, rid in parents]

    def _delete_record(self, record_type: RecordType, record_id: str, owner_id: str) -> bool:
        deleted = self.store.delete(record_type, record_id, owner_id=owner_id)
        with self._state_lock:
            self._status.pop((record_type, record_id), None)
            self._generation.pop((record_type, record_id), None)
        self.logger.info(
            "Record %s '%s' deleted (owner=%s); vector removed=%s",
            record_type.value,
            record_id,
            owner_id,
            deleted,
        )
        return deleted

    # ------------------------------------------------------------------- state
    def _begin(self, key: _Key, owner_id: str) -> int:
        with self._state_lock:
            gen = next(self._generations)
            self._generation[key] = gen
            prev = self._status.get(key)
            self._status[key] = RecordSyncStatus(
                record_type=key[0],
                record_id=key[1],
                owner_id=owner_id,
                state=SyncState.EMBEDDING,
                content_hash=prev.content_hash if prev else None,
            )
            return gen

    def _finish(
        self,
        key: _Key,
        gen: int,
        state: Optional[SyncState],
        *,
        content_hash: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        """state=None forgets the record (it no longer exists)."""
        with self._state_lock:
            if self._generation.get(key) != gen:
                return  # a newer run owns the state
            if state is None:
                self._status.pop(key, None)
                self._generation.pop(key, None)
                return

            current = self._status.get(key)
            if current is None:
                return
            current.state = state
            current.updated_at = utc_now()
            if content_hash is not None:
                current.content_hash = content_hash
            if state == SyncState.EMBEDDED:
                current.last_error = None
            if error is not None:
                current.last_error = error

            if state == SyncState.FAILED:
                # failed is transient: the record is eligible again on the next trigger or backfill
                current.state = SyncState.UNEMBEDDED

    def get_status(self, record_type: Union[str, RecordType], record_id: str) -> Optional[RecordSyncStatus]:
        rt = RecordType.parse(record_type)
        with self._state_lock:
            status = self._status.get((rt, str(record_id)))
            return dataclasses.replace(status) if status else None

    # -------------------------------------------------------------- processing
    def _embed_with_retry(self, text: str, key: _Key) -> np.ndarray:
        delay = self.retry_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.embedder.embed(text)
            except ProviderError as e:
                if attempt >= self.max_attempts:
                    raise
                self.logger.warning(
                    "Embedding attempt %d/%d for %s '%s' failed: %s; retrying in %.2fs",
                    attempt,
                    self.max_attempts,
                    key[0].value,
                    key[1],
                    e,
                    delay,
                )
                self.sleep(delay)
                delay *= self.retry_backoff

        raise RuntimeError("unreachable")

    def process_record(
        self,
        record_type: Union[str, RecordType],
        record_id: str,
        owner_id: str,
        trigger: str = "manual",
    ) -> EmbeddingJob:
        """
        Runs the full pipeline for one record synchronously and returns the
        finished job. Never raises.
        """
        rt = RecordType.parse(record_type)
        record_id, owner_id = str(record_id), str(owner_id)
        key: _Key = (rt, record_id)

        job = self.ledger.create(rt, record_id, owner_id, trigger=trigger)
        gen = self._begin(key, owner_id)
        self.ledger.mark_processing(job.job_id)

        content_hash: Optional[str] = None
        try:
            computed_at = utc_now()

            record = self.repository.get_record(rt, record_id, owner_id)
            activities = self.repository.list_activities(rt, record_id, owner_id)
            text, content_hash = self.composer.compose_with_fingerprint(record, activities)

            payload = truncate_for_embedding(text, self.max_chars)
            if len(payload) < len(text):
                self.logger.warning(
                    "Composed text for %s '%s' truncated from %d to %d chars",
                    rt.value,
                    record_id,
                    len(text),
                    len(payload),
                )

            vector = self._embed_with_retry(payload, key)

            written = self.store.upsert_if_current(
                rt,
                record_id,
                vector,
                content_hash,
                computed_at,
                owner_id=owner_id,
            )

        except RecordNotFoundError:
            self.logger.info("%s '%s' no longer exists (owner=%s); skipping", rt.value, record_id, owner_id)
            self._finish(key, gen, None)
            return self.ledger.complete(job.job_id) or job

        except Exception as e:
            self.logger.error(
                "Embedding failed for %s '%s' (owner=%s, trigger=%s): %s",
                rt.value,
                record_id,
                owner_id,
                trigger,
                e,
                exc_info=True,
            )
            self._finish(key, gen, SyncState.FAILED, error=str(e))
            return self.ledger.fail(job.job_id, str(e)) or job

        if written:
            self._finish(key, gen, SyncState.EMBEDDED, content_hash=content_hash)
            self.logger.info("Embedded %s '%s' (owner=%s, trigger=%s)", rt.value, record_id, owner_id, trigger)
        else:
            # Content moved on while we were embedding; the run that saw the newer content writes it
            self._finish(key, gen, SyncState.UNEMBEDDED)

        return self.ledger.complete(job.job_id, discarded=not written) or job

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
