# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-13
# Description: CRMBackfillService.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Union

import settings
from embedding.EmbeddingJob import JobStatus
from records.CRMRecord import RecordType
from services.CRMEmbeddingStore import CRMEmbeddingStore
from services.CRMSyncService import CRMSyncService
from utility.logging_utils import get_class_logger


@dataclass
class BackfillResult:
    record_type: RecordType
    processed: int = 0
    errors: int = 0
    skipped: int = 0  # embedded from content that changed before the write


class CRMBackfillService:
    """
    Generates embeddings for every record that has none or a stale one.
    Runs the same per-record pipeline as the sync triggers, page by page.
    """

    def __init__(
        self,
        *,
        store: CRMEmbeddingStore,
        sync_service: CRMSyncService,
        page_delay: float = settings.BACKFILL_PAGE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.sync_service = sync_service
        self.page_delay = page_delay
        self.sleep = sleep
        self.logger = logger or get_class_logger(self.__class__)

    def backfill(
        self,
        record_type: Union[str, RecordType],
        owner_id: str,
        page_size: int = settings.BACKFILL_PAGE_SIZE,
    ) -> BackfillResult:
        rt = RecordType.parse(record_type)
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        result = BackfillResult(record_type=rt)
        self.logger.info("Backfill %s for owner '%s' (page_size=%d) (start)", rt.table, owner_id, page_size)

        # Embedded ids drop out of the missing set; only ids that stay behind push the offset
        offset = 0
        pages = 0
        while True:
            page = self.store.list_missing(rt, owner_id, page_size, offset)
            pages += 1

            for record_id in page:
                job = self.sync_service.process_record(rt, record_id, owner_id, trigger="backfill")
                if job.status == JobStatus.FAILED:
                    result.errors += 1
                    offset += 1
                elif job.discarded:
                    result.skipped += 1
                    offset += 1
                else:
                    result.processed += 1

            if len(page) < page_size:
                break

            if self.page_delay > 0:
                self.sleep(self.page_delay)

        self.logger.info(
            "Backfill %s for owner '%s' (done): processed=%d errors=%d skipped=%d pages=%d",
            rt.table,
            owner_id,
            result.processed,
            result.errors,
            result.skipped,
            pages,
        )
        return result

    def backfill_all(
        self,
        owner_id: str,
        page_size: int = settings.BACKFILL_PAGE_SIZE,
    ) -> Dict[str, int]:
        """Deals, contacts and leads in turn -> {deals, contacts, leads, errors}."""
        results: List[BackfillResult] = [self.backfill(rt, owner_id, page_size) for rt in RecordType]

        out: Dict[str, int] = {r.record_type.table: r.processed for r in results}
        out["errors"] = sum(r.errors for r in results)
        return out
