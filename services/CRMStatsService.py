# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-15
# Description: CRMStatsService.py
# -----------------------------------------------------------------------------

import logging
from typing import Any, Dict, List

from records.CRMRecord import RecordType
from records.CRMRecordRepository import CRMRecordRepository
from services.CRMEmbeddingStore import CRMEmbeddingStore
from services.EmbeddingJobLedger import EmbeddingJobLedger
from utility.logging_utils import get_class_logger


class CRMStatsService:
    """
    Stats service for the /embeddings/stats endpoint.

    Responsibilities:
      - count the owner's records per type
      - count stored and missing/stale embeddings per type
      - summarise the job ledger for the owner
    """

    def __init__(
        self,
        *,
        repository: CRMRecordRepository,
        store: CRMEmbeddingStore,
        ledger: EmbeddingJobLedger,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.ledger = ledger
        self.logger = logger or get_class_logger(self.__class__)

    def get_stats(self, *, owner_id: str) -> Dict[str, Any]:
        self.logger.info("Embedding stats for owner='%s'", owner_id)

        types: List[Dict[str, Any]] = []
        for rt in RecordType:
            total = len(self.repository.list_record_versions(rt, owner_id))
            embedded = self.store.count_embedded(rt, owner_id)
            missing = self.store.count_missing(rt, owner_id)

            types.append(
                {
                    "record_type": rt.table,
                    "total_records": total,
                    "embedded": embedded,
                    "missing": missing,
                    "coverage": round((total - missing) / total, 4) if total else 1.0,
                }
            )

        return {
            "owner_id": owner_id,
            "record_types": types,
            "total_records": sum(t["total_records"] for t in types),
            "total_missing": sum(t["missing"] for t in types),
            "jobs": self.ledger.counts(owner_id),
        }
