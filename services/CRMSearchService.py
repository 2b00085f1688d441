# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-14
# Description: CRMSearchService
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import settings
from embedding.EmbeddingErrors import InvalidInputError
from records.CRMRecord import EmbeddableRecord, RecordType
from records.CRMRecordRepository import CRMRecordRepository
from services.CRMEmbeddingStore import CRMEmbeddingStore
from utility.logging_utils import get_class_logger

_ALL_TYPES = (RecordType.DEAL, RecordType.CONTACT, RecordType.LEAD)

# Activities are folded into their parents' text, so an activity search is a search over the parents
SEARCH_TYPES: Dict[str, Tuple[RecordType, ...]] = {
    "all": _ALL_TYPES,
    "activities": _ALL_TYPES,
    "deals": (RecordType.DEAL,),
    "contacts": (RecordType.CONTACT,),
    "leads": (RecordType.LEAD,),
}

_MIN_TS = datetime.min.replace(tzinfo=timezone.utc)
_TIE_TOLERANCE = 1e-9


@dataclass
class SearchResult:
    record_type: RecordType
    record_id: str
    title: str
    similarity: float
    created_at: Optional[datetime] = None
    company: Optional[str] = None
    stage: Optional[str] = None
    status: Optional[str] = None
    value: Optional[float] = None
    score: Optional[int] = None
    email: Optional[str] = None

    @classmethod
    def from_record(cls, record: EmbeddableRecord, similarity: float) -> "SearchResult":
        return cls(
            record_type=record.record_type,
            record_id=record.id,
            title=record.display_name,
            similarity=similarity,
            created_at=record.created_at,
            company=getattr(record, "company", None),
            stage=getattr(record, "stage", None),
            status=getattr(record, "status", None),
            value=getattr(record, "value", None),
            score=getattr(record, "score", None),
            email=getattr(record, "email", None),
        )


@dataclass
class SearchResponse:
    results: List[SearchResult]
    total_results: int
    search_time_ms: int
    average_similarity: float


class CRMSearchService:
    """
    Semantic search over the owner's embedded deals / contacts / leads.

    Always top-N, no similarity threshold. Equal scores keep the requested
    type order, then newer records first.
    """

    def __init__(
        self,
        *,
        embedder: Any,
        store: CRMEmbeddingStore,
        repository: CRMRecordRepository,
        max_results_cap: int = settings.SEARCH_MAX_RESULTS_CAP,
        logger: logging.Logger | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.repository = repository
        self.max_results_cap = max_results_cap
        self.logger = logger or get_class_logger(self.__class__)

    def _top_hits(self, rt: RecordType, owner_id: str, vector: Any, max_results: int) -> List[Tuple[str, float]]:
        """
        Top `max_results` hits of one type, widened to take in every hit that
        ties with the last one so the merge key decides which of them survive.
        """
        n_results = max_results + 1
        while True:
            hits = self.store.query_similar(rt, owner_id, vector, n_results)
            if len(hits) < n_results:
                return hits
            edge = hits[max_results - 1][1]
            if not math.isclose(hits[-1][1], edge, rel_tol=0.0, abs_tol=_TIE_TOLERANCE):
                return hits
            n_results *= 2

    def search(
        self,
        query: str,
        record_types: Sequence[Union[str, RecordType]],
        max_results: int,
        owner_id: str,
    ) -> List[SearchResult]:
        if not isinstance(max_results, int) or max_results < 1 or max_results > self.max_results_cap:
            raise InvalidInputError(f"max_results must be between 1 and {self.max_results_cap}")
        if not owner_id:
            raise InvalidInputError("owner_id is required")

        types: List[RecordType] = []
        for t in record_types:
            try:
                rt = RecordType.parse(t)
            except ValueError as e:
                raise InvalidInputError(str(e)) from e
            if rt not in types:
                types.append(rt)

        # InvalidInputError / ProviderError go straight to the caller
        vector = self.embedder.embed(query)

        candidates: List[Tuple[Tuple[float, int, float], SearchResult]] = []
        for type_index, rt in enumerate(types):
            hits = self._top_hits(rt, owner_id, vector, max_results)
            if not hits:
                continue

            records = self.repository.get_records(rt, owner_id, [rid for rid, _ in hits])
            for record_id, similarity in hits:
                record = records.get(record_id)
                if record is None:
                    self.logger.debug("Dropping %s '%s': record no longer exists", rt.value, record_id)
                    continue
                created = (record.created_at or _MIN_TS).timestamp()
                candidates.append(
                    ((-similarity, type_index, -created), SearchResult.from_record(record, similarity))
                )

        candidates.sort(key=lambda c: c[0])
        results = [r for _, r in candidates[:max_results]]

        self.logger.info(
            "Search '%s' over %s for owner '%s': %d results",
            query[:80],
            [t.table for t in types],
            owner_id,
            len(results),
        )
        return results

    def search_request(
        self,
        query: str,
        search_type: str = "all",
        max_results: int = settings.SEARCH_DEFAULT_MAX_RESULTS,
        owner_id: str = "",
    ) -> SearchResponse:
        types = SEARCH_TYPES.get((search_type or "").strip().lower())
        if types is None:
            raise InvalidInputError(f"Unknown searchType {search_type!r}; expected one of {sorted(SEARCH_TYPES)}")

        start = time.time()
        results = self.search(query, types, max_results, owner_id)
        elapsed_ms = int((time.time() - start) * 1000)

        avg = sum(r.similarity for r in results) / len(results) if results else 0.0
        return SearchResponse(
            results=results,
            total_results=len(results),
            search_time_ms=elapsed_ms,
            average_similarity=avg,
        )
