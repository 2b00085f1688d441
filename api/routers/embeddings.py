# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-21
# Description: embeddings.py
# -----------------------------------------------------------------------------
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import (
    get_backfill_service,
    get_embedding_store,
    get_job_ledger,
    get_stats_service,
    get_sync_service,
)
from api.schemas.embeddings import (
    BackfillRequest,
    BackfillResponse,
    EmbeddingJobOut,
    EmbeddingJobsResponse,
    EmbeddingStatsResponse,
    RecordContextResponse,
)
from embedding.EmbeddingErrors import RecordNotFoundError
from embedding.EmbeddingJob import JobStatus
from records.CRMRecord import RecordType
from services.CRMBackfillService import CRMBackfillService
from services.CRMEmbeddingStore import CRMEmbeddingStore
from services.CRMStatsService import CRMStatsService
from services.CRMSyncService import CRMSyncService
from services.EmbeddingJobLedger import EmbeddingJobLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/embeddings", tags=["embeddings"])


@router.post("/backfill", response_model=BackfillResponse)
def post_backfill(
    req: BackfillRequest,
    svc: CRMBackfillService = Depends(get_backfill_service),
) -> BackfillResponse:
    logger.info("POST /embeddings/backfill owner='%s' page_size=%d", req.owner_id, req.page_size)
    try:
        counts = svc.backfill_all(req.owner_id, page_size=req.page_size)
    except Exception as e:
        logger.exception("Backfill failed for owner '%s': %s", req.owner_id, e)
        raise HTTPException(status_code=500, detail=f"Backfill failed: {e}")

    return BackfillResponse(**counts)


@router.get("/stats", response_model=EmbeddingStatsResponse)
def get_embedding_stats(
    owner_id: str = Query(..., alias="ownerId", min_length=1),
    svc: CRMStatsService = Depends(get_stats_service),
) -> EmbeddingStatsResponse:
    logger.info("Getting embedding stats for owner='%s'", owner_id)
    try:
        return EmbeddingStatsResponse(**svc.get_stats(owner_id=owner_id))
    except Exception as e:
        logger.exception("Stats failed for owner '%s': %s", owner_id, e)
        raise HTTPException(status_code=500, detail=f"Stats failed: {e}")


@router.get("/jobs", response_model=EmbeddingJobsResponse)
def list_embedding_jobs(
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    status: Optional[JobStatus] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    ledger: EmbeddingJobLedger = Depends(get_job_ledger),
) -> EmbeddingJobsResponse:
    jobs = ledger.list(owner_id=owner_id, status=status, limit=limit)
    return EmbeddingJobsResponse(
        owner_id=owner_id,
        total=len(jobs),
        jobs=[
            EmbeddingJobOut(
                job_id=j.job_id,
                record_type=j.record_type.value,
                record_id=j.record_id,
                owner_id=j.owner_id,
                trigger=j.trigger,
                status=j.status.value,
                error_message=j.error_message,
                discarded=j.discarded,
                created_at=j.created_at,
                updated_at=j.updated_at,
            )
            for j in jobs
        ],
    )


@router.get("/{record_type}/{record_id}/context", response_model=RecordContextResponse)
def get_record_context(
    record_type: str,
    record_id: str,
    owner_id: str = Query(..., alias="ownerId", min_length=1),
    store: CRMEmbeddingStore = Depends(get_embedding_store),
    sync: CRMSyncService = Depends(get_sync_service),
) -> RecordContextResponse:
    """Composed text, fingerprint and stored state of one record (debug view)."""
    try:
        rt = RecordType.parse(record_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        ctx = store.describe(rt, record_id, owner_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Context lookup failed for %s '%s': %s", rt.value, record_id, e)
        raise HTTPException(status_code=500, detail=f"Context lookup failed: {e}")

    status = sync.get_status(rt, record_id)
    return RecordContextResponse(
        record_type=rt.value,
        record_id=ctx.record_id,
        owner_id=ctx.owner_id,
        text=ctx.text,
        content_hash=ctx.content_hash,
        stored_hash=ctx.stored_hash,
        computed_at=ctx.computed_at,
        is_current=ctx.is_current,
        sync_state=status.state.value if status else None,
        last_error=status.last_error if status else None,
    )
