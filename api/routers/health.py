# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-20
# Description: health.py
# -----------------------------------------------------------------------------
import logging
from fastapi import APIRouter, Depends, HTTPException, Query

from api.schemas.health import HealthResponse, DeepHealthResponse
from api.dependencies import get_health_service
from services.CRMHealthService import CRMHealthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="ok", message="CRM semantic search API running")


@router.get("/deep", response_model=DeepHealthResponse)
def deep_health_check(
    svc: CRMHealthService = Depends(get_health_service),
    run_embedding_check: bool = Query(True, description="Make one real embedding call"),
) -> DeepHealthResponse:
    logger.info("GET /health/deep called (run_embedding_check=%s)", run_embedding_check)
    try:
        result = svc.deep_health(run_embedding_check=run_embedding_check)
    except Exception as e:
        logger.exception("GET /health/deep failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Health check failed: {e}")

    logger.info("GET /health/deep completed (status=%s)", result.status)
    return result
