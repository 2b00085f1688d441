# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-20
# Description: search router
# -----------------------------------------------------------------------------
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_search_service
from api.schemas.search import SearchHit, SearchRequest, SearchResponse
from embedding.EmbeddingErrors import InvalidInputError, ProviderError
from services.CRMSearchService import CRMSearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=SearchResponse)
def post_search(
    req: SearchRequest,
    svc: CRMSearchService = Depends(get_search_service),
) -> SearchResponse:
    query_text = (req.query or "").strip()
    if not query_text:
        raise HTTPException(status_code=400, detail="query must not be empty")

    try:
        out = svc.search_request(
            query=query_text,
            search_type=req.search_type,
            max_results=req.max_results,
            owner_id=req.owner_id,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        logger.exception("Search embedding failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Embedding provider failed: {e}")
    except Exception as e:
        logger.exception("Search failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Search failed: {e}")

    hits = [
        SearchHit(
            id=r.record_id,
            type=r.record_type.value,
            title=r.title,
            similarity=r.similarity,
            created_at=r.created_at,
            company=r.company,
            stage=r.stage,
            status=r.status,
            value=r.value,
            score=r.score,
            email=r.email,
        )
        for r in out.results
    ]

    return SearchResponse(
        results=hits,
        total_results=out.total_results,
        search_time_ms=out.search_time_ms,
        average_similarity=out.average_similarity,
    )
