# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-17
# Description: search.py
# -----------------------------------------------------------------------------
from datetime import datetime
from typing import List, Optional

from pydantic import Field

import settings
from api.schemas.base import CamelModel


class SearchRequest(CamelModel):
    query: str = Field(..., min_length=1)
    search_type: str = "all"  # all | deals | contacts | leads | activities
    max_results: int = Field(settings.SEARCH_DEFAULT_MAX_RESULTS, ge=1, le=settings.SEARCH_MAX_RESULTS_CAP)
    owner_id: str = Field(..., min_length=1)


class SearchHit(CamelModel):
    id: str
    type: str
    title: str
    similarity: float
    created_at: Optional[datetime] = None
    company: Optional[str] = None
    stage: Optional[str] = None
    status: Optional[str] = None
    value: Optional[float] = None
    score: Optional[int] = None
    email: Optional[str] = None


class SearchResponse(CamelModel):
    results: List[SearchHit]
    total_results: int
    search_time_ms: int
    average_similarity: float
