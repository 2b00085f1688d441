# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-18
# Description: embeddings.py
# -----------------------------------------------------------------------------
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

import settings
from api.schemas.base import CamelModel


class BackfillRequest(CamelModel):
    owner_id: str = Field(..., min_length=1)
    page_size: int = Field(settings.BACKFILL_PAGE_SIZE, ge=1, le=100)


class BackfillResponse(CamelModel):
    deals: int
    contacts: int
    leads: int
    errors: int


class RecordTypeStats(CamelModel):
    record_type: str
    total_records: int
    embedded: int
    missing: int
    coverage: float


class EmbeddingStatsResponse(CamelModel):
    owner_id: str
    record_types: List[RecordTypeStats]
    total_records: int
    total_missing: int
    jobs: Dict[str, int]


class EmbeddingJobOut(CamelModel):
    job_id: str
    record_type: str
    record_id: str
    owner_id: str
    trigger: str
    status: str
    error_message: Optional[str] = None
    discarded: bool = False
    created_at: datetime
    updated_at: datetime


class EmbeddingJobsResponse(CamelModel):
    owner_id: Optional[str] = None
    total: int
    jobs: List[EmbeddingJobOut]


class RecordContextResponse(CamelModel):
    record_type: str
    record_id: str
    owner_id: str
    text: str
    content_hash: str
    stored_hash: Optional[str] = None
    computed_at: Optional[datetime] = None
    is_current: bool
    sync_state: Optional[str] = None
    last_error: Optional[str] = None
