# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-17
# Description: health.py
# -----------------------------------------------------------------------------
from datetime import datetime
from typing import Dict, List

from api.schemas.base import CamelModel


class HealthResponse(CamelModel):
    status: str
    message: str


class SmokeTestSummary(CamelModel):
    total: int
    passed: int
    failed: int


class DeepHealthResponse(CamelModel):
    # "ok" only when every check that ran passed
    status: str
    checked_at: datetime
    results: Dict[str, bool]
    skipped: List[str] = []
    summary: SmokeTestSummary
