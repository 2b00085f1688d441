# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-18
# Description: events.py
# -----------------------------------------------------------------------------
from typing import List, Literal, Optional

from pydantic import Field

from api.schemas.base import CamelModel


class RecordEvent(CamelModel):
    record_type: str
    record_id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    action: Literal["created", "updated", "deleted"]


class ActivityEvent(CamelModel):
    activity_id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    action: Literal["created", "updated", "deleted"]

    # Former parents: required for deletes (the activity row is already gone),
    # optional on updates that moved the activity to another record
    deal_id: Optional[str] = None
    contact_id: Optional[str] = None
    lead_id: Optional[str] = None


class EventAccepted(CamelModel):
    accepted: bool = True
    action: str
    targets: List[str] = []
