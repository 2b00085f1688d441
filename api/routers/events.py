# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-21
# Description: events.py
# -----------------------------------------------------------------------------
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_sync_service
from api.schemas.events import ActivityEvent, EventAccepted, RecordEvent
from records.CRMRecord import RecordType
from services.CRMSyncService import CRMSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/records", response_model=EventAccepted, status_code=status.HTTP_202_ACCEPTED)
def post_record_event(
    event: RecordEvent,
    sync: CRMSyncService = Depends(get_sync_service),
) -> EventAccepted:
    try:
        rt = RecordType.parse(event.record_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Record event: %s %s '%s' (owner=%s)", event.action, rt.value, event.record_id, event.owner_id)

    # fire-and-forget: the CRUD caller never waits for the embedding
    if event.action == "created":
        sync.on_record_created(rt, event.record_id, event.owner_id)
    elif event.action == "updated":
        sync.on_record_updated(rt, event.record_id, event.owner_id)
    else:
        sync.on_record_deleted(rt, event.record_id, event.owner_id)

    return EventAccepted(action=event.action, targets=[f"{rt.value}:{event.record_id}"])


@router.post("/activities", response_model=EventAccepted, status_code=status.HTTP_202_ACCEPTED)
def post_activity_event(
    event: ActivityEvent,
    sync: CRMSyncService = Depends(get_sync_service),
) -> EventAccepted:
    logger.info("Activity event: %s '%s' (owner=%s)", event.action, event.activity_id, event.owner_id)

    if event.action == "deleted":
        parents = {
            "deal": event.deal_id,
            "contact": event.contact_id,
            "lead": event.lead_id,
        }
        targets = [f"{k}:{v}" for k, v in parents.items() if v]
        if not targets:
            raise HTTPException(
                status_code=400,
                detail="deleted activity events must carry dealId, contactId or leadId",
            )
        sync.on_activity_deleted(
            event.owner_id,
            deal_id=event.deal_id,
            contact_id=event.contact_id,
            lead_id=event.lead_id,
        )
        return EventAccepted(action=event.action, targets=targets)

    # current parents are resolved from the stored activity by the worker; ids on an
    # update name the parents the activity was moved away from
    sync.on_activity_changed(
        event.activity_id,
        event.owner_id,
        deal_id=event.deal_id,
        contact_id=event.contact_id,
        lead_id=event.lead_id,
    )
    return EventAccepted(action=event.action, targets=[f"activity:{event.activity_id}"])
