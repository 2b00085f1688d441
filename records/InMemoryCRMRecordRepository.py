# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: InMemoryCRMRecordRepository
# -----------------------------------------------------------------------------
from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional, Sequence

from embedding.EmbeddingErrors import RecordNotFoundError
from records.CRMRecord import Activity, EmbeddableRecord, RecordType, RecordVersion, utc_now
from utility.logging_utils import get_class_logger

_MIN_TS = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryCRMRecordRepository:
    """
    Process-local CRM tables for tests and local development.

    Also exposes the write side (save / delete) that the CRUD surfaces would
    normally perform against the hosted database.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_class_logger(self.__class__)
        self._lock = Lock()
        self._records: Dict[RecordType, Dict[str, EmbeddableRecord]] = {rt: {} for rt in RecordType}
        self._activities: Dict[str, Activity] = {}

    def test_connection(self) -> bool:
        return True

    # ------------------------------------------------------------------ writes
    def save_record(self, record: EmbeddableRecord) -> EmbeddableRecord:
        now = utc_now()
        stored = copy.deepcopy(record)
        if stored.created_at is None:
            stored.created_at = now
        stored.updated_at = now
        with self._lock:
            self._records[stored.record_type][stored.id] = stored
        return copy.deepcopy(stored)

    def delete_record(self, record_type: RecordType, record_id: str) -> bool:
        with self._lock:
            return self._records[record_type].pop(str(record_id), None) is not None

    def save_activity(self, activity: Activity) -> Activity:
        now = utc_now()
        stored = copy.deepcopy(activity)
        if stored.created_at is None:
            stored.created_at = now
        stored.updated_at = now
        with self._lock:
            self._activities[stored.id] = stored
        return copy.deepcopy(stored)

    def delete_activity(self, activity_id: str) -> Optional[Activity]:
        with self._lock:
            return self._activities.pop(str(activity_id), None)

    # ------------------------------------------------------------------- reads
    def get_record(self, record_type: RecordType, record_id: str, owner_id: str) -> EmbeddableRecord:
        with self._lock:
            record = self._records[record_type].get(str(record_id))
            if record is None or record.owner_id != str(owner_id):
                raise RecordNotFoundError(record_type.value, str(record_id))
            return copy.deepcopy(record)

    def get_records(
            self,
            record_type: RecordType,
            owner_id: str,
            record_ids: Sequence[str],
    ) -> Dict[str, EmbeddableRecord]:
        out: Dict[str, EmbeddableRecord] = {}
        with self._lock:
            table = self._records[record_type]
            for rid in record_ids:
                record = table.get(str(rid))
                if record is not None and record.owner_id == str(owner_id):
                    out[record.id] = copy.deepcopy(record)
        return out

    def list_activities(self, record_type: RecordType, record_id: str, owner_id: str) -> List[Activity]:
        with self._lock:
            matches = [
                copy.deepcopy(a)
                for a in self._activities.values()
                if a.owner_id == str(owner_id) and a.references(record_type, record_id)
            ]
        matches.sort(key=lambda a: (a.created_at or _MIN_TS), reverse=True)
        return matches

    def get_activity(self, activity_id: str, owner_id: str) -> Activity:
        with self._lock:
            activity = self._activities.get(str(activity_id))
            if activity is None or activity.owner_id != str(owner_id):
                raise RecordNotFoundError("activity", str(activity_id))
            return copy.deepcopy(activity)

    def list_record_versions(self, record_type: RecordType, owner_id: str) -> List[RecordVersion]:
        with self._lock:
            records = [r for r in self._records[record_type].values() if r.owner_id == str(owner_id)]
            versions: List[RecordVersion] = []
            for r in records:
                changed = [r.updated_at, r.created_at]
                for a in self._activities.values():
                    if a.owner_id == r.owner_id and a.references(record_type, r.id):
                        changed.extend([a.updated_at, a.created_at])
                stamps = [ts for ts in changed if ts is not None]
                versions.append(
                    RecordVersion(
                        record_id=r.id,
                        created_at=r.created_at,
                        content_changed_at=max(stamps) if stamps else None,
                    )
                )
        versions.sort(key=lambda v: (v.created_at or _MIN_TS, v.record_id))
        return versions
