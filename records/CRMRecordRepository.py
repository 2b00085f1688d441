# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: CRMRecordRepository
# -----------------------------------------------------------------------------

from typing import Dict, List, Protocol, Sequence, runtime_checkable

from records.CRMRecord import Activity, EmbeddableRecord, RecordType, RecordVersion


@runtime_checkable
class CRMRecordRepository(Protocol):
    """Read access to the CRM database. Every call is scoped to one owner."""

    def test_connection(self) -> bool:
        ...

    def get_record(self, record_type: RecordType, record_id: str, owner_id: str) -> EmbeddableRecord:
        """Raises RecordNotFoundError when the record does not exist for this owner."""
        ...

    def get_records(
            self,
            record_type: RecordType,
            owner_id: str,
            record_ids: Sequence[str],
    ) -> Dict[str, EmbeddableRecord]:
        """Missing ids are left out of the result."""
        ...

    def list_activities(self, record_type: RecordType, record_id: str, owner_id: str) -> List[Activity]:
        """Activities referencing the record, newest first."""
        ...

    def get_activity(self, activity_id: str, owner_id: str) -> Activity:
        ...

    def list_record_versions(self, record_type: RecordType, owner_id: str) -> List[RecordVersion]:
        """All records of a type for the owner, ordered by created_at then id."""
        ...
