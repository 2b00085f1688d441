# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-09
# Description: EmbeddingJob
# -----------------------------------------------------------------------------
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from records.CRMRecord import RecordType, utc_now


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncState(str, Enum):
    """Per-record embedding state: unembedded -> embedding -> embedded, embedding -> failed -> unembedded."""
    UNEMBEDDED = "unembedded"
    EMBEDDING = "embedding"
    EMBEDDED = "embedded"
    FAILED = "failed"


@dataclass
class EmbeddingJob:
    record_type: RecordType
    record_id: str
    owner_id: str
    trigger: str = "manual"
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None

    # True when the vector was computed from content that changed before the write
    discarded: bool = False

    job_id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class RecordSyncStatus:
    record_type: RecordType
    record_id: str
    owner_id: str
    state: SyncState
    content_hash: Optional[str] = None
    last_error: Optional[str] = None
    updated_at: datetime = field(default_factory=utc_now)
