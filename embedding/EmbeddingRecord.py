# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: EmbeddingRecord
# -----------------------------------------------------------------------------
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from records.CRMRecord import RecordType


@dataclass
class StoredEmbedding:
    """Embedding vector of one CRM record + the fingerprint of the text it came from."""
    record_type: RecordType
    record_id: str
    owner_id: str
    vector: np.ndarray
    content_hash: str
    computed_at: datetime


@dataclass(frozen=True)
class EmbeddingFingerprint:
    """Stored hash + timestamp without the vector payload (staleness scans)."""
    record_id: str
    content_hash: str
    computed_at: datetime
