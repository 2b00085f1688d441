# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-07
# Description: CRMVectorStore
# -----------------------------------------------------------------------------

from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

import numpy as np

from embedding.EmbeddingRecord import EmbeddingFingerprint, StoredEmbedding
from records.CRMRecord import RecordType


@runtime_checkable
class CRMVectorStore(Protocol):
    """
    Physical vector index: one entry per CRM record, partitioned by record type
    and filtered by owner on every call.
    """

    def test_connection(self) -> bool:
        ...

    def upsert_embedding(self, embedding: StoredEmbedding) -> None:
        ...

    def get_embedding(
            self,
            record_type: RecordType,
            owner_id: str,
            record_id: str,
    ) -> Optional[StoredEmbedding]:
        ...

    def list_fingerprints(self, record_type: RecordType, owner_id: str) -> Dict[str, EmbeddingFingerprint]:
        ...

    def query_similar(
            self,
            record_type: RecordType,
            owner_id: str,
            vector: np.ndarray,
            n_results: int,
    ) -> List[Tuple[str, float]]:
        """(record_id, cosine similarity clamped to [0, 1]) best first."""
        ...

    def delete_embedding(self, record_type: RecordType, owner_id: str, record_id: str) -> int:
        ...

    def count(self, record_type: RecordType, owner_id: str) -> int:
        ...
