# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: EmbeddingErrors
# -----------------------------------------------------------------------------
from typing import Optional


class CRMEmbeddingError(Exception):
    """Base class for embedding / search pipeline errors."""


class InvalidInputError(CRMEmbeddingError):
    """Empty or missing input text. A caller bug, never retried."""


class ProviderError(CRMEmbeddingError):
    """
    Embedding provider failure (network, auth, rate limit, timeout, bad payload).
    Retryable by the caller with bounded backoff.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        return f"[{self.status}] {base}" if self.status is not None else base


class RecordNotFoundError(CRMEmbeddingError):
    """Referenced record or activity vanished between trigger and processing."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class PersistenceError(CRMEmbeddingError):
    """Vector store read/write failure."""
