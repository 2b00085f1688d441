# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Updated: 2026-02-20
# Description: settings.py
# -----------------------------------------------------------------------------
import os


def _env(name: str, default: str = "") -> str:
    """Read env var safely and strip whitespace."""
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    v = _env(name, "")
    if v == "":
        return default
    try:
        return int(v)
    except ValueError as e:
        raise RuntimeError(f"Env var {name} must be an int, got {v!r}") from e


def _env_float(name: str, default: float) -> float:
    v = _env(name, "")
    if v == "":
        return default
    try:
        return float(v)
    except ValueError as e:
        raise RuntimeError(f"Env var {name} must be a float, got {v!r}") from e


# -----------------------------------------------------------------------------
# Embedding provider
# -----------------------------------------------------------------------------
# text-embedding-3-small -> 1536, text-embedding-3-large -> 3072
EMBED_DIMENSIONS = _env_int("CRM_EMBED_DIMENSIONS", 1536)

# Per-request bound on the provider call
EMBED_TIMEOUT_SECONDS = _env_float("CRM_EMBED_TIMEOUT_SECONDS", 30.0)

# Caller-side retry policy (the client itself never retries)
EMBED_MAX_ATTEMPTS = _env_int("CRM_EMBED_MAX_ATTEMPTS", 3)
EMBED_RETRY_DELAY_SECONDS = _env_float("CRM_EMBED_RETRY_DELAY_SECONDS", 0.8)
EMBED_RETRY_BACKOFF = _env_float("CRM_EMBED_RETRY_BACKOFF", 1.7)

# Composed text is cut to this many characters before it is sent to the provider.
# ~24k chars stays under the 8191 token window of the text-embedding-3 models.
EMBED_MAX_CHARS = _env_int("CRM_EMBED_MAX_CHARS", 24000)


# -----------------------------------------------------------------------------
# Sync / backfill
# -----------------------------------------------------------------------------
SYNC_WORKERS = _env_int("CRM_SYNC_WORKERS", 4)

BACKFILL_PAGE_SIZE = _env_int("CRM_BACKFILL_PAGE_SIZE", 10)

# Pause between backfill pages (provider rate limits)
BACKFILL_PAGE_DELAY_SECONDS = _env_float("CRM_BACKFILL_PAGE_DELAY_SECONDS", 0.0)

# Number of finished jobs kept in the in-process job ledger
JOB_LEDGER_SIZE = _env_int("CRM_JOB_LEDGER_SIZE", 1000)

# Tolerated clock difference between this app (embedding computed_at) and the
# CRM database (record updated_at). Vectors computed within this margin of a
# change are re-checked by content hash.
STALENESS_CLOCK_SKEW_SECONDS = _env_float("CRM_STALENESS_CLOCK_SKEW_SECONDS", 300.0)


# -----------------------------------------------------------------------------
# Search
# -----------------------------------------------------------------------------
SEARCH_DEFAULT_MAX_RESULTS = _env_int("CRM_SEARCH_DEFAULT_MAX_RESULTS", 10)
SEARCH_MAX_RESULTS_CAP = _env_int("CRM_SEARCH_MAX_RESULTS_CAP", 50)


# -----------------------------------------------------------------------------
# Vector storage (Chroma collection names are "<prefix>_<table>")
# -----------------------------------------------------------------------------
VECTOR_COLLECTION_PREFIX = _env("CRM_VECTOR_COLLECTION_PREFIX", "crm")


# -----------------------------------------------------------------------------
# Sanity checks (tunable)
# -----------------------------------------------------------------------------
if EMBED_MAX_ATTEMPTS < 1:
    raise RuntimeError("CRM_EMBED_MAX_ATTEMPTS must be >= 1")

if BACKFILL_PAGE_SIZE < 1:
    raise RuntimeError("CRM_BACKFILL_PAGE_SIZE must be >= 1")

if SEARCH_DEFAULT_MAX_RESULTS > SEARCH_MAX_RESULTS_CAP:
    raise RuntimeError("CRM_SEARCH_DEFAULT_MAX_RESULTS must not exceed CRM_SEARCH_MAX_RESULTS_CAP")

if not VECTOR_COLLECTION_PREFIX:
    raise RuntimeError("VECTOR_COLLECTION_PREFIX resolved to empty value")
