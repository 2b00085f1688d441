# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-19
# Description: dependencies.py
# -----------------------------------------------------------------------------
from functools import lru_cache

from api.AppContainer import AppContainer
from services.CRMBackfillService import CRMBackfillService
from services.CRMEmbeddingStore import CRMEmbeddingStore
from services.CRMHealthService import CRMHealthService
from services.CRMSearchService import CRMSearchService
from services.CRMStatsService import CRMStatsService
from services.CRMSyncService import CRMSyncService
from services.EmbeddingJobLedger import EmbeddingJobLedger


@lru_cache
def get_container() -> AppContainer:
    # built on first request, so importing the app needs no credentials
    return AppContainer()


def shutdown_container() -> None:
    if get_container.cache_info().currsize:
        get_container().shutdown()
        get_container.cache_clear()


def get_health_service() -> CRMHealthService:
    return get_container().health_service


def get_search_service() -> CRMSearchService:
    return get_container().search_service


def get_sync_service() -> CRMSyncService:
    return get_container().sync_service


def get_backfill_service() -> CRMBackfillService:
    return get_container().backfill_service


def get_stats_service() -> CRMStatsService:
    return get_container().stats_service


def get_embedding_store() -> CRMEmbeddingStore:
    return get_container().embedding_store


def get_job_ledger() -> EmbeddingJobLedger:
    return get_container().job_ledger
