# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-19
# Description: AppContainer.py
# -----------------------------------------------------------------------------
from composer.CRMTextComposer import CRMTextComposer
from config.Config import Config
from embedding.CRMEmbedder import CRMEmbedder
from health.SmokeTestRunner import SmokeTestRunner
from records.SqlCRMRecordRepository import SqlCRMRecordRepository
from services.CRMBackfillService import CRMBackfillService
from services.CRMEmbeddingStore import CRMEmbeddingStore
from services.CRMHealthService import CRMHealthService
from services.CRMSearchService import CRMSearchService
from services.CRMStatsService import CRMStatsService
from services.CRMSyncService import CRMSyncService
from services.EmbeddingJobLedger import EmbeddingJobLedger
from utility.logging_utils import get_class_logger
from vectorstore.ChromaCRMVectorStore import ChromaCRMVectorStore


class AppContainer:
    """
    Owns heavy object instantiation and application wiring.
    One instance per process, handed out via FastAPI dependencies.
    """

    def __init__(self, cfg: Config | None = None) -> None:
        self.logger = get_class_logger(self.__class__)

        # Configuration
        self.cfg = cfg or Config.from_env()
        self.logger.info("Building AppContainer: %s", self.cfg.summary())

        # Core infrastructure
        self.repository = SqlCRMRecordRepository(cfg=self.cfg)
        self.embedder = CRMEmbedder(cfg=self.cfg)
        self.vector_store = ChromaCRMVectorStore(cfg=self.cfg)
        self.composer = CRMTextComposer()

        # Logical embedding store (vector index + staleness knowledge)
        self.embedding_store = CRMEmbeddingStore(
            vector_store=self.vector_store,
            repository=self.repository,
            composer=self.composer,
        )

        self.job_ledger = EmbeddingJobLedger()

        # Trigger handling + per-record pipeline
        self.sync_service = CRMSyncService(
            repository=self.repository,
            embedder=self.embedder,
            store=self.embedding_store,
            ledger=self.job_ledger,
            composer=self.composer,
        )

        self.backfill_service = CRMBackfillService(
            store=self.embedding_store,
            sync_service=self.sync_service,
        )

        self.search_service = CRMSearchService(
            embedder=self.embedder,
            store=self.embedding_store,
            repository=self.repository,
        )

        self.stats_service = CRMStatsService(
            repository=self.repository,
            store=self.embedding_store,
            ledger=self.job_ledger,
        )

        # Smoke tests / health
        self.health_service = CRMHealthService(
            test_runner=SmokeTestRunner(
                repository=self.repository,
                vector_store=self.vector_store,
                embedder=self.embedder,
            )
        )

    def shutdown(self) -> None:
        self.sync_service.shutdown(wait=True)
