# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-16
# Description: CRMHealthService.py
# -----------------------------------------------------------------------------
from dataclasses import dataclass

from api.schemas.health import DeepHealthResponse, SmokeTestSummary
from health.SmokeTestRunner import SmokeTestRunner
from records.CRMRecord import utc_now


@dataclass
class CRMHealthService:
    """
    Wraps SmokeTestRunner, which checks the record database,
    vector store and embedding provider.
    Returns DeepHealthResponse for API layer
    """

    test_runner: SmokeTestRunner

    def deep_health(self, run_embedding_check: bool = True) -> DeepHealthResponse:
        results = self.test_runner.run_all(run_embedding_check=run_embedding_check)

        total = len(results)
        passed = sum(1 for ok in results.values() if ok)
        failed = total - passed

        return DeepHealthResponse(
            status="ok" if failed == 0 else "error",
            checked_at=utc_now(),
            results=results,
            skipped=[] if run_embedding_check else ["embedding_provider"],
            summary=SmokeTestSummary(total=total, passed=passed, failed=failed),
        )
