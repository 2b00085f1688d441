# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-16
# Description: SmokeTestRunner
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from utility.logging_utils import get_class_logger


class SmokeTestRunner:
    """
    Runs the smoke checks of the service's collaborators and reports a
    consolidated result.

    Checks included:
      - record_database  (CRM database reachable)
      - vector_store     (Chroma collections reachable)
      - embedding_provider (one real embedding call; optional, it costs a request)
    """

    def __init__(
            self,
            *,
            repository: Any,
            vector_store: Any,
            embedder: Any,
            logger: Optional[logging.Logger] = None,
    ):
        self.repository = repository
        self.vector_store = vector_store
        self.embedder = embedder
        self.logger = logger or get_class_logger(self.__class__)

    # -------------------------------------------------------------------------
    def run_all(self, run_embedding_check: bool = True) -> Dict[str, bool]:
        """
        Run all configured smoke checks.

        :param run_embedding_check: If False, the provider check is skipped.
        :return: Dict mapping check names to True/False.
        """
        self.logger.info("Starting smoke checks (run_embedding_check=%s)", run_embedding_check)

        checks: List[Tuple[str, Callable[[], bool]]] = [
            ("record_database", self.repository.test_connection),
            ("vector_store", self.vector_store.test_connection),
        ]
        if run_embedding_check:
            checks.append(("embedding_provider", self.embedder.test_connection))

        results: Dict[str, bool] = {}
        for name, check in checks:
            try:
                ok = bool(check())
            except Exception as e:
                self.logger.exception("%s check raised an exception: %s", name, e)
                ok = False
            results[name] = ok
            self._log_result(name, ok)

        self._log_summary(results)
        return results

    # -------------------------------------------------------------------------
    def _log_result(self, name: str, ok: bool) -> None:
        if ok:
            self.logger.info("%s: PASS", name)
        else:
            self.logger.error("%s: FAIL", name)

    def _log_summary(self, results: Dict[str, bool]) -> None:
        total = len(results)
        passed = sum(1 for v in results.values() if v)
        self.logger.info("Smoke check summary: %d total, %d passed, %d failed", total, passed, total - passed)
