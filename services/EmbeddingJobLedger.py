# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: EmbeddingJobLedger.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import dataclasses
import logging
from collections import OrderedDict
from threading import Lock
from typing import Dict, List, Optional

import settings
from embedding.EmbeddingJob import EmbeddingJob, JobStatus
from records.CRMRecord import RecordType, utc_now
from utility.logging_utils import get_class_logger


class EmbeddingJobLedger:
    """
    In-process record of embedding jobs, newest last. Bounded: once full,
    the oldest finished jobs are evicted first.

    Callers always get copies; jobs only change through the methods below.
    """

    def __init__(self, max_jobs: int = settings.JOB_LEDGER_SIZE, logger: logging.Logger | None = None) -> None:
        if max_jobs < 1:
            raise ValueError("max_jobs must be >= 1")
        self.max_jobs = max_jobs
        self.logger = logger or get_class_logger(self.__class__)
        self._lock = Lock()
        self._jobs: "OrderedDict[str, EmbeddingJob]" = OrderedDict()

    def create(
            self,
            record_type: RecordType,
            record_id: str,
            owner_id: str,
            trigger: str = "manual",
    ) -> EmbeddingJob:
        job = EmbeddingJob(
            record_type=record_type,
            record_id=str(record_id),
            owner_id=str(owner_id),
            trigger=trigger,
        )
        with self._lock:
            self._jobs[job.job_id] = job
            self._evict()
            return dataclasses.replace(job)

    def _evict(self) -> None:
        while len(self._jobs) > self.max_jobs:
            victim = next((jid for jid, j in self._jobs.items() if j.is_terminal), None)
            if victim is None:
                victim = next(iter(self._jobs))
            self._jobs.pop(victim)

    def _transition(self, job_id: str, status: JobStatus, **changes) -> Optional[EmbeddingJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                self.logger.warning("Job '%s' no longer in ledger (status=%s)", job_id, status.value)
                return None
            if job.is_terminal:
                raise ValueError(f"Job '{job_id}' is already {job.status.value}")

            job.status = status
            for k, v in changes.items():
                setattr(job, k, v)
            job.updated_at = utc_now()
            return dataclasses.replace(job)

    def mark_processing(self, job_id: str) -> Optional[EmbeddingJob]:
        return self._transition(job_id, JobStatus.PROCESSING)

    def complete(self, job_id: str, *, discarded: bool = False) -> Optional[EmbeddingJob]:
        return self._transition(job_id, JobStatus.COMPLETED, discarded=discarded)

    def fail(self, job_id: str, message: str) -> Optional[EmbeddingJob]:
        return self._transition(job_id, JobStatus.FAILED, error_message=message)

    def get(self, job_id: str) -> Optional[EmbeddingJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return dataclasses.replace(job) if job else None

    def list(
            self,
            *,
            owner_id: Optional[str] = None,
            status: Optional[JobStatus] = None,
            limit: int = 50,
    ) -> List[EmbeddingJob]:
        """Newest first."""
        with self._lock:
            jobs = [dataclasses.replace(j) for j in reversed(self._jobs.values())]

        if owner_id is not None:
            jobs = [j for j in jobs if j.owner_id == str(owner_id)]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return jobs[:max(limit, 0)]

    def counts(self, owner_id: Optional[str] = None) -> Dict[str, int]:
        out = {s.value: 0 for s in JobStatus}
        with self._lock:
            for j in self._jobs.values():
                if owner_id is None or j.owner_id == str(owner_id):
                    out[j.status.value] += 1
        return out
