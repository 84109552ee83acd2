"""Job registry behind a small store interface.

The orchestrator owns one store and is its only writer; API handlers read
through the orchestrator. The in-memory backend keeps every job for the
life of the process (no eviction).

Usage::

    from scrollcap.store.job_store import InMemoryJobStore

    store = InMemoryJobStore()
    store.put(job)
    job = store.get(job.id)
"""

from __future__ import annotations

import logging

from scrollcap.models.job import Job

logger = logging.getLogger(__name__)


class JobStore:
    """Abstract-ish job store interface."""

    def get(self, job_id: str) -> Job | None:
        """Return the job or ``None`` if unknown."""
        raise NotImplementedError

    def put(self, job: Job) -> None:
        """Create or replace the entry for ``job.id``."""
        raise NotImplementedError

    def __len__(self) -> int:
        """Number of jobs held."""
        raise NotImplementedError


class InMemoryJobStore(JobStore):
    """Process-lifetime dict keyed by job id."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def put(self, job: Job) -> None:
        self._jobs[job.id] = job

    def __len__(self) -> int:
        return len(self._jobs)
