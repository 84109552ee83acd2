"""Job persistence for scrollcap."""

from __future__ import annotations

from scrollcap.store.job_store import InMemoryJobStore, JobStore

__all__ = ["InMemoryJobStore", "JobStore"]
