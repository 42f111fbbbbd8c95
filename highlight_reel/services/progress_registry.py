"""In-memory progress registry for render jobs, with TTL eviction.

Holds only the latest snapshot per job. Instances are per-process, so a
restart loses all progress; finished jobs stay pollable for ``ttl_seconds``.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace

from highlight_reel.exceptions import DuplicateJobError, InvalidJobTransitionError, JobNotFoundError
from highlight_reel.schemas.highlight_reel import ReelOptions, RenderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobRecord:
    job_id: str
    event_id: str
    status: RenderStatus
    progress: int
    message: str
    options: ReelOptions
    artifact_path: str | None = None
    updated_at: float = field(default_factory=time.monotonic)


class ProgressRegistry:
    """Thread-safe job-id -> JobRecord map.

    Writes must move a job forward: status never goes back in the
    preparing -> downloading -> processing -> encoding -> complete/error order,
    and a lower progress value is raised to the last stored one. Terminal
    records are frozen.
    """

    def __init__(self, ttl_seconds: float = 3600.0) -> None:
        self._records: dict[str, JobRecord] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds

    def register(self, job_id: str, event_id: str, options: ReelOptions, message: str = "Preparing video...") -> JobRecord:
        with self._lock:
            self._evict_expired_locked()
            if job_id in self._records:
                raise DuplicateJobError(job_id)
            record = JobRecord(
                job_id=job_id,
                event_id=event_id,
                status=RenderStatus.PREPARING,
                progress=0,
                message=message,
                options=options,
            )
            self._records[job_id] = record
            return record

    def set(
        self,
        job_id: str,
        status: RenderStatus,
        progress: int,
        message: str,
        artifact_path: str | None = None,
    ) -> JobRecord:
        """Overwrite the snapshot for ``job_id``."""
        with self._lock:
            current = self._records.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            if current.status.is_terminal:
                raise InvalidJobTransitionError(
                    f"Job {job_id} is already {current.status.value}, cannot move to {status.value}"
                )
            if status.rank < current.status.rank:
                raise InvalidJobTransitionError(
                    f"Job {job_id} cannot go back from {current.status.value} to {status.value}"
                )
            if status == RenderStatus.COMPLETE and current.status != RenderStatus.ENCODING:
                raise InvalidJobTransitionError(
                    f"Job {job_id} cannot complete from {current.status.value}"
                )

            progress = max(current.progress, min(100, max(0, int(progress))))
            updated = replace(
                current,
                status=status,
                progress=progress,
                message=message,
                artifact_path=artifact_path if artifact_path is not None else current.artifact_path,
                updated_at=time.monotonic(),
            )
            self._records[job_id] = updated
            return updated

    def fail(self, job_id: str, message: str) -> bool:
        """Move a running job to ``error``. Returns False if it already finished or is unknown."""
        with self._lock:
            current = self._records.get(job_id)
            if current is None or current.status.is_terminal:
                return False
            self._records[job_id] = replace(
                current,
                status=RenderStatus.ERROR,
                message=message,
                updated_at=time.monotonic(),
            )
            return True

    def get(self, job_id: str) -> JobRecord | None:
        """Current snapshot, or None if unknown or expired."""
        with self._lock:
            record = self._records.get(job_id)
            if record is None:
                return None
            if self._is_expired(record, time.monotonic()):
                del self._records[job_id]
                return None
            return record

    def evict_expired(self) -> int:
        """Drop finished jobs older than the TTL. Returns the number removed."""
        with self._lock:
            return self._evict_expired_locked()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _is_expired(self, record: JobRecord, now: float) -> bool:
        # Running jobs are never evicted, however long they take.
        return record.status.is_terminal and now - record.updated_at > self._ttl

    def _evict_expired_locked(self) -> int:
        """Remove expired entries (called under lock)."""
        now = time.monotonic()
        expired = [k for k, v in self._records.items() if self._is_expired(v, now)]
        for k in expired:
            del self._records[k]
        if expired:
            logger.info(f"[REGISTRY] Evicted {len(expired)} finished job(s)")
        return len(expired)
