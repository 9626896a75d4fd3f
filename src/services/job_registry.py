"""Job registry: the single source of truth for progress polling."""

import logging
from functools import lru_cache
from typing import Optional, Protocol

from src.models.job import JobRecord, JobStatus, utcnow
from src.utils.errors import JobStateError

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    """Backing store for job records."""

    def load(self, job_id: str) -> Optional[JobRecord]:
        ...

    def save(self, record: JobRecord) -> None:
        ...


class InMemoryJobStore:
    """Process-local store. Records do not survive a restart."""

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}

    def load(self, job_id: str) -> Optional[JobRecord]:
        return self._records.get(job_id)

    def save(self, record: JobRecord) -> None:
        # Single reference assignment; readers see the old or the new record
        self._records[record.job_id] = record

    def __len__(self) -> int:
        return len(self._records)


class JobRegistry:
    """Create, advance and look up jobs.

    Each job is written only by its own pipeline task, so no locking is
    needed. Stored records are frozen and replaced wholesale on every write.
    """

    def __init__(self, store: Optional[JobStore] = None) -> None:
        self.store: JobStore = store if store is not None else InMemoryJobStore()

    def create(self, job_id: str, message: str = "Job queued") -> JobRecord:
        """
        Insert a new job in the ``queued`` state.

        Raises:
            JobStateError: If the identifier is already registered
        """
        if self.store.load(job_id) is not None:
            raise JobStateError(f"Job {job_id} already exists")

        record = JobRecord(job_id=job_id, status=JobStatus.QUEUED, message=message)
        self.store.save(record)
        logger.info(f"Created job {job_id}")
        return record

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        message: str,
        artifacts: Optional[dict[str, str]] = None,
    ) -> JobRecord:
        """
        Replace status and message, merging any new artifact locations.

        Args:
            job_id: Job to update
            status: New status; must not move backwards
            message: Human-readable description of the latest event
            artifacts: Locations to add; existing keys not given are kept

        Returns:
            The newly stored record

        Raises:
            JobStateError: On unknown jobs, writes after a terminal state,
                or backwards transitions
        """
        current = self.store.load(job_id)
        if current is None:
            raise JobStateError(f"Cannot update unknown job {job_id}")
        if status == JobStatus.NOT_FOUND:
            raise JobStateError("not_found is a lookup-only state")
        if current.status.is_terminal:
            raise JobStateError(
                f"Job {job_id} is already {current.status.value}; cannot move to {status.value}"
            )
        if status.rank < current.status.rank:
            raise JobStateError(
                f"Job {job_id} cannot move back from {current.status.value} to {status.value}"
            )

        merged = dict(current.artifacts)
        if artifacts:
            merged.update(artifacts)

        record = JobRecord(
            job_id=job_id,
            status=status,
            message=message,
            progress=None,
            artifacts=merged,
            updated_at=max(utcnow(), current.updated_at),
        )
        self.store.save(record)
        logger.info(f"Updating job {job_id}: {status.value} - {message}")
        return record

    def get(self, job_id: str) -> JobRecord:
        """Return the current record, or the ``not_found`` pseudo-record."""
        record = self.store.load(job_id)
        if record is None:
            logger.debug(f"Job {job_id} not found in registry")
            return JobRecord.not_found(job_id)
        return record

    def exists(self, job_id: str) -> bool:
        return self.store.load(job_id) is not None


@lru_cache
def get_job_registry() -> JobRegistry:
    """Get the process-wide job registry."""
    return JobRegistry()
