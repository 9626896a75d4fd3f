"""Job status Pydantic model."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Lifecycle states of a pipeline job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    GENERATING = "generating"
    MUXING = "muxing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"
    NOT_FOUND = "not_found"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        """Position in the forward-only state order."""
        return _STATUS_RANK[self]


# failed shares the top rank with completed: reachable from anything non-terminal
_STATUS_RANK = {
    JobStatus.NOT_FOUND: -1,
    JobStatus.QUEUED: 0,
    JobStatus.PROCESSING: 1,
    JobStatus.GENERATING: 2,
    JobStatus.MUXING: 3,
    JobStatus.UPLOADING: 4,
    JobStatus.COMPLETED: 5,
    JobStatus.FAILED: 5,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRecord(BaseModel):
    """Immutable snapshot of a job's state.

    Records are never mutated in place; the registry swaps in a new
    instance on every write so concurrent readers always see a whole record.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str = Field(min_length=1)
    status: JobStatus = JobStatus.QUEUED
    message: str = ""
    progress: Optional[float] = None
    artifacts: dict[str, str] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def not_found(cls, job_id: str) -> "JobRecord":
        """Pseudo-record returned for identifiers the registry never saw."""
        return cls(
            job_id=job_id or "unknown",
            status=JobStatus.NOT_FOUND,
            message="Job not found in memory. Check if video was generated.",
        )
