"""
In-memory job records for the background queue.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobType(str, enum.Enum):
    """Kinds of background work."""

    FETCH_COMMITS = "fetch-commits"  # Batch fetch of selected repositories
    FETCH_ALL = "fetch-all"  # Full-history collection run


class JobStatus(str, enum.Enum):
    """Lifecycle of a job: pending -> processing -> completed | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobEvent(str, enum.Enum):
    """Lifecycle notifications published to queue listeners."""

    ADDED = "job-added"
    STARTED = "job-started"
    PROGRESS = "job-progress"
    COMPLETED = "job-completed"
    FAILED = "job-failed"


@dataclass
class Job:
    """A unit of background work owned by a JobQueue."""

    id: str
    type: JobType
    payload: dict[str, Any]
    status: JobStatus = JobStatus.PENDING
    progress: Optional[int] = None
    result: Any = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for polling clients."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
        }
        if self.progress is not None:
            data["progress"] = self.progress
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        if self.started_at is not None:
            data["startedAt"] = self.started_at.isoformat()
        if self.completed_at is not None:
            data["completedAt"] = self.completed_at.isoformat()
        return data


@dataclass
class QueueStats:
    """Statistics about the job queue."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0

    @property
    def active(self) -> int:
        """Jobs that are pending or processing."""
        return self.pending + self.processing

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "processing": self.processing,
            "completed": self.completed,
            "failed": self.failed,
        }
