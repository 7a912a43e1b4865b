"""Background job queue and the worker that executes fetch jobs."""

from .models import Job, JobEvent, JobStatus, JobType, QueueStats
from .orchestrator import JobOrchestrator
from .queue import JobQueue

__all__ = [
    "Job",
    "JobEvent",
    "JobOrchestrator",
    "JobQueue",
    "JobStatus",
    "JobType",
    "QueueStats",
]
