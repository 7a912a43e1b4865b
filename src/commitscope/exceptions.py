"""Custom exceptions for CommitScope."""

from typing import Optional


class CommitScopeError(Exception):
    """Base class for CommitScope errors."""


class ConfigurationError(CommitScopeError):
    """Raised when a required setting (e.g. a credential) is missing or invalid."""


class GatewayError(CommitScopeError):
    """Raised when the hosting API answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class FullCollectionError(CommitScopeError):
    """Raised when the full-collection child process exits unsuccessfully."""

    def __init__(self, exit_code: Optional[int], stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Collection exited with code {exit_code}: {stderr.strip()}")


class WorkerAlreadyRegisteredError(CommitScopeError):
    """Raised when a second worker function is registered on a job queue."""


class JobTimeoutError(CommitScopeError):
    """Raised when a job exceeds the queue's watchdog timeout."""

    def __init__(self, job_id: str, timeout_seconds: float):
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Job {job_id} timed out after {timeout_seconds:g}s")
