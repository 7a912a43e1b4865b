"""
API schemas for CommitScope.

Pydantic models for request/response validation. Field names on the wire
are camelCase to match the job payload and result shapes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ===== Jobs =====


class JobAccepted(BaseModel):
    """Response of an enqueue endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    job_id: str = Field(serialization_alias="jobId")
    message: str


class QueueStatsResponse(BaseModel):
    """Job counts by status."""

    total: int
    pending: int
    processing: int
    completed: int
    failed: int


# ===== Commits =====


class CommitFileResponse(BaseModel):
    """A file touched by a stored commit."""

    model_config = ConfigDict(from_attributes=True)

    filename: str
    status: Optional[str] = None
    additions: int
    deletions: int
    changes: int
    patch: Optional[str] = None


class CommitResponse(BaseModel):
    """A stored commit with its files."""

    model_config = ConfigDict(from_attributes=True)

    sha: str
    full_sha: str
    repo: str
    message: Optional[str] = None
    author: Optional[str] = None
    author_email: Optional[str] = None
    date: Optional[datetime] = None
    additions: int
    deletions: int
    total_changes: int
    files_changed: int
    ai_summary: Optional[str] = None
    ai_analyzed_at: Optional[datetime] = None
    files: list[CommitFileResponse] = Field(default_factory=list)


class DeletedCommitsResponse(BaseModel):
    """Result of deleting commits by author."""

    model_config = ConfigDict(populate_by_name=True)

    deleted_count: int = Field(serialization_alias="deletedCount")
    authors: list[str]


# ===== GitHub =====


class GitHubStatusResponse(BaseModel):
    """Whether a GitHub token is configured."""

    configured: bool
    username: Optional[str] = None


class RateLimitResponse(BaseModel):
    """Core API rate limit of the configured token."""

    remaining: int
    limit: int
    reset_at: datetime
