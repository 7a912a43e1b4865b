"""
Remote commit data models.

Intermediate dataclasses for commits as returned by the hosting API,
before they are stored in the database.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CommitReference:
    """Lightweight commit identity from a listing call."""

    repo: str  # owner/name
    full_sha: str
    author: str
    author_email: str
    date: datetime
    author_login: Optional[str] = None

    @property
    def sha(self) -> str:
        return self.full_sha[:7]


@dataclass
class FileChange:
    """Per-file diff stats of a commit."""

    filename: str
    status: str  # 'added', 'modified', 'removed', 'renamed'
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None


@dataclass
class CommitDetail:
    """Full commit including per-file changes."""

    repo: str
    full_sha: str
    message: str
    author: str
    author_email: str
    date: datetime
    additions: int = 0
    deletions: int = 0
    total_changes: int = 0
    files: list[FileChange] = field(default_factory=list)

    @property
    def sha(self) -> str:
        return self.full_sha[:7]

    @property
    def files_changed(self) -> int:
        return len(self.files)

    @property
    def first_line(self) -> str:
        return self.message.split("\n", 1)[0]


@dataclass
class RateLimit:
    """Rate limit status of the hosting API."""

    remaining: int
    limit: int
    reset_at: datetime
