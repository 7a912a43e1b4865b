"""
Commit repository.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from commitscope.db.connection import transaction
from commitscope.db.repositories.base import BaseRepository
from commitscope.models.db import Commit, CommitFile
from commitscope.models.remote import CommitDetail

logger = logging.getLogger(__name__)


class CommitRepository(BaseRepository[Commit]):
    """Repository for Commit model and its file rows."""

    def __init__(self, session: Session):
        super().__init__(Commit, session)

    def get_by_sha(self, sha: str) -> Optional[Commit]:
        """
        Get a commit by full or short hash.

        Args:
            sha: Full 40-character hash or abbreviated hash

        Returns:
            Commit instance or None
        """
        commit = self.get(sha)
        if commit is not None:
            return commit
        return self.session.query(Commit).filter(Commit.sha == sha).first()

    def get_summary(self, full_sha: str) -> tuple[bool, Optional[str]]:
        """
        Look up whether a commit is stored and its summary.

        Returns:
            (exists, ai_summary) tuple
        """
        row = (
            self.session.query(Commit.ai_summary)
            .filter(Commit.full_sha == full_sha)
            .first()
        )
        if row is None:
            return False, None
        return True, row[0]

    def list_files(self, full_sha: str) -> List[CommitFile]:
        """Get file rows of a commit ordered by filename."""
        return (
            self.session.query(CommitFile)
            .filter(CommitFile.commit_sha == full_sha)
            .order_by(CommitFile.filename)
            .all()
        )

    def upsert_with_files(
        self, detail: CommitDetail, ai_summary: Optional[str] = None
    ) -> Commit:
        """
        Insert or replace a commit and all of its file rows atomically.

        The commit row is keyed by full hash and each file row by
        (full hash, filename). Either everything is written or, on any
        error, nothing is.

        Args:
            detail: Fetched commit detail
            ai_summary: Summary text; stamps ai_analyzed_at when provided

        Returns:
            The persisted Commit
        """
        with transaction(self.session):
            commit = self.session.merge(
                Commit(
                    full_sha=detail.full_sha,
                    sha=detail.sha,
                    repo=detail.repo,
                    message=detail.message,
                    author=detail.author,
                    author_email=detail.author_email,
                    date=detail.date,
                    additions=detail.additions,
                    deletions=detail.deletions,
                    total_changes=detail.total_changes,
                    files_changed=detail.files_changed,
                    ai_summary=ai_summary,
                    ai_analyzed_at=datetime.now(timezone.utc) if ai_summary else None,
                )
            )
            self.session.flush()
            self._upsert_files(detail)

        logger.debug(
            f"Stored commit {detail.sha} ({detail.repo}) with {detail.files_changed} files"
        )
        return commit

    def _upsert_files(self, detail: CommitDetail) -> None:
        for change in detail.files:
            self.session.merge(
                CommitFile(
                    commit_sha=detail.full_sha,
                    filename=change.filename,
                    status=change.status,
                    additions=change.additions,
                    deletions=change.deletions,
                    changes=change.changes,
                    patch=change.patch,
                )
            )
        self.session.flush()

    def delete_by_authors(self, authors: List[str]) -> int:
        """
        Delete all commits (and their file rows) by the given author names.

        Args:
            authors: Exact author display names

        Returns:
            Number of commits deleted
        """
        if not authors:
            return 0

        commits = self.session.query(Commit).filter(Commit.author.in_(authors)).all()
        for commit in commits:
            self.delete(commit)

        if commits:
            logger.info(f"Deleted {len(commits)} commits by blacklisted authors")
        return len(commits)
