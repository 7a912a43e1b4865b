"""
SQLAlchemy database models for CommitScope.

These models represent the database schema for storing fetched commits
and their per-file changes.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Commit(Base):
    """A commit whose detail has been fetched, optionally with an AI summary."""

    __tablename__ = "commits"

    full_sha: Mapped[str] = mapped_column(String(40), primary_key=True)
    sha: Mapped[str] = mapped_column(String(12), nullable=False, index=True)
    repo: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    author_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deletions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_changes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    files_changed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Non-null summary marks the commit as fully processed
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_analyzed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    files: Mapped[list["CommitFile"]] = relationship(
        back_populates="commit",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_commits_repo", "repo"),
        Index("idx_commits_author", "author"),
        Index("idx_commits_date", "date"),
    )

    @property
    def is_fully_processed(self) -> bool:
        return self.ai_summary is not None

    def __repr__(self) -> str:
        return f"<Commit(sha={self.sha!r}, repo={self.repo!r}, author={self.author!r})>"


class CommitFile(Base):
    """One file touched by a commit."""

    __tablename__ = "commit_files"

    commit_sha: Mapped[str] = mapped_column(
        String(40),
        ForeignKey("commits.full_sha", ondelete="CASCADE"),
        primary_key=True,
    )
    filename: Mapped[str] = mapped_column(String(1024), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # added/modified/removed/renamed
    additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deletions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    changes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patch: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    commit: Mapped["Commit"] = relationship(back_populates="files")

    __table_args__ = (Index("idx_commit_files_sha", "commit_sha"),)

    def __repr__(self) -> str:
        return f"<CommitFile(commit_sha={self.commit_sha[:7]!r}, filename={self.filename!r})>"
