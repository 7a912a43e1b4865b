"""
Pytest configuration and fixtures for CommitScope tests.

This module provides shared fixtures for the commit store, fake remote
gateways and summarizers, and test settings.
"""

from datetime import UTC, datetime, timedelta
from typing import Generator, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker

from commitscope.config import Settings
from commitscope.db.connection import create_db_engine, create_session_factory, init_db
from commitscope.models.remote import CommitDetail, CommitReference, FileChange, RateLimit

BASE_DATE = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_sha(seed: str) -> str:
    """Build a 40-character hash that starts with ``seed``."""
    return (seed + "0" * 40)[:40]


def make_reference(
    seed: str,
    repo: str = "acme/widgets",
    author: str = "Alice",
    email: str = "alice@example.com",
    login: Optional[str] = None,
    offset: int = 0,
) -> CommitReference:
    return CommitReference(
        repo=repo,
        full_sha=make_sha(seed),
        author=author,
        author_email=email,
        date=BASE_DATE - timedelta(hours=offset),
        author_login=login,
    )


def make_detail(ref: CommitReference, message: Optional[str] = None) -> CommitDetail:
    return CommitDetail(
        repo=ref.repo,
        full_sha=ref.full_sha,
        message=message or f"Change {ref.sha}\n\nLonger description",
        author=ref.author,
        author_email=ref.author_email,
        date=ref.date,
        additions=10,
        deletions=2,
        total_changes=12,
        files=[
            FileChange("src/app.py", "modified", 8, 2, 10, "@@ -1 +1 @@"),
            FileChange("README.md", "added", 2, 0, 2, None),
        ],
    )


class FakeGateway:
    """In-memory stand-in for GitHubGateway that counts remote calls."""

    def __init__(
        self,
        refs: Optional[dict[str, list[CommitReference]]] = None,
        failing_details: Optional[set[str]] = None,
        repos: Optional[list[str]] = None,
    ):
        self.refs = refs or {}
        self.failing_details = failing_details or set()
        self.repos = repos if repos is not None else list(self.refs)
        self.detail_calls: list[str] = []
        self.list_calls: list[str] = []
        self.closed = False

    async def __aenter__(self) -> "FakeGateway":
        return self

    async def __aexit__(self, *args) -> None:
        self.closed = True

    async def iter_commits(self, repo, since=None, authors=None, emails=None):
        from commitscope.github import matches_author_filter

        self.list_calls.append(repo)
        return [
            r
            for r in self.refs.get(repo, [])
            if matches_author_filter(r, authors or [], emails or [])
        ]

    async def get_commit_detail(self, repo: str, sha: str) -> CommitDetail:
        self.detail_calls.append(sha)
        if sha in self.failing_details:
            raise ConnectionError(f"detail fetch failed for {sha[:7]}")
        for ref in self.refs.get(repo, []):
            if ref.full_sha == sha:
                return make_detail(ref)
        raise LookupError(sha)

    async def list_user_repos(self) -> list[str]:
        return list(self.repos)

    async def rate_limit(self) -> RateLimit:
        return RateLimit(remaining=4999, limit=5000, reset_at=BASE_DATE)


class FakeSummarizer:
    """Summarizer returning canned text, optionally failing for some hashes."""

    def __init__(self, failing: Optional[set[str]] = None):
        self.failing = failing or set()
        self.calls: list[str] = []

    async def summarize(self, detail: CommitDetail) -> Optional[str]:
        self.calls.append(detail.sha)
        if detail.sha in self.failing:
            return None
        return f"Summary of {detail.sha}"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with a GitHub token and no pacing delays."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'commits.db'}",
        github_token="test-token",
        openai_api_key="",
        anthropic_api_key="",
        request_delay_seconds=0,
        page_delay_seconds=0,
        log_file_enabled=False,
    )


@pytest.fixture
def test_engine(tmp_path):
    """
    Create a file-backed SQLite engine.

    A file database is shared by every connection, which the commit store
    needs because it runs each call on a worker thread.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'commits.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker[Session]:
    return create_session_factory(test_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()
