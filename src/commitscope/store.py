"""
Async persistence sink for the fetch pipeline.

Wraps the synchronous CommitRepository so that job code can await store
calls. Every call opens its own session and runs on a worker thread,
keeping the event loop free for queue polling while a job is writing.
"""

import asyncio
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from commitscope.db.connection import db_session
from commitscope.db.repositories import CommitRepository
from commitscope.models.remote import CommitDetail


class CommitStore:
    """Commit persistence used by reconciliation and full collection."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    async def exists(self, full_sha: str) -> tuple[bool, Optional[str]]:
        """Return (stored, ai_summary) for a commit hash."""
        return await asyncio.to_thread(self._exists, full_sha)

    async def upsert(self, detail: CommitDetail, ai_summary: Optional[str]) -> None:
        """Atomically insert or replace a commit and its file rows."""
        await asyncio.to_thread(self._upsert, detail, ai_summary)

    def _exists(self, full_sha: str) -> tuple[bool, Optional[str]]:
        with db_session(self.session_factory) as session:
            return CommitRepository(session).get_summary(full_sha)

    def _upsert(self, detail: CommitDetail, ai_summary: Optional[str]) -> None:
        with db_session(self.session_factory) as session:
            CommitRepository(session).upsert_with_files(detail, ai_summary)
