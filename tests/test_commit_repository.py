"""Tests for CommitRepository and the async CommitStore."""

from unittest.mock import patch

import pytest
from conftest import make_detail, make_reference
from sqlalchemy.orm import Session

from commitscope.db.repositories import CommitRepository
from commitscope.models.db import Commit, CommitFile
from commitscope.models.remote import FileChange
from commitscope.store import CommitStore


class TestUpsertWithFiles:
    """Tests for the atomic commit + files upsert."""

    def test_insert_commit_and_files(self, db_session: Session):
        """Inserting stores one commit row and one row per file."""
        detail = make_detail(make_reference("abc1234"))
        repo = CommitRepository(db_session)

        commit = repo.upsert_with_files(detail)

        assert commit.sha == "abc1234"
        assert commit.files_changed == 2
        assert commit.ai_summary is None
        assert commit.ai_analyzed_at is None
        assert [f.filename for f in repo.list_files(detail.full_sha)] == [
            "README.md",
            "src/app.py",
        ]

    def test_summary_stamps_analysis_time(self, db_session: Session):
        """A summary marks the commit fully processed."""
        detail = make_detail(make_reference("abc1234"))
        repo = CommitRepository(db_session)

        commit = repo.upsert_with_files(detail, ai_summary="Adds the widget API")

        assert commit.ai_summary == "Adds the widget API"
        assert commit.ai_analyzed_at is not None
        assert commit.is_fully_processed
        assert repo.get_summary(detail.full_sha) == (True, "Adds the widget API")

    def test_upsert_replaces_in_place(self, db_session: Session):
        """Upserting the same hash twice updates rather than duplicating."""
        detail = make_detail(make_reference("abc1234"))
        repo = CommitRepository(db_session)
        repo.upsert_with_files(detail)

        detail.files[0] = FileChange("src/app.py", "modified", 20, 5, 25, None)
        repo.upsert_with_files(detail, ai_summary="Refactors the app")

        assert db_session.query(Commit).count() == 1
        assert db_session.query(CommitFile).count() == 2
        updated = db_session.get(CommitFile, (detail.full_sha, "src/app.py"))
        assert updated.additions == 20

    def test_failure_between_writes_leaves_nothing(self, db_session: Session):
        """An error while writing file rows rolls back the commit row too."""
        detail = make_detail(make_reference("abc1234"))
        repo = CommitRepository(db_session)

        with patch.object(
            CommitRepository, "_upsert_files", side_effect=RuntimeError("write failed")
        ):
            with pytest.raises(RuntimeError, match="write failed"):
                repo.upsert_with_files(detail, ai_summary="never stored")

        assert db_session.query(Commit).count() == 0
        assert db_session.query(CommitFile).count() == 0
        assert repo.get_summary(detail.full_sha) == (False, None)

    def test_failed_update_keeps_previous_version(self, db_session: Session):
        """A failed re-upsert leaves the earlier row unchanged."""
        detail = make_detail(make_reference("abc1234"))
        repo = CommitRepository(db_session)
        repo.upsert_with_files(detail)

        with patch.object(
            CommitRepository, "_upsert_files", side_effect=RuntimeError("write failed")
        ):
            with pytest.raises(RuntimeError):
                repo.upsert_with_files(detail, ai_summary="never stored")

        assert repo.get_summary(detail.full_sha) == (True, None)
        assert len(repo.list_files(detail.full_sha)) == 2


class TestQueries:
    """Tests for lookups and deletes."""

    def test_get_summary_unknown(self, db_session: Session):
        assert CommitRepository(db_session).get_summary("f" * 40) == (False, None)

    def test_get_by_sha_full_and_short(self, db_session: Session):
        detail = make_detail(make_reference("abc1234"))
        repo = CommitRepository(db_session)
        repo.upsert_with_files(detail)

        assert repo.get_by_sha(detail.full_sha).sha == "abc1234"
        assert repo.get_by_sha("abc1234").full_sha == detail.full_sha
        assert repo.get_by_sha("fff9999") is None

    def test_delete_by_authors_cascades_to_files(self, db_session: Session):
        """Deleting a commit removes its file rows."""
        repo = CommitRepository(db_session)
        repo.upsert_with_files(make_detail(make_reference("aaa1111", author="Alice")))
        repo.upsert_with_files(make_detail(make_reference("bbb2222", author="Mallory")))

        deleted = repo.delete_by_authors(["Mallory"])
        db_session.commit()

        assert deleted == 1
        assert repo.count() == 1
        assert db_session.query(CommitFile).count() == 2
        assert repo.delete_by_authors([]) == 0


class TestCommitStore:
    """Tests for the thread-offloaded async store."""

    @pytest.mark.asyncio
    async def test_exists_and_upsert(self, session_factory):
        store = CommitStore(session_factory)
        detail = make_detail(make_reference("abc1234"))

        assert await store.exists(detail.full_sha) == (False, None)
        await store.upsert(detail, None)
        assert await store.exists(detail.full_sha) == (True, None)
        await store.upsert(detail, "Summary")
        assert await store.exists(detail.full_sha) == (True, "Summary")
