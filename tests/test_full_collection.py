"""Tests for full-collection runners and output parsing."""

import os
import sys

import pytest

from commitscope.collector import CollectionFinished, CollectionProgress
from commitscope.exceptions import FullCollectionError
from commitscope.jobs import JobOrchestrator, JobQueue, JobStatus, JobType
from commitscope.jobs.full_collection import (
    InProcessFullCollection,
    SubprocessFullCollection,
    parse_progress,
    parse_records_written,
)


class TestOutputParsing:
    """Tests for scraping collection output."""

    def test_parse_progress_marker(self):
        progress = parse_progress("[3/12] acme/widgets\n")

        assert progress == CollectionProgress(current=3, total=12)
        assert progress.percent == 25

    def test_parse_progress_ignores_other_ratios(self):
        """Only bracketed markers count, not ratios inside log lines."""
        assert parse_progress("API rate limit: 4999/5000 (resets soon)") is None
        assert parse_progress("  abc1234 - Fix (2 files, +10/-3)") is None
        assert parse_progress("no numbers here") is None

    def test_parse_progress_only_at_line_start(self):
        """A commit subject that looks like a marker is not progress."""
        assert parse_progress("  abc1234 - [2/5] refactor parser\n") is None
        assert parse_progress("INFO commitscope.reconcile: [2/5] refactor") is None

    def test_parse_progress_zero_total(self):
        assert parse_progress("[0/0] nothing") is None

    def test_parse_records_written(self):
        output = "[1/2] acme/a\n[2/2] acme/b\nTotal 42 commits written\n"

        assert parse_records_written(output) == 42
        assert parse_records_written("crashed early") == 0


def _script(body: str) -> list[str]:
    return [sys.executable, "-c", body]


@pytest.mark.slow
class TestSubprocessFullCollection:
    """Tests running a real child process."""

    @pytest.mark.asyncio
    async def test_relays_progress_and_result(self):
        runner = SubprocessFullCollection(
            command=_script(
                "print('[1/2] acme/a'); print('[2/2] acme/b'); "
                "print('Total 5 commits written')"
            )
        )

        events = [event async for event in runner.run()]

        assert [e.percent for e in events if isinstance(e, CollectionProgress)] == [50, 100]
        finished = events[-1]
        assert isinstance(finished, CollectionFinished)
        assert finished.records_written == 5
        assert "[2/2] acme/b" in finished.raw_output

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_with_stderr(self):
        runner = SubprocessFullCollection(
            command=_script(
                "import sys; print('[1/3] acme/a'); "
                "sys.stderr.write('GitHub token not configured\\n'); sys.exit(2)"
            )
        )

        with pytest.raises(FullCollectionError) as exc_info:
            async for _ in runner.run():
                pass

        assert exc_info.value.exit_code == 2
        assert "GitHub token not configured" in str(exc_info.value)

    def test_default_command(self):
        runner = SubprocessFullCollection()

        assert runner.command[1:] == ["-m", "commitscope", "collect", "--all-history"]
        assert "--all-history" not in SubprocessFullCollection(all_history=False).command


class TestInProcessFullCollection:
    """Tests for the in-process runner."""

    @pytest.mark.asyncio
    async def test_delegates_to_collector(self):
        class StubCollector:
            async def run(self):
                yield CollectionProgress(current=1, total=1, repo="acme/a")
                yield CollectionFinished(records_written=2)

        runner = InProcessFullCollection(lambda: StubCollector())

        events = [event async for event in runner.run()]

        assert events == [
            CollectionProgress(current=1, total=1, repo="acme/a"),
            CollectionFinished(records_written=2),
        ]


# Writes its pid, reports one repository, then hangs
HANGING_CHILD = """
import os, sys, time
with open(sys.argv[1], "w") as f:
    f.write(str(os.getpid()))
print("[1/3] acme/a", flush=True)
time.sleep(60)
"""


def _assert_gone(pid: int) -> None:
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


@pytest.mark.slow
class TestChildCleanup:
    """The child never outlives the job that started it."""

    @pytest.mark.asyncio
    async def test_closing_runner_kills_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"
        runner = SubprocessFullCollection(
            command=[sys.executable, "-c", HANGING_CHILD, str(pid_file)]
        )

        events = runner.run()
        first = await events.__anext__()
        await events.aclose()

        assert first == CollectionProgress(current=1, total=3)
        _assert_gone(int(pid_file.read_text()))

    @pytest.mark.asyncio
    async def test_timed_out_job_kills_child(self, tmp_path, test_settings, session_factory):
        pid_file = tmp_path / "child.pid"
        queue = JobQueue(job_timeout=2)
        JobOrchestrator(
            queue,
            config=test_settings,
            session_factory=session_factory,
            runner_factory=lambda payload: SubprocessFullCollection(
                command=[sys.executable, "-c", HANGING_CHILD, str(pid_file)]
            ),
        ).register()

        job_id = queue.enqueue(JobType.FETCH_ALL, {})
        await queue.wait_idle()

        job = queue.get_job(job_id)
        assert job.status == JobStatus.FAILED
        assert "timed out" in job.error
        _assert_gone(int(pid_file.read_text()))
