"""
Full-collection runners for fetch-all jobs.

The job only needs a stream of progress events followed by a final result.
``SubprocessFullCollection`` gets them by running ``commitscope collect`` as
a child process and scraping its output; ``InProcessFullCollection`` runs
the collector directly.
"""

import asyncio
import logging
import re
import sys
from typing import AsyncIterator, Callable, Optional, Protocol, Sequence

from commitscope.collector import (
    CollectionEvent,
    CollectionFinished,
    CollectionProgress,
    FullHistoryCollector,
)
from commitscope.exceptions import FullCollectionError

logger = logging.getLogger(__name__)

PROGRESS_PATTERN = re.compile(r"^\[(\d+)/(\d+)\] ")
TOTAL_PATTERN = re.compile(r"Total (\d+) commits written")


def parse_progress(line: str) -> Optional[CollectionProgress]:
    """Extract the ``[N/M] owner/name`` marker that opens a progress line."""
    match = PROGRESS_PATTERN.match(line)
    if not match:
        return None
    current, total = int(match.group(1)), int(match.group(2))
    if total == 0:
        return None
    return CollectionProgress(current=current, total=total)


def parse_records_written(output: str) -> int:
    match = TOTAL_PATTERN.search(output)
    return int(match.group(1)) if match else 0


class FullCollectionRunner(Protocol):
    def run(self) -> AsyncIterator[CollectionEvent]: ...


class SubprocessFullCollection:
    """Run the collection CLI as a child process."""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        all_history: bool = True,
        cwd: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
    ):
        if command is None:
            command = [sys.executable, "-m", "commitscope", "collect"]
            if all_history:
                command.append("--all-history")
        self.command = list(command)
        self.cwd = cwd
        self.env = env

    async def run(self) -> AsyncIterator[CollectionEvent]:
        """
        Start the child and relay its progress.

        The child is killed if the caller stops iterating early, for example
        when the job is cancelled or times out.

        Raises:
            FullCollectionError: If the child exits with a non-zero code
        """
        logger.info(f"Starting full collection: {' '.join(self.command)}")
        process = await asyncio.create_subprocess_exec(
            *self.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
            env=self.env,
        )
        if process.stdout is None or process.stderr is None:
            raise FullCollectionError(None, "Child process has no output pipes")

        # Drain stderr concurrently so a full pipe cannot block the child
        stderr_task = asyncio.create_task(process.stderr.read())
        lines: list[str] = []

        try:
            async for raw in process.stdout:
                line = raw.decode("utf-8", errors="replace")
                lines.append(line)
                logger.debug(f"[collect] {line.rstrip()}")
                progress = parse_progress(line)
                if progress is not None:
                    yield progress

            stderr = (await stderr_task).decode("utf-8", errors="replace")
            exit_code = await process.wait()
        finally:
            if process.returncode is None:
                logger.warning(f"Stopping full collection child {process.pid}")
                process.kill()
                await process.wait()
            if not stderr_task.done():
                stderr_task.cancel()

        output = "".join(lines)

        if exit_code != 0:
            logger.error(f"Full collection failed with code {exit_code}")
            raise FullCollectionError(exit_code, stderr)

        logger.info("Full collection completed successfully")
        yield CollectionFinished(
            records_written=parse_records_written(output), raw_output=output
        )


class InProcessFullCollection:
    """Run the collector inside the current event loop."""

    def __init__(self, collector_factory: Callable[[], FullHistoryCollector]):
        self.collector_factory = collector_factory

    async def run(self) -> AsyncIterator[CollectionEvent]:
        async for event in self.collector_factory().run():
            yield event
