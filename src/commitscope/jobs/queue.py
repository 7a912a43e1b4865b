"""
Single-worker background job queue.

Jobs are kept in memory and executed strictly one at a time, in the order
they were enqueued, by a single registered worker coroutine. Enqueueing is
non-blocking; a dispatch attempt runs after every enqueue and after every
job finishes. Terminal jobs are swept after a retention window.
"""

import asyncio
import logging
import random
import string
import time
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from commitscope.exceptions import JobTimeoutError, WorkerAlreadyRegisteredError

from .models import Job, JobEvent, JobStatus, JobType, QueueStats, utcnow

logger = logging.getLogger(__name__)

Worker = Callable[[Job], Awaitable[Any]]
Listener = Callable[[JobEvent, Job], None]

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_job_id(job_type: JobType) -> str:
    """Build a job id from type, epoch milliseconds and a random suffix."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{job_type.value}_{int(time.time() * 1000)}_{suffix}"


class JobQueue:
    """
    In-process FIFO job queue with one worker.

    A single ``_processing`` flag guards dispatch, so two jobs never overlap
    even though ``enqueue`` returns immediately. Must be used from the event
    loop thread.

    Usage:
        queue = JobQueue()
        queue.register_worker(orchestrator)
        await queue.start()
        job_id = queue.enqueue(JobType.FETCH_COMMITS, {"repositories": ["acme/widgets"]})
        ...
        await queue.shutdown()
    """

    def __init__(
        self,
        retention: timedelta = timedelta(hours=1),
        sweep_interval: timedelta = timedelta(minutes=10),
        job_timeout: Optional[float] = None,
        type_timeouts: Optional[dict[JobType, float]] = None,
    ):
        """
        Initialize the queue.

        Args:
            retention: How long terminal jobs are kept after completion
            sweep_interval: Time between retention sweeps
            job_timeout: Seconds before a running job is failed (None = no limit)
            type_timeouts: Per-type overrides of job_timeout (0 = no limit)
        """
        self.retention = retention
        self.sweep_interval = sweep_interval
        self.job_timeout = job_timeout or None
        self.type_timeouts = dict(type_timeouts or {})

        self._jobs: dict[str, Job] = {}
        self._waiting: deque[str] = deque()
        self._processing = False
        self._worker: Optional[Worker] = None
        self._listeners: list[Listener] = []
        self._current_task: Optional[asyncio.Task] = None
        self._sweep_task: Optional[asyncio.Task] = None
        self._closed = False
        self._idle = asyncio.Event()
        self._idle.set()

    # ----- registration -----

    def register_worker(self, worker: Worker) -> None:
        """
        Register the coroutine function that executes every job.

        Raises:
            WorkerAlreadyRegisteredError: If a worker is already registered
        """
        if self._worker is not None:
            raise WorkerAlreadyRegisteredError("A worker is already registered on this queue")
        self._worker = worker
        self._dispatch()

    def subscribe(self, listener: Listener) -> None:
        """Add a lifecycle listener called as ``listener(event, job)``."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ----- queue control surface -----

    def enqueue(self, job_type: JobType, payload: Optional[dict[str, Any]] = None) -> str:
        """
        Add a job to the end of the queue.

        Args:
            job_type: Kind of job
            payload: Job input, interpreted only by the worker

        Returns:
            ID of the created job
        """
        job = Job(id=generate_job_id(job_type), type=job_type, payload=payload or {})
        self._jobs[job.id] = job
        self._waiting.append(job.id)
        if not self._closed:
            self._idle.clear()

        logger.info(f"Enqueued job {job.id} ({len(self._waiting)} waiting)")
        self._emit(JobEvent.ADDED, job)
        self._dispatch()
        return job.id

    def get_job(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def jobs_by_status(self, status: JobStatus) -> list[Job]:
        return [job for job in self._jobs.values() if job.status == status]

    def update_progress(self, job_id: str, progress: float) -> None:
        """Set a job's progress percentage (0-100). Unknown ids are ignored."""
        job = self._jobs.get(job_id)
        if job is None:
            return
        job.progress = max(0, min(100, round(progress)))
        self._emit(JobEvent.PROGRESS, job)

    def stats(self) -> QueueStats:
        """
        Get queue statistics.

        Returns:
            QueueStats with counts by status
        """
        stats = QueueStats()
        for job in self._jobs.values():
            if job.status == JobStatus.PENDING:
                stats.pending += 1
            elif job.status == JobStatus.PROCESSING:
                stats.processing += 1
            elif job.status == JobStatus.COMPLETED:
                stats.completed += 1
            elif job.status == JobStatus.FAILED:
                stats.failed += 1
            stats.total += 1
        return stats

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def wait_idle(self) -> None:
        """Wait until no job is waiting or running."""
        await self._idle.wait()

    # ----- dispatch -----

    def _dispatch(self) -> None:
        if self._processing or self._closed or self._worker is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Picked up by start() or the next enqueue on the loop
            logger.debug("No running event loop; dispatch deferred")
            return

        while self._waiting:
            job = self._jobs.get(self._waiting.popleft())
            if job is None:
                continue

            self._processing = True
            job.status = JobStatus.PROCESSING
            job.started_at = utcnow()
            logger.info(f"Processing job {job.id}")
            self._emit(JobEvent.STARTED, job)
            self._current_task = loop.create_task(self._execute(job), name=f"job-{job.id}")
            return

        self._idle.set()

    async def _execute(self, job: Job) -> None:
        try:
            result = await self._invoke(job)
        except asyncio.CancelledError:
            self._finish_failed(job, "Job cancelled during shutdown")
            raise
        except Exception as e:
            self._finish_failed(job, str(e) or "Unknown error")
            logger.error(f"Job {job.id} failed: {job.error}")
        else:
            job.status = JobStatus.COMPLETED
            job.result = result
            job.completed_at = utcnow()
            logger.info(f"Job {job.id} completed")
            self._emit(JobEvent.COMPLETED, job)
        finally:
            self._processing = False
            self._current_task = None
            self._dispatch()

    def timeout_for(self, job_type: JobType) -> Optional[float]:
        """Watchdog limit in seconds for a job type, or None for no limit."""
        return self.type_timeouts.get(job_type, self.job_timeout) or None

    async def _invoke(self, job: Job) -> Any:
        if self._worker is None:
            raise RuntimeError(f"No worker registered to run job {job.id}")
        timeout = self.timeout_for(job.type)
        if timeout is None:
            return await self._worker(job)
        try:
            return await asyncio.wait_for(self._worker(job), timeout=timeout)
        except asyncio.TimeoutError:
            raise JobTimeoutError(job.id, timeout) from None

    def _finish_failed(self, job: Job, error: str) -> None:
        job.status = JobStatus.FAILED
        job.error = error
        job.completed_at = utcnow()
        self._emit(JobEvent.FAILED, job)

    def _emit(self, event: JobEvent, job: Job) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, job)
            except Exception as e:
                logger.warning(f"Job listener failed on {event.value} for {job.id}: {e}")

    # ----- retention -----

    def cleanup_old_jobs(self, now: Optional[datetime] = None) -> int:
        """
        Remove terminal jobs that completed before the retention window.

        Returns:
            Number of jobs removed
        """
        threshold = (now or utcnow()) - self.retention
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status.is_terminal
            and job.completed_at is not None
            and job.completed_at < threshold
        ]
        for job_id in expired:
            del self._jobs[job_id]

        if expired:
            logger.info(f"Purged {len(expired)} finished jobs older than {self.retention}")
        return len(expired)

    async def _sweep_loop(self) -> None:
        interval = self.sweep_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            self.cleanup_old_jobs()

    # ----- lifecycle -----

    async def start(self) -> None:
        """Start the retention sweep and dispatch anything already waiting."""
        self._closed = False
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop(), name="job-sweep")
        self._dispatch()

    async def shutdown(self, timeout: float = 10.0) -> None:
        """
        Stop the sweep and stop dispatching.

        A running job gets ``timeout`` seconds to finish before it is
        cancelled and marked failed. Pending jobs stay pending and
        ``wait_idle`` returns.
        """
        self._closed = True

        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        task = self._current_task
        if task is not None and not task.done():
            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                logger.warning(f"Running job did not finish within {timeout}s, cancelling")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        # Nothing more will run, so waiters must not block on pending jobs
        self._idle.set()
        logger.info("Job queue stopped")
