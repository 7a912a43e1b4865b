"""
Job queue API routes.

Endpoints for enqueueing fetch jobs and polling their status.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from commitscope.api.dependencies import get_queue
from commitscope.api.schemas import JobAccepted, QueueStatsResponse
from commitscope.jobs import JobQueue, JobType
from commitscope.jobs.payloads import parse_payload

router = APIRouter()


@router.post("/fetch/commits", response_model=JobAccepted)
async def fetch_commits(
    body: Optional[dict[str, Any]] = Body(default=None),
    queue: JobQueue = Depends(get_queue),
) -> JobAccepted:
    """
    Enqueue a batch fetch of the given repositories.

    Body fields: ``repositories`` (required), ``authorAllowList``,
    ``emailAllowList``, ``since``, ``perRepoDetailCap`` and ``annotate``.

    Raises:
        HTTPException: 400 if the repositories array is missing or invalid
    """
    body = body or {}
    repositories = body.get("repositories", body.get("repos"))
    if not isinstance(repositories, list) or not repositories:
        raise HTTPException(status_code=400, detail="repositories array is required")

    try:
        parse_payload(JobType.FETCH_COMMITS, body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid payload: {e.errors()[0]['msg']}")

    job_id = queue.enqueue(JobType.FETCH_COMMITS, body)
    return JobAccepted(job_id=job_id, message="Job added to queue")


@router.post("/fetch/all", response_model=JobAccepted)
async def fetch_all(queue: JobQueue = Depends(get_queue)) -> JobAccepted:
    """Enqueue a full-history collection run."""
    job_id = queue.enqueue(JobType.FETCH_ALL, {})
    return JobAccepted(job_id=job_id, message="Full fetch job added to queue")


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, queue: JobQueue = Depends(get_queue)) -> dict[str, Any]:
    """
    Get a job by ID.

    Raises:
        HTTPException: 404 if the job is unknown or was already swept
    """
    job = queue.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()


@router.get("/jobs")
async def list_jobs(queue: JobQueue = Depends(get_queue)) -> list[dict[str, Any]]:
    """List every job still held by the queue, oldest first."""
    return [job.to_dict() for job in queue.list_jobs()]


@router.get("/queue/stats", response_model=QueueStatsResponse)
async def queue_stats(queue: JobQueue = Depends(get_queue)) -> QueueStatsResponse:
    return QueueStatsResponse(**queue.stats().to_dict())
