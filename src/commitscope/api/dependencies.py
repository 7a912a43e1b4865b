"""
Shared FastAPI dependencies.
"""

from fastapi import Request

from commitscope.jobs import JobQueue


def get_queue(request: Request) -> JobQueue:
    """Return the job queue created by the application lifespan."""
    return request.app.state.queue
