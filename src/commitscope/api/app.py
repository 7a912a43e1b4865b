"""
CommitScope FastAPI Application.

Exposes the background job queue for commit fetching plus read access to
stored commits.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from commitscope import __version__
from commitscope.api.routes import commits, github, jobs
from commitscope.config import Settings, settings
from commitscope.db.connection import init_db
from commitscope.jobs import JobOrchestrator, JobQueue, JobType
from commitscope.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_queue(config: Settings = settings) -> JobQueue:
    """Create the job queue with the orchestrator registered as its worker."""
    queue = JobQueue(
        retention=timedelta(minutes=config.job_retention_minutes),
        sweep_interval=timedelta(minutes=config.job_sweep_interval_minutes),
        job_timeout=config.job_timeout_seconds,
        type_timeouts={JobType.FETCH_ALL: config.full_collection_timeout_seconds},
    )
    JobOrchestrator(queue, config=config).register()
    return queue


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Creates the commit tables, then owns one job queue for the lifetime
    of the process.
    """
    # Initialize logging first
    setup_logging(context="api")

    init_db()
    logger.info("✓ Database ready")

    queue = build_queue()
    await queue.start()
    app.state.queue = queue
    logger.info("✓ Job queue started")

    yield

    logger.info("Application shutdown initiated...")
    await queue.shutdown(timeout=10)
    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="CommitScope API",
    description="API for collecting GitHub commits and their AI summaries",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "CommitScope API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    from commitscope.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


app.include_router(jobs.router, prefix="/api", tags=["jobs"])
app.include_router(commits.router, prefix="/api", tags=["commits"])
app.include_router(github.router, prefix="/api", tags=["github"])
