"""
CommitScope CLI - command-line interface for collection and server management.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from commitscope.logging_config import setup_logging

app = typer.Typer(
    name="commitscope",
    help="CommitScope - GitHub commit history collection and summaries",
    no_args_is_help=True,
)

console = Console()


def _init_logging(context: str) -> None:
    try:
        setup_logging(context=context)
    except PermissionError:
        logging.basicConfig(level=logging.INFO)


@app.command("init-db")
def init_db_command() -> None:
    """Create the commit tables if they do not exist."""
    from commitscope.config import settings
    from commitscope.db.connection import init_db

    init_db()
    console.print(f"[green]✓ Database ready:[/green] {settings.database_url}")


@app.command()
def collect(
    all_history: bool = typer.Option(
        False, "--all-history", help="Ignore DAYS_BACK and collect the whole history"
    ),
) -> None:
    """
    Collect commits from every configured repository.

    Uses REPOS when set, otherwise every repository the token can access.
    Prints one ``[i/N] owner/name`` line per finished repository.
    """
    from commitscope.collector import CollectionFinished, CollectionProgress, FullHistoryCollector
    from commitscope.db.connection import init_db
    from commitscope.exceptions import ConfigurationError

    _init_logging("collect")
    init_db()

    async def _run() -> int:
        written = 0
        async for event in FullHistoryCollector(all_history=all_history).run():
            if isinstance(event, CollectionProgress):
                console.print(escape(f"[{event.current}/{event.total}] {event.repo}"))
            elif isinstance(event, CollectionFinished):
                written = event.records_written
        return written

    try:
        written = asyncio.run(_run())
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"Total {written} commits written")


@app.command()
def fetch(
    repos: List[str] = typer.Argument(..., help="Repositories as owner/name"),
    cap: Optional[int] = typer.Option(None, help="Maximum detail fetches per repository"),
    annotate: bool = typer.Option(False, "--annotate", help="Summarize commits with the LLM"),
    since: Optional[datetime] = typer.Option(None, help="Only commits after this date"),
    author: List[str] = typer.Option([], help="Author allow-list entry (repeatable)"),
    email: List[str] = typer.Option([], help="Email allow-list entry (repeatable)"),
) -> None:
    """
    Run one batch fetch job through the job queue and print its result.
    """
    from commitscope.config import settings
    from commitscope.db.connection import init_db
    from commitscope.jobs import JobOrchestrator, JobQueue, JobStatus, JobType

    _init_logging("cli")
    init_db()

    payload = {
        "repositories": repos,
        "authorAllowList": author,
        "emailAllowList": email,
        "annotate": annotate,
    }
    if cap is not None:
        payload["perRepoDetailCap"] = cap
    if since is not None:
        payload["since"] = since.isoformat()

    async def _run():
        queue = JobQueue(job_timeout=settings.job_timeout_seconds)
        JobOrchestrator(queue).register()
        job_id = queue.enqueue(JobType.FETCH_COMMITS, payload)
        await queue.wait_idle()
        await queue.shutdown()
        return queue.get_job(job_id)

    job = asyncio.run(_run())
    if job is None or job.status != JobStatus.COMPLETED:
        console.print(f"[bold red]Job failed:[/bold red] {job.error if job else 'unknown job'}")
        raise typer.Exit(1)

    table = Table(title=f"{job.result['recordsWritten']} commits stored")
    for column in ("Commit", "Repo", "Author", "Files", "+/-", "Message"):
        table.add_column(column)
    for entry in job.result["perCommit"]:
        table.add_row(
            entry["shortHash"],
            entry["repo"],
            entry["author"],
            str(entry["filesChanged"]),
            f"+{entry['additions']}/-{entry['deletions']}",
            entry["messageFirstLine"],
        )
    console.print(table)

    for entry in job.result["perCommit"]:
        if entry["annotation"]:
            console.print(f"[cyan]{entry['shortHash']}[/cyan] {escape(entry['annotation'])}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Runs the CommitScope API with the background job queue.
    """
    import uvicorn

    console.print("[bold green]Starting CommitScope API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "commitscope.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
