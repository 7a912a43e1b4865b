"""
Job orchestrator: the single worker registered on the job queue.

A fetch-commits job reconciles each requested repository in turn with fixed
pacing between remote calls. A fetch-all job hands off to a full-collection
runner and relays its progress.
"""

import asyncio
import logging
from contextlib import aclosing
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, assert_never

from sqlalchemy.orm import Session, sessionmaker

from commitscope.annotation import CommitSummarizer
from commitscope.annotation.providers import LLMProvider, provider_from_settings
from commitscope.collector import (
    CollectionFinished,
    CollectionProgress,
    FullHistoryCollector,
    GatewayFactory,
    fetch_references,
    gateway_from_settings,
)
from commitscope.config import Settings, settings
from commitscope.exceptions import ConfigurationError, FullCollectionError
from commitscope.github import split_repo
from commitscope.reconcile import CommitReconciler, CommitResult
from commitscope.store import CommitStore

from .full_collection import (
    FullCollectionRunner,
    InProcessFullCollection,
    SubprocessFullCollection,
)
from .models import Job
from .payloads import FetchCommitsPayload, FullCollectionPayload, parse_payload
from .queue import JobQueue

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], Optional[LLMProvider]]
RunnerFactory = Callable[[FullCollectionPayload], FullCollectionRunner]


class JobOrchestrator:
    """
    Execute queued jobs.

    Instances are callable and are registered as the queue's worker:

        orchestrator = JobOrchestrator(queue)
        orchestrator.register()
    """

    def __init__(
        self,
        queue: JobQueue,
        config: Settings = settings,
        session_factory: Optional[sessionmaker[Session]] = None,
        gateway_factory: Optional[GatewayFactory] = None,
        provider_factory: Optional[ProviderFactory] = None,
        runner_factory: Optional[RunnerFactory] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            queue: Queue receiving progress updates
            config: Settings supplying credentials, blacklist and pacing
            session_factory: Commit store sessions (defaults to the app factory)
            gateway_factory: Builds the GitHub gateway from a token
            provider_factory: Builds the summary provider (None when unavailable)
            runner_factory: Builds the full-collection runner for a fetch-all job
        """
        if session_factory is None:
            from commitscope.db.connection import SessionLocal

            session_factory = SessionLocal

        self.queue = queue
        self.config = config
        self.session_factory = session_factory
        self.store = CommitStore(session_factory)
        self.gateway_factory = gateway_factory or gateway_from_settings(config)
        self.provider_factory = provider_factory or (lambda: provider_from_settings(config))
        self.runner_factory = runner_factory or self._default_runner

    def register(self) -> None:
        """Register this orchestrator as the queue's worker."""
        self.queue.register_worker(self)

    async def __call__(self, job: Job) -> dict[str, Any]:
        payload = parse_payload(job.type, job.payload)
        if isinstance(payload, FetchCommitsPayload):
            return await self.fetch_commits(job, payload)
        elif isinstance(payload, FullCollectionPayload):
            return await self.fetch_all(job, payload)
        else:
            assert_never(payload)

    # ----- fetch-commits -----

    async def fetch_commits(self, job: Job, payload: FetchCommitsPayload) -> dict[str, Any]:
        """
        Reconcile each requested repository.

        Returns:
            ``{"recordsWritten", "perCommit", "blacklisted"}``

        Raises:
            ConfigurationError: If no GitHub token is configured
        """
        if not self.config.github_token:
            raise ConfigurationError(
                "GitHub token not configured. Please generate a GitHub Personal Access "
                "Token at https://github.com/settings/tokens and configure it in the settings."
            )

        summarizer = None
        if payload.annotate:
            provider = self.provider_factory()
            if provider is None:
                logger.warning("AI analysis requested but no API key is configured")
            else:
                summarizer = CommitSummarizer(provider, self.config.summary_max_tokens)

        since = payload.since or (
            datetime.now(timezone.utc) - timedelta(days=self.config.default_since_days)
        )
        cap = payload.per_repo_detail_cap or self.config.per_repo_detail_cap
        blacklist = self.config.blacklist_author_list

        results: list[CommitResult] = []
        blacklisted: list[str] = []
        total = len(payload.repositories)

        async with self.gateway_factory(self.config.github_token) as gateway:
            reconciler = CommitReconciler(
                gateway, self.store, summarizer, self.config.request_delay_seconds
            )
            for index, repo in enumerate(payload.repositories):
                try:
                    split_repo(repo)
                except ValueError as e:
                    logger.error(str(e))
                else:
                    refs = await fetch_references(
                        gateway,
                        repo,
                        since,
                        payload.author_allow_list,
                        payload.email_allow_list,
                    )
                    outcome = await reconciler.reconcile(
                        repo,
                        refs,
                        blacklist=blacklist,
                        detail_cap=cap,
                        annotate=summarizer is not None,
                    )
                    results.extend(outcome.results)
                    blacklisted.extend(outcome.blacklisted)

                self.queue.update_progress(job.id, (index + 1) / total * 100)
                if index + 1 < total:
                    await asyncio.sleep(self.config.request_delay_seconds)

        logger.info(f"Job {job.id}: stored {len(results)} commits from {total} repositories")
        return {
            "recordsWritten": len(results),
            "perCommit": [result.to_dict() for result in results],
            "blacklisted": blacklisted,
        }

    # ----- fetch-all -----

    async def fetch_all(self, job: Job, payload: FullCollectionPayload) -> dict[str, Any]:
        """
        Run a full collection and relay its progress.

        Returns:
            ``{"recordsWritten", "rawOutput"}``
        """
        runner = self.runner_factory(payload)
        finished: Optional[CollectionFinished] = None

        async with aclosing(runner.run()) as events:
            async for event in events:
                if isinstance(event, CollectionProgress):
                    self.queue.update_progress(job.id, event.percent)
                elif isinstance(event, CollectionFinished):
                    finished = event
                else:
                    assert_never(event)

        if finished is None:
            raise FullCollectionError(None, "Collection ended without a result")

        return {
            "recordsWritten": finished.records_written,
            "rawOutput": finished.raw_output,
        }

    def _default_runner(self, payload: FullCollectionPayload) -> FullCollectionRunner:
        if self.config.full_collection_mode == "inprocess":
            return InProcessFullCollection(
                lambda: FullHistoryCollector(
                    config=self.config,
                    session_factory=self.session_factory,
                    all_history=payload.all_history,
                    gateway_factory=self.gateway_factory,
                )
            )
        return SubprocessFullCollection(all_history=payload.all_history)
