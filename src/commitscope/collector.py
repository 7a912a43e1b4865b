"""
Full-history commit collection.

Walks every configured repository (or every repository the token can see),
reconciles all commits without a per-repository cap and reports progress
per repository. Runs standalone via ``commitscope collect`` or in-process
from a fetch-all job.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Optional, Union

import httpx
from sqlalchemy.orm import Session, sessionmaker

from commitscope.annotation import CommitSummarizer
from commitscope.annotation.providers import LLMProvider, provider_from_settings
from commitscope.config import Settings, settings
from commitscope.exceptions import ConfigurationError, GatewayError
from commitscope.github import GitHubGateway
from commitscope.models.remote import CommitReference
from commitscope.reconcile import CommitReconciler
from commitscope.store import CommitStore

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[str], GitHubGateway]


@dataclass(frozen=True)
class CollectionProgress:
    """A repository finished; ``current`` of ``total`` are done."""

    current: int
    total: int
    repo: Optional[str] = None

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.current / self.total * 100)


@dataclass(frozen=True)
class CollectionFinished:
    """Final event of a collection run."""

    records_written: int
    raw_output: str = ""


CollectionEvent = Union[CollectionProgress, CollectionFinished]


def gateway_from_settings(config: Settings) -> GatewayFactory:
    """Build a gateway factory bound to the configured API endpoint."""

    def factory(token: str) -> GitHubGateway:
        return GitHubGateway(
            token,
            base_url=config.github_api_url,
            per_page=config.github_per_page,
            page_delay=config.page_delay_seconds,
            timeout=config.github_timeout,
        )

    return factory


async def fetch_references(
    gateway: GitHubGateway,
    repo: str,
    since: Optional[datetime],
    authors: list[str],
    emails: list[str],
) -> list[CommitReference]:
    """List a repository's commits; a listing failure yields no commits."""
    try:
        return await gateway.iter_commits(repo, since=since, authors=authors, emails=emails)
    except (GatewayError, httpx.HTTPError, ValueError) as e:
        logger.error(f"Failed to list commits for {repo}: {e}")
        return []


class FullHistoryCollector:
    """Collect commits for every repository in scope."""

    def __init__(
        self,
        config: Settings = settings,
        session_factory: Optional[sessionmaker[Session]] = None,
        all_history: bool = False,
        gateway_factory: Optional[GatewayFactory] = None,
        provider: Optional[LLMProvider] = None,
    ):
        """
        Initialize the collector.

        Args:
            config: Settings supplying token, filters and pacing
            session_factory: Commit store sessions (defaults to the app factory)
            all_history: Ignore ``days_back`` and collect the whole history
            gateway_factory: Builds the GitHub gateway from a token
            provider: Summary provider (defaults to the configured one, if any)
        """
        if session_factory is None:
            from commitscope.db.connection import SessionLocal

            session_factory = SessionLocal

        self.config = config
        self.store = CommitStore(session_factory)
        self.all_history = all_history
        self.gateway_factory = gateway_factory or gateway_from_settings(config)
        self.provider = provider if provider is not None else provider_from_settings(config)

    def _since(self) -> Optional[datetime]:
        if self.all_history or self.config.days_back is None:
            return None
        return datetime.now(timezone.utc) - timedelta(days=self.config.days_back)

    async def _resolve_repos(self, gateway: GitHubGateway) -> list[str]:
        """Configured REPOS, or every repository GITHUB_USERNAME can access."""
        if self.config.repo_list:
            return self.config.repo_list

        logger.info(f"Fetching {self.config.github_username}'s repositories")
        try:
            return await gateway.list_user_repos()
        except (GatewayError, httpx.HTTPError) as e:
            logger.error(f"Failed to fetch repository list: {e}")
            return []

    async def run(self) -> AsyncIterator[CollectionEvent]:
        """
        Run the collection.

        Yields:
            CollectionProgress after each repository, then CollectionFinished

        Raises:
            ConfigurationError: If no GitHub token is configured, or neither
                REPOS nor GITHUB_USERNAME is set
        """
        if not self.config.github_token:
            raise ConfigurationError(
                "GitHub token not configured. Set GITHUB_TOKEN to a personal access token."
            )
        if not self.config.repo_list and not self.config.github_username:
            raise ConfigurationError("Please set REPOS or GITHUB_USERNAME.")

        summarizer = None
        if self.provider is not None:
            summarizer = CommitSummarizer(self.provider, self.config.summary_max_tokens)
            logger.info(f"AI analysis enabled ({self.provider.provider_name})")
        else:
            logger.info("AI analysis disabled (no API key)")

        since = self._since()
        blacklist = self.config.blacklist_author_list
        if blacklist:
            logger.info(f"Blacklisted authors: {', '.join(blacklist)}")

        total_written = 0
        async with self.gateway_factory(self.config.github_token) as gateway:
            try:
                await gateway.rate_limit()
            except (GatewayError, httpx.HTTPError) as e:
                logger.warning(f"Could not read rate limit: {e}")

            repos = await self._resolve_repos(gateway)
            logger.info(
                f"Collecting {len(repos)} repositories "
                f"({'since ' + since.date().isoformat() if since else 'all history'})"
            )

            reconciler = CommitReconciler(
                gateway, self.store, summarizer, self.config.request_delay_seconds
            )
            for index, repo in enumerate(repos, start=1):
                refs = await fetch_references(
                    gateway,
                    repo,
                    since,
                    self.config.filter_author_list,
                    self.config.filter_email_list,
                )
                outcome = await reconciler.reconcile(
                    repo,
                    refs,
                    blacklist=blacklist,
                    detail_cap=None,
                    annotate=summarizer is not None,
                )
                total_written += outcome.records_written
                yield CollectionProgress(current=index, total=len(repos), repo=repo)

                if index < len(repos):
                    await asyncio.sleep(self.config.request_delay_seconds)

        yield CollectionFinished(records_written=total_written)
