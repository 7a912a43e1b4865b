"""
Incremental commit reconciliation.

Decides per remote commit whether any local work is needed. A commit that
is stored with a summary is fully processed and never fetched or
summarized again.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from commitscope.models.remote import CommitDetail, CommitReference

logger = logging.getLogger(__name__)


class ReconciliationDecision(str, enum.Enum):
    """What a remote commit needs relative to the local store."""

    SKIP = "skip"  # Stored and summarized
    FETCH_ONLY = "fetch-only"  # Needs detail, summaries disabled
    FETCH_AND_ANNOTATE = "fetch-and-annotate"  # Needs detail and a summary


def classify(
    stored: bool, ai_summary: Optional[str], annotate: bool
) -> ReconciliationDecision:
    """Classify a commit against its stored state."""
    if stored and ai_summary is not None:
        return ReconciliationDecision.SKIP
    if annotate:
        return ReconciliationDecision.FETCH_AND_ANNOTATE
    return ReconciliationDecision.FETCH_ONLY


class CommitSource(Protocol):
    async def get_commit_detail(self, repo: str, sha: str) -> CommitDetail: ...


class CommitSink(Protocol):
    async def exists(self, full_sha: str) -> tuple[bool, Optional[str]]: ...

    async def upsert(self, detail: CommitDetail, ai_summary: Optional[str]) -> None: ...


class Summarizer(Protocol):
    async def summarize(self, detail: CommitDetail) -> Optional[str]: ...


@dataclass
class CommitResult:
    """Per-commit summary reported back to the job caller."""

    short_hash: str
    repo: str
    message_first_line: str
    author: str
    files_changed: int
    additions: int
    deletions: int
    annotation: Optional[str]

    @classmethod
    def from_detail(cls, detail: CommitDetail, annotation: Optional[str]) -> "CommitResult":
        return cls(
            short_hash=detail.sha,
            repo=detail.repo,
            message_first_line=detail.first_line,
            author=detail.author,
            files_changed=detail.files_changed,
            additions=detail.additions,
            deletions=detail.deletions,
            annotation=annotation,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "shortHash": self.short_hash,
            "repo": self.repo,
            "messageFirstLine": self.message_first_line,
            "author": self.author,
            "filesChanged": self.files_changed,
            "additions": self.additions,
            "deletions": self.deletions,
            "annotation": self.annotation,
        }


@dataclass
class RepositoryOutcome:
    """Result of reconciling one repository."""

    repo: str
    results: list[CommitResult] = field(default_factory=list)
    blacklisted: list[str] = field(default_factory=list)  # short hashes
    skipped: list[str] = field(default_factory=list)  # already fully processed
    failed: list[str] = field(default_factory=list)  # detail fetch failed
    deferred: int = 0  # beyond the detail cap, left for a later run
    detail_fetches: int = 0

    @property
    def records_written(self) -> int:
        return len(self.results)


class CommitReconciler:
    """
    Reconcile remote commit references against the commit store.

    Per reference:
    1. Blacklisted authors (exact, case-sensitive name match) are dropped.
    2. Stored commits with a summary are skipped without any remote call.
    3. Everything else is detail-fetched (up to ``detail_cap`` per call);
       a failed fetch drops only that commit.
    4. A summary stored in the meantime is reused; otherwise the commit is
       summarized when annotation is on. Summary failures store ``None``.
    5. The commit is written whether or not a summary exists. Store errors
       propagate.
    """

    def __init__(
        self,
        source: CommitSource,
        sink: CommitSink,
        summarizer: Optional[Summarizer] = None,
        request_delay: float = 0.1,
    ):
        self.source = source
        self.sink = sink
        self.summarizer = summarizer
        self.request_delay = request_delay

    async def reconcile(
        self,
        repo: str,
        refs: list[CommitReference],
        blacklist: Optional[list[str]] = None,
        detail_cap: Optional[int] = None,
        annotate: bool = False,
    ) -> RepositoryOutcome:
        """
        Process a repository's references in the order given.

        Args:
            repo: Repository as owner/name
            refs: References already filtered by allow-lists and since
            blacklist: Author names to exclude entirely
            detail_cap: Maximum detail fetches for this call (None = unbounded)
            annotate: Whether to summarize commits lacking a summary

        Returns:
            RepositoryOutcome with per-commit results and skip accounting
        """
        blacklist = blacklist or []
        annotate = annotate and self.summarizer is not None
        outcome = RepositoryOutcome(repo=repo)

        for ref in refs:
            if ref.author in blacklist:
                logger.info(f"  {ref.sha} - Blacklisted author ({ref.author}) - skipped")
                outcome.blacklisted.append(ref.sha)
                continue

            if detail_cap is not None and outcome.detail_fetches >= detail_cap:
                outcome.deferred += 1
                continue

            stored, summary = await self.sink.exists(ref.full_sha)
            decision = classify(stored, summary, annotate)
            if decision is ReconciliationDecision.SKIP:
                logger.info(f"  {ref.sha} - Already processed (skipped)")
                outcome.skipped.append(ref.sha)
                continue

            if outcome.detail_fetches > 0:
                await asyncio.sleep(self.request_delay)
            outcome.detail_fetches += 1

            try:
                detail = await self.source.get_commit_detail(repo, ref.full_sha)
            except Exception as e:
                logger.error(f"  {ref.sha} - Failed to fetch commit detail: {e}")
                outcome.failed.append(ref.sha)
                continue

            summary = await self._resolve_summary(detail, decision)
            await self.sink.upsert(detail, summary)

            result = CommitResult.from_detail(detail, summary)
            outcome.results.append(result)
            logger.info(
                f"  {detail.sha} - {result.message_first_line} "
                f"({detail.files_changed} files, +{detail.additions}/-{detail.deletions})"
            )

        if outcome.deferred:
            logger.info(
                f"  {outcome.deferred} commits in {repo} beyond detail cap {detail_cap}, "
                f"left for a later run"
            )
        return outcome

    async def _resolve_summary(
        self, detail: CommitDetail, decision: ReconciliationDecision
    ) -> Optional[str]:
        # Another run may have summarized this commit since the first check
        _, existing = await self.sink.exists(detail.full_sha)
        if existing is not None:
            logger.info(f"  {detail.sha} - AI analysis already done (reused)")
            return existing

        if decision is ReconciliationDecision.FETCH_AND_ANNOTATE and self.summarizer:
            logger.info(f"  {detail.sha} - AI analyzing...")
            return await self.summarizer.summarize(detail)

        return None
