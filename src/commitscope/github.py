"""
GitHub REST client for CommitScope.

Async gateway for listing commits and fetching per-commit diffs. The hosting
API is rate limited, so listing pages are paced with a fixed delay; callers
pace detail fetches themselves.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from commitscope.exceptions import GatewayError
from commitscope.models.remote import CommitDetail, CommitReference, FileChange, RateLimit

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def split_repo(repo: str) -> tuple[str, str]:
    """
    Split an ``owner/name`` string.

    Raises:
        ValueError: If either part is missing
    """
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise ValueError(f"Invalid repo format: {repo!r} (expected owner/name)")
    return owner, name


def matches_author_filter(
    ref: CommitReference, authors: list[str], emails: list[str]
) -> bool:
    """
    Check a commit against the author/email allow-lists.

    Matching is a case-insensitive substring test against the author name or
    login (for ``authors``) and the author email (for ``emails``). With both
    lists given a commit must match both; with one list it must match that one.
    """
    if not authors and not emails:
        return True

    name = ref.author.lower()
    login = (ref.author_login or "").lower()
    email = ref.author_email.lower()

    name_match = not authors or any(
        a.lower() in name or (login and a.lower() in login) for a in authors
    )
    email_match = not emails or any(e.lower() in email for e in emails)

    if authors and emails:
        return name_match and email_match
    return name_match if authors else email_match


class GitHubGateway:
    """
    Async client for the GitHub commits API.

    Usage:
        async with GitHubGateway(token) as gateway:
            refs = await gateway.iter_commits("acme/widgets", since=since)
            detail = await gateway.get_commit_detail("acme/widgets", refs[0].full_sha)
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        per_page: int = 100,
        page_delay: float = 0.2,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.per_page = per_page
        self.page_delay = page_delay
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubGateway":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        response = await self._client.get(path, params=params)
        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            raise GatewayError(
                f"GitHub API {response.status_code} for {path}: {detail}",
                status_code=response.status_code,
            )
        return response.json()

    async def list_commits(
        self, repo: str, since: Optional[datetime] = None, page: int = 1
    ) -> list[CommitReference]:
        """
        Fetch one page of commit references, most recent first.

        Args:
            repo: Repository as owner/name
            since: Only commits after this timestamp
            page: 1-based page number

        Returns:
            List of CommitReference (empty past the last page)
        """
        owner, name = split_repo(repo)
        params: dict[str, Any] = {"per_page": self.per_page, "page": page}
        if since is not None:
            params["since"] = since.isoformat()

        data = await self._get(f"/repos/{owner}/{name}/commits", params=params)
        return [self._to_reference(repo, item) for item in data]

    async def iter_commits(
        self,
        repo: str,
        since: Optional[datetime] = None,
        authors: Optional[list[str]] = None,
        emails: Optional[list[str]] = None,
    ) -> list[CommitReference]:
        """
        Fetch every page of commits for a repository and apply allow-lists.

        Returns:
            Filtered references in the order the API returned them
        """
        logger.info(f"Fetching commits from {repo}...")
        all_refs: list[CommitReference] = []
        page = 1

        while True:
            refs = await self.list_commits(repo, since=since, page=page)
            if not refs:
                break
            all_refs.extend(refs)
            logger.debug(f"  Page {page}: {len(refs)} commits (total: {len(all_refs)})")
            if len(refs) < self.per_page:
                break
            page += 1
            await asyncio.sleep(self.page_delay)

        authors = authors or []
        emails = emails or []
        filtered = [r for r in all_refs if matches_author_filter(r, authors, emails)]
        if authors or emails:
            logger.info(
                f"  {len(filtered)} of {len(all_refs)} commits match filter criteria"
            )
        return filtered

    async def get_commit_detail(self, repo: str, sha: str) -> CommitDetail:
        """
        Fetch a single commit including per-file diffs.

        Raises:
            GatewayError: If the API rejects the request
            httpx.HTTPError: On transport failure
        """
        owner, name = split_repo(repo)
        data = await self._get(f"/repos/{owner}/{name}/commits/{sha}")

        commit = data.get("commit") or {}
        author = commit.get("author") or {}
        stats = data.get("stats") or {}

        return CommitDetail(
            repo=repo,
            full_sha=data["sha"],
            message=commit.get("message", ""),
            author=author.get("name") or "Unknown",
            author_email=author.get("email") or "",
            date=_parse_timestamp(author.get("date")),
            additions=stats.get("additions", 0),
            deletions=stats.get("deletions", 0),
            total_changes=stats.get("total", 0),
            files=[
                FileChange(
                    filename=f["filename"],
                    status=f.get("status", "modified"),
                    additions=f.get("additions", 0),
                    deletions=f.get("deletions", 0),
                    changes=f.get("changes", 0),
                    patch=f.get("patch"),
                )
                for f in data.get("files") or []
            ],
        )

    async def list_user_repos(self) -> list[str]:
        """List owner/name of repositories the token owner can access."""
        data = await self._get(
            "/user/repos",
            params={
                "per_page": 100,
                "sort": "updated",
                "affiliation": "owner,collaborator",
            },
        )
        repos = [item["full_name"] for item in data]
        logger.info(f"Found {len(repos)} repositories")
        return repos

    async def rate_limit(self) -> RateLimit:
        """Get the current core rate limit."""
        data = await self._get("/rate_limit")
        rate = data["rate"]
        status = RateLimit(
            remaining=rate["remaining"],
            limit=rate["limit"],
            reset_at=datetime.fromtimestamp(rate["reset"], tz=timezone.utc),
        )
        logger.info(
            f"API rate limit: {status.remaining}/{status.limit} "
            f"(resets {status.reset_at.isoformat()})"
        )
        return status

    @staticmethod
    def _to_reference(repo: str, item: dict[str, Any]) -> CommitReference:
        commit = item.get("commit") or {}
        author = commit.get("author") or {}
        account = item.get("author") or {}
        return CommitReference(
            repo=repo,
            full_sha=item["sha"],
            author=author.get("name") or "Unknown",
            author_email=author.get("email") or "",
            date=_parse_timestamp(author.get("date")),
            author_login=account.get("login"),
        )
