"""
Stored commit API routes.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from commitscope.api.schemas import CommitFileResponse, CommitResponse, DeletedCommitsResponse
from commitscope.db.connection import get_db
from commitscope.db.repositories import CommitRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.delete("/commits/by-authors", response_model=DeletedCommitsResponse)
async def delete_commits_by_authors(
    body: Optional[dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_db),
) -> DeletedCommitsResponse:
    """
    Delete every stored commit by the given author names.

    Used to clean up after adding authors to the blacklist.

    Raises:
        HTTPException: 400 if the authors array is missing or empty
    """
    authors = (body or {}).get("authors")
    if (
        not isinstance(authors, list)
        or not authors
        or not all(isinstance(a, str) for a in authors)
    ):
        raise HTTPException(status_code=400, detail="authors array is required")

    logger.info(f"Deleting commits from authors: {authors}")
    deleted = CommitRepository(session).delete_by_authors(authors)
    session.commit()
    return DeletedCommitsResponse(deleted_count=deleted, authors=authors)


@router.get("/commits/{sha}", response_model=CommitResponse)
async def get_commit(sha: str, session: Session = Depends(get_db)) -> CommitResponse:
    """
    Get a stored commit and its files.

    Args:
        sha: Full or abbreviated commit hash

    Raises:
        HTTPException: 404 if the commit is not stored
    """
    repo = CommitRepository(session)
    commit = repo.get_by_sha(sha)
    if commit is None:
        raise HTTPException(status_code=404, detail="Commit not found")

    response = CommitResponse.model_validate(commit)
    response.files = [
        CommitFileResponse.model_validate(f) for f in repo.list_files(commit.full_sha)
    ]
    return response
