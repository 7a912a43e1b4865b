"""
Typed job payloads.

The queue stores payloads as plain dicts; the worker validates them into
one member of the ``JobPayload`` union keyed by job type.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

from .models import JobType


class FetchCommitsPayload(BaseModel):
    """Input of a batch commit fetch."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["fetch-commits"] = "fetch-commits"
    repositories: list[str] = Field(
        ..., min_length=1, validation_alias=AliasChoices("repositories", "repos")
    )
    author_allow_list: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("authorAllowList", "author_allow_list", "filterAuthors"),
    )
    email_allow_list: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("emailAllowList", "email_allow_list", "filterEmails"),
    )
    since: Optional[datetime] = None
    per_repo_detail_cap: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("perRepoDetailCap", "per_repo_detail_cap", "limit"),
    )
    annotate: bool = Field(default=False, validation_alias=AliasChoices("annotate", "useAI"))


class FullCollectionPayload(BaseModel):
    """Input of a full-history collection run."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["fetch-all"] = "fetch-all"
    all_history: bool = Field(
        default=True, validation_alias=AliasChoices("allHistory", "all_history")
    )


JobPayload = Annotated[
    Union[FetchCommitsPayload, FullCollectionPayload],
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter[JobPayload] = TypeAdapter(JobPayload)


def parse_payload(job_type: JobType, data: dict[str, Any]) -> JobPayload:
    """
    Validate a raw payload for a job type.

    Raises:
        pydantic.ValidationError: If the payload does not fit the job type
    """
    return _payload_adapter.validate_python({**data, "kind": job_type.value})
