"""LLM-based commit summarizer."""

import asyncio
import logging
from typing import Optional

from commitscope.annotation.providers.base import LLMProvider
from commitscope.models.remote import CommitDetail

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an experienced software engineer who writes short, factual "
    "summaries of Git commits for a team activity dashboard."
)


SUMMARY_PROMPT = """Analyze the following Git commit and briefly summarize what work was done (2-3 sentences).

Commit message: {message}

Changed files:
{files}

Stats: +{additions}/-{deletions} ({files_changed} files)"""


def build_prompt(detail: CommitDetail) -> str:
    """Build the summary prompt for a commit.

    The prompt is a fixed template over the commit message, one bullet per
    changed file and the aggregate line stats.
    """
    files = "\n".join(
        f"- {f.filename} ({f.status}): +{f.additions}/-{f.deletions}"
        for f in detail.files
    )
    return SUMMARY_PROMPT.format(
        message=detail.message,
        files=files or "- (no file changes)",
        additions=detail.additions,
        deletions=detail.deletions,
        files_changed=detail.files_changed,
    )


class CommitSummarizer:
    """Summarize commits with an LLM provider.

    ``summarize`` never raises: an unreachable provider, an API error or an
    empty completion all yield ``None`` so the caller can still persist the
    commit.
    """

    def __init__(self, provider: LLMProvider, max_tokens: int = 300):
        self.provider = provider
        self.max_tokens = max_tokens

    async def summarize(self, detail: CommitDetail) -> Optional[str]:
        """Summarize a commit.

        Args:
            detail: Commit with per-file changes

        Returns:
            Trimmed summary text, or None on any failure
        """
        try:
            prompt = build_prompt(detail)
            response = await asyncio.to_thread(
                self.provider.complete,
                SYSTEM_PROMPT,
                prompt,
                self.max_tokens,
                0.0,
            )

            summary = (response.content or "").strip()
            if not summary:
                logger.warning(
                    f"  Empty summary from {self.provider.provider_name} for {detail.sha}"
                )
                return None

            cost = self.provider.calculate_cost(
                response.prompt_tokens, response.completion_tokens
            )
            logger.debug(
                f"  Summarized {detail.sha} in {response.duration_ms:.0f}ms "
                f"(tokens={response.total_tokens}, cost=${cost:.5f})"
            )
        except Exception as e:
            logger.warning(f"  AI analysis failed for {detail.sha}: {e}")
            return None

        return summary
