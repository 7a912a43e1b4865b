"""Commit annotation: LLM providers and the commit summarizer."""

from .summarizer import CommitSummarizer, build_prompt

__all__ = [
    "CommitSummarizer",
    "build_prompt",
]
