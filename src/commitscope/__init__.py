"""CommitScope - commit history collection with background fetch jobs."""

__version__ = "0.1.0"
