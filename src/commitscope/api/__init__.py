"""CommitScope HTTP API."""
