"""Database access for CommitScope."""
