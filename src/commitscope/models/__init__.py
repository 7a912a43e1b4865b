"""Database and transfer models."""
