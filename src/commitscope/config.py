"""
CommitScope Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for CommitScope logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/commitscope if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/commitscope if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "commitscope" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "commitscope" / "logs")

    return "./logs"


def split_csv(value: str) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty entries."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./data/commits.db"

    # GitHub
    github_token: str = ""
    github_username: str = ""
    github_api_url: str = "https://api.github.com"
    github_per_page: int = 100
    github_timeout: float = 30.0

    # Summarization
    llm_provider: Literal["openai", "anthropic"] = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None  # OpenAI-compatible endpoints (e.g. Mistral)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-20241022"
    summary_max_tokens: int = 300

    # Collection filters (comma-separated)
    filter_authors: str = ""
    filter_emails: str = ""
    blacklist_authors: str = ""
    repos: str = ""  # owner/name list for full collection
    days_back: Optional[int] = None  # None = all history

    # Batch fetch defaults
    default_since_days: int = 30
    per_repo_detail_cap: int = 5
    request_delay_seconds: float = 0.1  # Between detail fetches and repositories
    page_delay_seconds: float = 0.2  # Between listing pages

    # Job queue
    job_retention_minutes: int = 60
    job_sweep_interval_minutes: int = 10
    job_timeout_seconds: float = 1800  # 0 disables the watchdog
    full_collection_timeout_seconds: float = 21600  # fetch-all jobs; 0 disables
    full_collection_mode: Literal["subprocess", "inprocess"] = "subprocess"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: Literal["standard", "json"] = "standard"
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5

    @property
    def filter_author_list(self) -> list[str]:
        return split_csv(self.filter_authors)

    @property
    def filter_email_list(self) -> list[str]:
        return split_csv(self.filter_emails)

    @property
    def blacklist_author_list(self) -> list[str]:
        return split_csv(self.blacklist_authors)

    @property
    def repo_list(self) -> list[str]:
        return split_csv(self.repos)

    @property
    def llm_api_key(self) -> str:
        """API key of the configured summarization provider."""
        if self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()
