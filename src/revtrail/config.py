"""revtrail Configuration Module.

This module provides centralized configuration for all revtrail components.
All settings support environment variable overrides with REVTRAIL_ prefix.

Usage:
    from revtrail.config import settings

    # Access git settings
    print(settings.git.abbrev_length)

    # Access logging settings
    print(settings.logging.log_level)
"""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "Settings",
    "GitSettings",
    "LoggingSettings",
    "settings",
]


class GitSettings(BaseSettings):
    """Configuration for invoking the git client.

    Controls which executable is run, how revisions are abbreviated and how
    much parallelism tag indexing may use.
    """

    model_config = SettingsConfigDict(env_prefix="REVTRAIL_GIT__")

    command: str = Field(
        default="git",
        description="Git executable used for every repository command",
    )
    abbrev_length: int = Field(
        default=8,
        description=(
            "Abbreviated revision length used in log output. Blame output is "
            "requested one shorter because git pads blame hashes by one"
        ),
    )
    remote_name: str = Field(
        default="origin",
        description="Remote whose fetch URL is reported as the parent",
    )
    tag_workers: int = Field(
        default=4,
        description="Maximum concurrent per-tag detail queries (1 = sequential)",
    )
    command_timeout: float | None = Field(
        default=None,
        description="Seconds before a git command is killed (None = no limit)",
    )
    handle_renamed_files: bool = Field(
        default=True,
        description="Follow renames when building a file's history log command",
    )

    @property
    def blame_abbrev_length(self) -> int:
        return self.abbrev_length - 1


class LoggingSettings(BaseSettings):
    """Configuration for structlog output."""

    model_config = SettingsConfigDict(env_prefix="REVTRAIL_LOGGING__")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="json",
        description='Output format ("json" or "console")',
    )


class Settings(BaseSettings):
    """Root settings class that composes all configuration sections.

    Use the module-level `settings` singleton for convenience.

    Example:
        from revtrail.config import settings

        settings.git.command
        settings.logging.log_format
    """

    model_config = SettingsConfigDict(env_prefix="REVTRAIL_")

    git: GitSettings = Field(default_factory=GitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def model_post_init(self, context: Any) -> None:
        """Validate settings after initialization."""
        if self.git.abbrev_length < 2:
            raise ValueError(
                f"abbrev_length must be at least 2, got {self.git.abbrev_length}"
            )
        if self.git.tag_workers < 1:
            raise ValueError(
                f"tag_workers must be at least 1, got {self.git.tag_workers}"
            )
        if self.git.command_timeout is not None and self.git.command_timeout <= 0:
            raise ValueError(
                f"command_timeout must be positive, got {self.git.command_timeout}"
            )
        if self.logging.log_format not in ("json", "console"):
            raise ValueError(
                f"log_format must be 'json' or 'console', "
                f"got {self.logging.log_format!r}"
            )


# Module-level singleton instance
settings = Settings()
