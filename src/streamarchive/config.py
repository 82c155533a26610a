"""Configuration management for streamarchive."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class MissingCredentialError(Exception):
    """Raised when an upstream call is needed but no API key is configured."""


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with STREAMARCHIVE_ (e.g. STREAMARCHIVE_DATA_DIR).
    The API key is also read from YOUTUBE_API_KEY.
    """

    model_config = {"env_prefix": "STREAMARCHIVE_", "populate_by_name": True}

    # Credential
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("STREAMARCHIVE_API_KEY", "YOUTUBE_API_KEY"),
    )

    # Storage
    data_dir: Path = Field(
        default=Path("docs/assets/data"),
        description="Root directory for the registry, cursor store and transcripts",
    )
    public_dir: Path = Field(
        default=Path("public"),
        description="Directory for the schedule cache documents",
    )
    channels_file: Path | None = None

    # Quota
    videos_per_run: int = 3
    live_page_budget: int = 10
    ended_page_budget: int = 1000
    chat_page_size: int = 200
    upcoming_per_channel: int = 7

    # Upstream
    request_timeout: float = 30.0
    incremental_discovery: bool = False

    @property
    def registry_path(self) -> Path:
        """Video registry document."""
        return self.data_dir / "videos.json"

    @property
    def cursor_path(self) -> Path:
        """Cursor store document."""
        return self.data_dir / "comments_state.json"

    @property
    def transcripts_dir(self) -> Path:
        """Root of the per-channel transcript documents."""
        return self.data_dir / "comments"

    @property
    def schedule_path(self) -> Path:
        return self.public_dir / "live_cache.json"

    @property
    def standing_path(self) -> Path:
        return self.public_dir / "freechat.json"

    def require_api_key(self) -> str:
        """Return the API key or raise MissingCredentialError."""
        if not self.api_key:
            raise MissingCredentialError(
                "YouTube API key is not set. "
                "Export YOUTUBE_API_KEY or STREAMARCHIVE_API_KEY."
            )
        return self.api_key

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.transcripts_dir.mkdir(parents=True, exist_ok=True)


# Module-level default used by the CLI
settings = Settings()
