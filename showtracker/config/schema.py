"""Pydantic models for ShowTracker configuration.

These models define the structure of config.toml and secrets.env files.
"""

from pathlib import Path

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    enforce_https: bool = False
    rate_limit_per_minute: int = 60
    # CORS configuration - empty list means same-origin only
    cors_origins: list[str] = []


class DatabaseConfig(BaseModel):
    """MongoDB database configuration."""

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "showtracker"
    min_pool_size: int = 1
    max_pool_size: int = 50


class StorageConfig(BaseModel):
    """Local storage and log file configuration."""

    log_dir: Path = Field(default_factory=lambda: Path("data/logs"))
    log_to_file: bool = False


class SetlistConfig(BaseModel):
    """setlist.fm catalog access."""

    api_url: str = "https://api.setlist.fm/rest/1.0"
    user_agent: str = "ShowTracker/0.4"
    timeout_seconds: float = 10.0
    # Search pagination depth per artist-name variant
    max_pages: int = Field(default=3, ge=1, le=20)
    page_size: int = 20
    # Retries for 429 / 5xx responses on a single request
    retry_attempts: int = Field(default=2, ge=1)
    retry_delay_seconds: float = 1.0


class ImportConfig(BaseModel):
    """Spreadsheet and screenshot import limits."""

    max_rows: int = 5000
    max_upload_mb: int = 10
    write_delay_ms: int = 100
    enrich_setlists: bool = True
    # In-process import batches kept by the API server
    max_sessions: int = 50
    session_ttl_minutes: int = 60

    @property
    def max_upload_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024


class VisionConfig(BaseModel):
    """Claude vision (screenshot analysis) configuration."""

    use_claude_vision: bool = True
    model: str = "claude-sonnet-4-20250514"
    mapping_model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 4096


class ShowtrackerConfig(BaseModel):
    """Main ShowTracker configuration loaded from config.toml."""

    app_name: str = "ShowTracker"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    setlist: SetlistConfig = Field(default_factory=SetlistConfig)
    importer: ImportConfig = Field(default_factory=ImportConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)


class SecretsConfig(BaseModel):
    """Secrets loaded from secrets.env file.

    These are sensitive values that should not be stored in config.toml.
    """

    anthropic_api_key: str | None = None
    setlistfm_api_key: str | None = None
