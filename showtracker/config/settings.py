"""Global settings instance for ShowTracker.

Combines config.toml, secrets.env and environment overrides behind a flat
attribute interface.
"""

import logging
from pathlib import Path

from showtracker.config.loader import load_config, load_secrets
from showtracker.config.schema import SecretsConfig, ShowtrackerConfig

logger = logging.getLogger(__name__)


class Settings:
    """Unified settings object combining config and secrets."""

    def __init__(
        self,
        config: ShowtrackerConfig | None = None,
        secrets: SecretsConfig | None = None,
    ):
        self._config = config or load_config()
        self._secrets = secrets or load_secrets()

        if not self._secrets.setlistfm_api_key:
            logger.warning(
                "No setlist.fm API key configured. Setlist search and matching "
                "will return no results. Set SHOWTRACKER_SETLISTFM_API_KEY."
            )

    @property
    def config(self) -> ShowtrackerConfig:
        return self._config

    @property
    def secrets(self) -> SecretsConfig:
        return self._secrets

    # Application
    @property
    def app_name(self) -> str:
        return self._config.app_name

    @property
    def debug(self) -> bool:
        return self._config.server.debug

    # Server
    @property
    def host(self) -> str:
        return self._config.server.host

    @property
    def port(self) -> int:
        return self._config.server.port

    @property
    def enforce_https(self) -> bool:
        return self._config.server.enforce_https

    @property
    def rate_limit_per_minute(self) -> int:
        return self._config.server.rate_limit_per_minute

    @property
    def cors_origins(self) -> list[str]:
        return self._config.server.cors_origins

    # Database
    @property
    def mongodb_url(self) -> str:
        return self._config.database.mongodb_url

    @property
    def mongodb_database(self) -> str:
        return self._config.database.mongodb_database

    @property
    def min_pool_size(self) -> int:
        return self._config.database.min_pool_size

    @property
    def max_pool_size(self) -> int:
        return self._config.database.max_pool_size

    # Storage / logging
    @property
    def log_dir(self) -> Path:
        return self._config.storage.log_dir

    @property
    def log_to_file(self) -> bool:
        return self._config.storage.log_to_file

    # Setlist catalog
    @property
    def setlist_api_url(self) -> str:
        return self._config.setlist.api_url

    @property
    def setlist_user_agent(self) -> str:
        return self._config.setlist.user_agent

    @property
    def setlist_timeout_seconds(self) -> float:
        return self._config.setlist.timeout_seconds

    @property
    def setlist_max_pages(self) -> int:
        return self._config.setlist.max_pages

    @property
    def setlist_page_size(self) -> int:
        return self._config.setlist.page_size

    @property
    def setlist_retry_attempts(self) -> int:
        return self._config.setlist.retry_attempts

    @property
    def setlist_retry_delay_seconds(self) -> float:
        return self._config.setlist.retry_delay_seconds

    # Import
    @property
    def import_max_rows(self) -> int:
        return self._config.importer.max_rows

    @property
    def max_upload_size_bytes(self) -> int:
        return self._config.importer.max_upload_bytes

    @property
    def import_write_delay_seconds(self) -> float:
        return self._config.importer.write_delay_ms / 1000

    @property
    def import_enrich_setlists(self) -> bool:
        return self._config.importer.enrich_setlists

    @property
    def import_max_sessions(self) -> int:
        return self._config.importer.max_sessions

    @property
    def import_session_ttl_seconds(self) -> float:
        return self._config.importer.session_ttl_minutes * 60

    # Vision
    @property
    def use_claude_vision(self) -> bool:
        return self._config.vision.use_claude_vision

    @property
    def vision_model(self) -> str:
        return self._config.vision.model

    @property
    def mapping_model(self) -> str:
        return self._config.vision.mapping_model

    @property
    def vision_max_tokens(self) -> int:
        return self._config.vision.max_tokens

    # Secrets
    @property
    def anthropic_api_key(self) -> str | None:
        return self._secrets.anthropic_api_key

    @property
    def setlistfm_api_key(self) -> str | None:
        return self._secrets.setlistfm_api_key


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance.

    This is primarily useful for testing to reload configuration.
    """
    global _settings
    _settings = None


class _SettingsProxy:
    """Proxy object that lazily loads settings on first access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)

    def __repr__(self) -> str:
        return repr(get_settings())


settings = _SettingsProxy()
