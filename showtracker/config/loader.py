"""Configuration loader for ShowTracker.

Loads configuration from TOML files and secrets from .env files.
Environment variables can override any configuration value.
"""

import logging
import os
from pathlib import Path
from typing import Any

from showtracker.config.schema import SecretsConfig, ShowtrackerConfig

logger = logging.getLogger(__name__)

# Try to import tomllib (Python 3.11+) or fall back to tomli
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found,no-redef]

ENV_PREFIX = "SHOWTRACKER"

# Env var -> (section, key, type)
_ENV_MAPPINGS: dict[str, tuple[str, str, type]] = {
    # Server
    f"{ENV_PREFIX}_SERVER_HOST": ("server", "host", str),
    f"{ENV_PREFIX}_SERVER_PORT": ("server", "port", int),
    f"{ENV_PREFIX}_SERVER_DEBUG": ("server", "debug", bool),
    f"{ENV_PREFIX}_DEBUG": ("server", "debug", bool),  # Shorthand
    f"{ENV_PREFIX}_PORT": ("server", "port", int),  # Shorthand
    # Database
    f"{ENV_PREFIX}_MONGODB_URL": ("database", "mongodb_url", str),
    f"{ENV_PREFIX}_MONGODB_DATABASE": ("database", "mongodb_database", str),
    # Storage
    f"{ENV_PREFIX}_LOG_DIR": ("storage", "log_dir", str),
    f"{ENV_PREFIX}_LOG_TO_FILE": ("storage", "log_to_file", bool),
    # Setlist catalog
    f"{ENV_PREFIX}_SETLIST_API_URL": ("setlist", "api_url", str),
    f"{ENV_PREFIX}_SETLIST_TIMEOUT_SECONDS": ("setlist", "timeout_seconds", float),
    f"{ENV_PREFIX}_SETLIST_MAX_PAGES": ("setlist", "max_pages", int),
    # Import
    f"{ENV_PREFIX}_IMPORT_MAX_ROWS": ("importer", "max_rows", int),
    f"{ENV_PREFIX}_IMPORT_ENRICH_SETLISTS": ("importer", "enrich_setlists", bool),
    f"{ENV_PREFIX}_IMPORT_WRITE_DELAY_MS": ("importer", "write_delay_ms", int),
    f"{ENV_PREFIX}_IMPORT_MAX_SESSIONS": ("importer", "max_sessions", int),
    f"{ENV_PREFIX}_IMPORT_SESSION_TTL_MINUTES": ("importer", "session_ttl_minutes", int),
    # Vision
    f"{ENV_PREFIX}_USE_CLAUDE_VISION": ("vision", "use_claude_vision", bool),
}

# secrets.env / environment key -> SecretsConfig field
_SECRET_KEYS: dict[str, str] = {
    f"{ENV_PREFIX}_ANTHROPIC_API_KEY": "anthropic_api_key",
    "ANTHROPIC_API_KEY": "anthropic_api_key",
    f"{ENV_PREFIX}_SETLISTFM_API_KEY": "setlistfm_api_key",
    "SETLISTFM_API_KEY": "setlistfm_api_key",
}


def get_config_search_paths() -> list[Path]:
    """Get the list of paths to search for configuration files.

    Returns paths in priority order (first found wins):
    1. ./config.toml (project root - for development)
    2. ~/.config/showtracker/config.toml (user config)
    3. /opt/showtracker/config.toml (production install)
    4. /etc/showtracker/config.toml (system config)
    """
    return [
        Path.cwd() / "config.toml",
        Path.home() / ".config" / "showtracker" / "config.toml",
        Path("/opt/showtracker/config.toml"),
        Path("/etc/showtracker/config.toml"),
    ]


def get_secrets_search_paths() -> list[Path]:
    """Get the list of paths to search for secrets files, same order as config."""
    return [path.with_name("secrets.env") for path in get_config_search_paths()]


def _first_existing(paths: list[Path]) -> Path | None:
    for path in paths:
        if path.exists() and path.is_file():
            logger.debug("Found file: %s", path)
            return path
    return None


def find_config_file() -> Path | None:
    """Find the first existing config file from search paths."""
    return _first_existing(get_config_search_paths())


def find_secrets_file() -> Path | None:
    """Find the first existing secrets file from search paths."""
    return _first_existing(get_secrets_search_paths())


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a simple .env file into a dictionary.

    Supports:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    env_vars: dict[str, str] = {}

    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            env_vars[key] = value

    return env_vars


def _coerce(value: str, kind: type) -> Any:
    if kind is bool:
        return value.lower() in ("true", "1", "yes")
    return kind(value)


def apply_env_overrides(config_dict: dict[str, Any]) -> None:
    """Apply SHOWTRACKER_* environment variable overrides in place.

    SHOWTRACKER_SETLIST_MAX_PAGES=5 -> config_dict["setlist"]["max_pages"] = 5
    """
    for env_var, (section, key, kind) in _ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        config_dict.setdefault(section, {})[key] = _coerce(value, kind)


def load_secrets(secrets_file: Path | None = None) -> SecretsConfig:
    """Load secrets from environment variables and optional secrets.env file.

    Environment variables take precedence over file values.
    """
    secrets_dict: dict[str, str] = {}

    if secrets_file is None:
        secrets_file = find_secrets_file()

    if secrets_file and secrets_file.exists():
        logger.info("Loading secrets from: %s", secrets_file)
        file_secrets = parse_env_file(secrets_file)
        for file_key, config_key in _SECRET_KEYS.items():
            if file_secrets.get(file_key):
                secrets_dict[config_key] = file_secrets[file_key]

    for env_var, config_key in _SECRET_KEYS.items():
        value = os.environ.get(env_var)
        if value:
            secrets_dict[config_key] = value

    return SecretsConfig(**secrets_dict)


def load_config(config_file: Path | None = None) -> ShowtrackerConfig:
    """Load configuration from TOML file with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.

    Returns:
        ShowtrackerConfig instance with all settings loaded.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info("Loading config from: %s", config_file)
        config_dict = load_toml_file(config_file)
    else:
        logger.info("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)

    return ShowtrackerConfig(**config_dict)
