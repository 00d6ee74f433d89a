"""ShowTracker configuration module.

TOML-based configuration with environment variable overrides.

Configuration is loaded from the following locations (in order of priority):
1. Environment variables (highest priority)
2. ./config.toml (project root - for development)
3. ~/.config/showtracker/config.toml (user config)
4. /opt/showtracker/config.toml (production install)
5. /etc/showtracker/config.toml (system config)

Secrets (API keys) are loaded from secrets.env files in the same directories.
"""

from showtracker.config.schema import (
    DatabaseConfig,
    ImportConfig,
    SecretsConfig,
    ServerConfig,
    SetlistConfig,
    ShowtrackerConfig,
    StorageConfig,
    VisionConfig,
)
from showtracker.config.settings import get_settings, reset_settings, settings

__all__ = [
    "DatabaseConfig",
    "ImportConfig",
    "SecretsConfig",
    "ServerConfig",
    "SetlistConfig",
    "ShowtrackerConfig",
    "StorageConfig",
    "VisionConfig",
    "get_settings",
    "reset_settings",
    "settings",
]
