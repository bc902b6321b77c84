"""
Configuration for the game backlog tracker.

Defaults live on the dataclass, then .env / environment variables are
applied, then the optional JSON settings file. API credentials only ever
come from the environment and are never written back to disk.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from src.core.exceptions import AuthConfigurationError

logger = logging.getLogger("backlogtracker.config")


__all__ = ["Config", "config"]

# Environment variable -> service name used in error messages
_CREDENTIAL_SERVICES: dict[str, str] = {
    "RAWG_API_KEY": "RAWG",
    "IGDB_CLIENT_ID": "IGDB",
    "IGDB_CLIENT_SECRET": "IGDB",
    "STEAM_API_KEY": "Steam Web API",
    "OPENAI_API_KEY": "OpenAI",
}

# Settings-file key -> attribute name for the rate-limit tunables
_TUNABLES: dict[str, str] = {
    "catalog_batch_size": "CATALOG_BATCH_SIZE",
    "catalog_batch_delay": "CATALOG_BATCH_DELAY",
    "playtime_search_batch_size": "PLAYTIME_SEARCH_BATCH_SIZE",
    "playtime_search_delay": "PLAYTIME_SEARCH_DELAY",
    "playtime_multiquery_size": "PLAYTIME_MULTIQUERY_SIZE",
    "playtime_multiquery_delay": "PLAYTIME_MULTIQUERY_DELAY",
    "storefront_batch_size": "STOREFRONT_BATCH_SIZE",
    "storefront_batch_delay": "STOREFRONT_BATCH_DELAY",
    "compat_batch_size": "COMPAT_BATCH_SIZE",
    "compat_batch_delay": "COMPAT_BATCH_DELAY",
    "token_safety_margin": "TOKEN_SAFETY_MARGIN",
    "store_country": "STORE_COUNTRY",
    "openai_model": "OPENAI_MODEL",
}


@dataclass
class Config:
    """
    Central configuration handling for the application.
    Manages paths, API credentials and per-service rate-limit tunables.
    """

    APP_DIR: Path = Path(__file__).parent.parent
    DATA_DIR: Path = APP_DIR / "data"
    SETTINGS_FILE: Path | None = None
    DATABASE_FILE: Path | None = None

    # API KEYS (environment only)
    RAWG_API_KEY: str | None = None
    IGDB_CLIENT_ID: str | None = None
    IGDB_CLIENT_SECRET: str | None = None
    STEAM_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Catalog search (RAWG)
    CATALOG_BATCH_SIZE: int = 10
    CATALOG_BATCH_DELAY: float = 1.0

    # Time-to-beat (IGDB: 4 requests per second, 10 queries per multiquery)
    PLAYTIME_SEARCH_BATCH_SIZE: int = 4
    PLAYTIME_SEARCH_DELAY: float = 1.0
    PLAYTIME_MULTIQUERY_SIZE: int = 10
    PLAYTIME_MULTIQUERY_DELAY: float = 1.0
    TOKEN_SAFETY_MARGIN: int = 300

    # Storefront (Steam store) and compatibility reports (ProtonDB)
    STOREFRONT_BATCH_SIZE: int = 10
    STOREFRONT_BATCH_DELAY: float = 1.1
    COMPAT_BATCH_SIZE: int = 10
    COMPAT_BATCH_DELAY: float = 1.0
    STORE_COUNTRY: str = "US"

    def __post_init__(self):
        """Load environment and settings after instantiation."""
        load_dotenv()

        data_dir = os.getenv("BACKLOG_DATA_DIR")
        if data_dir:
            self.DATA_DIR = Path(data_dir)
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)

        if self.SETTINGS_FILE is None:
            self.SETTINGS_FILE = self.DATA_DIR / "settings.json"
        if self.DATABASE_FILE is None:
            self.DATABASE_FILE = self.DATA_DIR / "library.db"

        for env_name in _CREDENTIAL_SERVICES:
            value = os.getenv(env_name)
            if value:
                setattr(self, env_name, value.strip())

        env_model = os.getenv("OPENAI_MODEL")
        if env_model:
            self.OPENAI_MODEL = env_model

        self._load_settings()

    def _load_settings(self) -> None:
        """Load tunables from the JSON settings file."""
        if not self.SETTINGS_FILE or not self.SETTINGS_FILE.exists():
            return

        try:
            with open(self.SETTINGS_FILE, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not load settings from %s: %s", self.SETTINGS_FILE, e)
            return

        for key, attr in _TUNABLES.items():
            if key in data:
                setattr(self, attr, data[key])

    def save(self) -> None:
        """Save the current tunables to the JSON settings file."""
        data = {key: getattr(self, attr) for key, attr in _TUNABLES.items()}

        try:
            with open(self.SETTINGS_FILE, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error("Could not save settings to %s: %s", self.SETTINGS_FILE, e)

    def require(self, *names: str) -> None:
        """Ensures the named credentials are configured.

        Args:
            *names: Attribute names such as ``"RAWG_API_KEY"``.

        Raises:
            AuthConfigurationError: If any of them is missing, naming all of them.
        """
        missing = [name for name in names if not getattr(self, name, None)]
        if not missing:
            return
        services = sorted({_CREDENTIAL_SERVICES.get(name, name) for name in missing})
        raise AuthConfigurationError(
            ", ".join(services),
            f"Missing configuration: {', '.join(missing)}. Set them in the environment or a .env file.",
        )


# Global instance
config = Config()
