from __future__ import annotations

__all__: list[str] = ["CatalogEntry", "RAWGClient", "SteamStoreClient", "SteamWebAPI"]

from src.integrations.rawg_api import CatalogEntry, RAWGClient
from src.integrations.steam_store import SteamStoreClient
from src.integrations.steam_web_api import SteamWebAPI
