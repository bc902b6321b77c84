"""Wiring of clients, resolvers and services from configuration.

The container owns the process-wide objects (HTTP sessions, the IGDB
token cache, the store connection) so callers build it once and share it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from src.config import Config, config
from src.core.library_store import LibraryStore
from src.integrations.igdb_api import IGDBClient, TokenCache
from src.integrations.openai_oracle import OpenAIOracle
from src.integrations.protondb_api import ProtonDBClient
from src.integrations.rawg_api import RAWGClient
from src.integrations.steam_store import SteamStoreClient
from src.integrations.steam_web_api import SteamWebAPI
from src.services.compat_refresh_service import CompatRefreshService
from src.services.library_service import LibraryService
from src.services.reconciliation_service import ReconciliationEngine
from src.services.recommendation_service import RecommendationService
from src.services.resolvers import CatalogResolver, PlaytimeResolver, StorefrontResolver
from src.services.steam_import_service import SteamImportService

logger = logging.getLogger("backlogtracker.bootstrap")

__all__ = ["ServiceContainer", "build_services"]


@dataclass
class ServiceContainer:
    """Everything a surface (web route, worker, script) needs."""

    store: LibraryStore
    token_cache: TokenCache
    catalog: CatalogResolver
    playtime: PlaytimeResolver
    storefront: StorefrontResolver
    engine: ReconciliationEngine
    library: LibraryService
    recommendations: RecommendationService
    steam_import: SteamImportService
    compat_refresh: CompatRefreshService

    def close(self) -> None:
        self.store.close()


def build_services(
    cfg: Config = config,
    store: LibraryStore | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ServiceContainer:
    """Builds the service graph.

    Credentials are not checked here; each client raises
    AuthConfigurationError on first use if its key is missing.

    Args:
        cfg: Configuration to read credentials and tunables from.
        store: Store to use instead of opening cfg.DATABASE_FILE.
        sleep: Inter-chunk sleep for every resolver.

    Returns:
        The wired container.
    """
    store = store or LibraryStore(cfg.DATABASE_FILE)
    token_cache = TokenCache()

    catalog = CatalogResolver(
        RAWGClient(cfg.RAWG_API_KEY),
        batch_size=cfg.CATALOG_BATCH_SIZE,
        batch_delay=cfg.CATALOG_BATCH_DELAY,
        sleep=sleep,
    )
    playtime = PlaytimeResolver(
        IGDBClient(cfg.IGDB_CLIENT_ID, cfg.IGDB_CLIENT_SECRET),
        token_cache,
        token_safety_margin=cfg.TOKEN_SAFETY_MARGIN,
        search_batch_size=cfg.PLAYTIME_SEARCH_BATCH_SIZE,
        search_delay=cfg.PLAYTIME_SEARCH_DELAY,
        multiquery_size=cfg.PLAYTIME_MULTIQUERY_SIZE,
        multiquery_delay=cfg.PLAYTIME_MULTIQUERY_DELAY,
        sleep=sleep,
    )
    storefront = StorefrontResolver(
        SteamStoreClient(country=cfg.STORE_COUNTRY),
        ProtonDBClient(),
        batch_size=cfg.STOREFRONT_BATCH_SIZE,
        batch_delay=cfg.STOREFRONT_BATCH_DELAY,
        compat_batch_size=cfg.COMPAT_BATCH_SIZE,
        compat_batch_delay=cfg.COMPAT_BATCH_DELAY,
        sleep=sleep,
    )
    engine = ReconciliationEngine(catalog, playtime, storefront)

    logger.debug("Services built (store: %s)", store.db_path)
    return ServiceContainer(
        store=store,
        token_cache=token_cache,
        catalog=catalog,
        playtime=playtime,
        storefront=storefront,
        engine=engine,
        library=LibraryService(store, engine),
        recommendations=RecommendationService(OpenAIOracle(cfg.OPENAI_API_KEY, cfg.OPENAI_MODEL)),
        steam_import=SteamImportService(store, engine, SteamWebAPI(cfg.STEAM_API_KEY), cfg),
        compat_refresh=CompatRefreshService(store, storefront),
    )
