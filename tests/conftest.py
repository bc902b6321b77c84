# tests/conftest.py
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generator
from unittest.mock import MagicMock

# Keep the module-level Config from creating data/ inside the checkout
os.environ.setdefault("BACKLOG_DATA_DIR", tempfile.mkdtemp(prefix="backlog-tests-"))

import pytest

from src.core.game import CanonicalGame, CompatibilityTier, GameList, Platform
from src.core.library_store import LibraryStore
from src.integrations.igdb_api import IGDBClient, TokenCache
from src.integrations.protondb_api import ProtonDBClient
from src.integrations.rawg_api import CatalogEntry, RAWGClient
from src.integrations.steam_store import SteamStoreClient
from src.services.reconciliation_service import ReconciliationEngine
from src.services.resolvers import CatalogResolver, PlaytimeResolver, StorefrontResolver

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@dataclass
class FakeBackends:
    """Scripted responses for every external service the engine talks to.

    Keys are the exact strings the clients are called with.
    """

    catalog: dict[str, list[CatalogEntry]] = field(default_factory=dict)
    igdb_search: dict[str, list[dict]] = field(default_factory=dict)
    time_to_beat: dict[int, tuple[int | None, int | None]] = field(default_factory=dict)
    store_search: dict[str, list[dict]] = field(default_factory=dict)
    tiers: dict[int, CompatibilityTier] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.sleep = RecordingSleep()
        self.token_cache = TokenCache()

        self.rawg = MagicMock(spec=RAWGClient)
        self.rawg.search.side_effect = lambda title, page_size=10: list(self.catalog.get(title, []))

        self.igdb = MagicMock(spec=IGDBClient)
        self.igdb.request_token.return_value = ("test-token", 3600)
        self.igdb.search_games.side_effect = lambda title, token, limit=10: list(self.igdb_search.get(title, []))
        self.igdb.query_time_to_beat.side_effect = lambda ids, token: {
            gid: self.time_to_beat[gid] for gid in ids if gid in self.time_to_beat
        }

        self.steam_store = MagicMock(spec=SteamStoreClient)
        self.steam_store.search.side_effect = lambda term: list(self.store_search.get(term, []))
        self.steam_store.get_discounts.return_value = {}

        self.protondb = MagicMock(spec=ProtonDBClient)
        self.protondb.get_tier.side_effect = lambda app_id: self.tiers.get(app_id)

    def catalog_resolver(self) -> CatalogResolver:
        return CatalogResolver(self.rawg, sleep=self.sleep)

    def playtime_resolver(self) -> PlaytimeResolver:
        return PlaytimeResolver(self.igdb, self.token_cache, clock=lambda: 1_000_000.0, sleep=self.sleep)

    def storefront_resolver(self) -> StorefrontResolver:
        return StorefrontResolver(self.steam_store, self.protondb, sleep=self.sleep)

    def engine(self) -> ReconciliationEngine:
        return ReconciliationEngine(self.catalog_resolver(), self.playtime_resolver(), self.storefront_resolver())


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def backends() -> FakeBackends:
    """Empty scripted backends; tests fill in what they need."""
    return FakeBackends()


@pytest.fixture
def known_game_backends() -> FakeBackends:
    """Backends that know exactly one PC title, "Known Game"."""
    return FakeBackends(
        catalog={
            "Known Game": [
                CatalogEntry(
                    id=101,
                    name="Known Game",
                    image_url="https://img.example/known.jpg",
                    genres=("Action", "RPG"),
                    release_date="2020-05-01",
                    playtime_hours=12,
                    platforms=("PC", "PlayStation 5"),
                )
            ]
        },
        igdb_search={"Known Game": [{"id": 9001, "name": "Known Game"}]},
        time_to_beat={9001: (36000, 90000)},
        store_search={"Known Game": [{"id": 4242, "name": "Known Game"}]},
        tiers={4242: CompatibilityTier.GOLD},
    )


@pytest.fixture
def store(tmp_path) -> Generator[LibraryStore, None, None]:
    """LibraryStore on a temporary SQLite file."""
    library = LibraryStore(tmp_path / "library.db")
    yield library
    library.close()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def sample_games() -> list[CanonicalGame]:
    """A small library across lists and platforms."""
    return [
        CanonicalGame(
            id="g1",
            title="Hollow Knight",
            platform=Platform.PC,
            list=GameList.BACKLOG,
            genres=["Action", "Metroidvania"],
            playtime_normally=27,
            storefront_product_id=367520,
            compatibility_tier=CompatibilityTier.PLATINUM,
        ),
        CanonicalGame(
            id="g2",
            title="Persona 5 Royal",
            platform=Platform.PLAYSTATION,
            list=GameList.WISHLIST,
            genres=["RPG"],
            rating=5,
        ),
        CanonicalGame(
            id="g3",
            title="Celeste",
            platform=Platform.NINTENDO_SWITCH,
            list=GameList.RECENTLY_PLAYED,
            genres=["Platformer"],
            replay_count=2,
            date_completed=FIXED_NOW,
        ),
    ]
