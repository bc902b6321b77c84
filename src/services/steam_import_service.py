"""Steam library import.

Imports every game a public Steam account owns into the Backlog as PC
games. The import runs detached: ``start`` records a pending status and
returns immediately, and the outcome is written to a per-user status
document that the UI acknowledges once it has shown the message.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from src.config import Config, config
from src.core.exceptions import BacklogTrackerError
from src.core.game import GameList, Platform, format_timestamp
from src.core.library_store import GAMES, NOTIFICATIONS, PROFILE, PROFILE_DOC, LibraryStore
from src.integrations.steam_web_api import SteamWebAPI
from src.services.library_service import utc_now
from src.services.reconciliation_service import ReconciliationEngine

logger = logging.getLogger("backlogtracker.steam_import")

__all__ = ["ImportMode", "ImportResult", "ImportStatus", "STEAM_IMPORT_DOC", "SteamImportService"]

STEAM_IMPORT_DOC = "steamImport"


class ImportMode(str, Enum):
    """NEW skips games already in the library; FULL replaces all PC games."""

    NEW = "new"
    FULL = "full"


class ImportStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    ACKNOWLEDGED = "acknowledged"


@dataclass(frozen=True)
class ImportResult:
    """Counts from a finished import."""

    imported: int
    failed: int

    @property
    def message(self) -> str:
        return f"Import complete. Imported {self.imported} games. Failed to find data for {self.failed} games."


class SteamImportService:
    """Runs Steam library imports for users."""

    def __init__(
        self,
        store: LibraryStore,
        engine: ReconciliationEngine,
        steam_api: SteamWebAPI,
        cfg: Config = config,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._engine = engine
        self._steam_api = steam_api
        self._config = cfg
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()

    def _write_status(self, user_id: str, status: ImportStatus, message: str) -> None:
        doc = {"status": status.value, "message": message, "timestamp": format_timestamp(self._clock())}
        self._store.batch(user_id).set(NOTIFICATIONS, STEAM_IMPORT_DOC, doc).commit()

    def status(self, user_id: str) -> dict[str, Any] | None:
        """Returns the user's import status document, if any."""
        return self._store.get(user_id, NOTIFICATIONS, STEAM_IMPORT_DOC)

    def acknowledge(self, user_id: str) -> None:
        """Marks the last import message as shown."""
        current = self.status(user_id)
        if current is None:
            return
        self._store.batch(user_id).update(
            NOTIFICATIONS, STEAM_IMPORT_DOC, {"status": ImportStatus.ACKNOWLEDGED.value}
        ).commit()

    def start(self, user_id: str, steam_input: str, mode: ImportMode = ImportMode.NEW) -> asyncio.Task:
        """Starts an import in the background and returns right away.

        Must be called from a running event loop.

        Raises:
            AuthConfigurationError: If the Steam Web API or RAWG key is
                missing. Both are checked before anything is started.
        """
        self._config.require("STEAM_API_KEY", "RAWG_API_KEY")

        self._write_status(user_id, ImportStatus.PENDING, "Steam import started.")
        task = asyncio.create_task(self._run_detached(user_id, steam_input, ImportMode(mode)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Steam import (%s) started for %s", ImportMode(mode).value, user_id)
        return task

    async def _run_detached(self, user_id: str, steam_input: str, mode: ImportMode) -> None:
        try:
            result = await self.run_import(user_id, steam_input, mode)
        except BacklogTrackerError as e:
            logger.error("Steam import for %s failed: %s", user_id, e)
            self._write_status(user_id, ImportStatus.FAILED, str(e))
        except Exception as e:
            logger.exception("Steam import for %s failed unexpectedly", user_id)
            self._write_status(user_id, ImportStatus.FAILED, str(e) or "An unknown error occurred during import.")
        else:
            self._write_status(user_id, ImportStatus.COMPLETED, result.message)

    async def run_import(self, user_id: str, steam_input: str, mode: ImportMode) -> ImportResult:
        """Performs the import and writes the games and the SteamID in one batch.

        Nothing is written unless the whole import succeeds.

        Args:
            user_id: Owner of the library.
            steam_input: SteamID64, profile URL or vanity name.
            mode: NEW or FULL.

        Returns:
            Imported and failed counts.

        Raises:
            SteamImportError: If the account or library cannot be read.
            AuthConfigurationError: If a credential is missing or rejected.
        """
        steam_id = await asyncio.to_thread(self._steam_api.resolve_steam_id, steam_input)
        preferences = self._store.preferences(user_id)
        owned = await asyncio.to_thread(self._steam_api.get_owned_games, steam_id)
        existing = self._store.games(user_id)

        batch = self._store.batch(user_id)
        batch.set(PROFILE, PROFILE_DOC, {**self._store.profile(user_id), "steamId": steam_id})
        if mode is ImportMode.NEW:
            known_ids = {g.storefront_product_id for g in existing if g.storefront_product_id is not None}
            owned = [g for g in owned if g.app_id not in known_ids]
        else:
            for game in existing:
                if game.platform is Platform.PC:
                    batch.delete(GAMES, game.id)

        if not owned:
            logger.info("Steam import: no new games to import")
            batch.commit()
            return ImportResult(imported=0, failed=0)

        result = await self._engine.reconcile_batch(
            [g.name for g in owned],
            preferences,
            target_list=GameList.BACKLOG,
            platform=Platform.PC,
            known_product_ids={g.name: g.app_id for g in owned},
            check_compat=preferences.plays_on_steam_deck,
        )

        now = self._clock()
        for game in result.games:
            game_id = self._store.new_id()
            doc = game.to_document()
            doc["dateAdded"] = format_timestamp(now)
            batch.set(GAMES, game_id, doc)
        batch.commit()

        logger.info("Steam import for %s: %d imported, %d failed", user_id, len(result.games), result.failed_count)
        return ImportResult(imported=len(result.games), failed=result.failed_count)
