"""Catalog resolver: free-text title to catalog metadata."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from src.core.exceptions import RateLimitedError
from src.integrations.rawg_api import CatalogEntry, RAWGClient
from src.utils.batching import fetch_in_chunks
from src.utils.name_matching import pick_candidate

logger = logging.getLogger("backlogtracker.catalog")

__all__ = ["CatalogResolver"]


class CatalogResolver:
    """Resolves titles against the RAWG catalog.

    "Not found" and rate limiting both resolve to None; a missing or
    rejected key raises AuthConfigurationError.
    """

    def __init__(
        self,
        client: RAWGClient,
        *,
        batch_size: int = 10,
        batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep

    async def resolve_by_title(self, title: str) -> CatalogEntry | None:
        """Resolves one title.

        Args:
            title: User-entered title.

        Returns:
            The exact case-insensitive match if any, else the top candidate,
            else None.

        Raises:
            AuthConfigurationError: If the RAWG key is missing or rejected.
        """
        try:
            candidates = await asyncio.to_thread(self._client.search, title)
        except RateLimitedError as e:
            logger.warning("%s; %r left unresolved", e, title)
            return None

        entry = pick_candidate(title, candidates, lambda c: c.name)
        if entry is None:
            logger.debug("No catalog match for %r", title)
        return entry

    async def resolve_batch_by_titles(self, titles: Sequence[str]) -> dict[str, CatalogEntry | None]:
        """Resolves many titles with the catalog's chunk size and delay.

        Duplicate titles are looked up once.

        Returns:
            Mapping of every input title to its entry or None.
        """
        unique = list(dict.fromkeys(titles))
        results = await fetch_in_chunks(
            unique,
            self.resolve_by_title,
            chunk_size=self._batch_size,
            delay=self._batch_delay,
            sleep=self._sleep,
            label="RAWG",
        )
        resolved = dict(zip(unique, results))
        logger.info("Catalog resolved %d of %d titles", sum(1 for r in results if r), len(unique))
        return resolved
