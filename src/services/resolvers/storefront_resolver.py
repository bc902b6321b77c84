"""Storefront resolver: Steam app ids, compatibility tiers and discounts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from src.core.exceptions import RateLimitedError
from src.core.game import CompatibilityTier
from src.integrations.protondb_api import ProtonDBClient
from src.integrations.steam_store import Deal, SteamStoreClient
from src.utils.batching import fetch_in_chunks
from src.utils.name_matching import pick_candidate

logger = logging.getLogger("backlogtracker.storefront")

__all__ = ["StorefrontDetails", "StorefrontResolver"]


@dataclass(frozen=True)
class StorefrontDetails:
    """Storefront data for one PC title.

    Attributes:
        product_id: Steam app id.
        compatibility_tier: Handheld tier, None when not requested.
    """

    product_id: int
    compatibility_tier: CompatibilityTier | None = None


class StorefrontResolver:
    """Resolves Steam product data for PC titles."""

    def __init__(
        self,
        store: SteamStoreClient,
        protondb: ProtonDBClient,
        *,
        batch_size: int = 10,
        batch_delay: float = 1.1,
        compat_batch_size: int = 10,
        compat_batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._protondb = protondb
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._compat_batch_size = compat_batch_size
        self._compat_batch_delay = compat_batch_delay
        self._sleep = sleep

    async def resolve_product(self, title: str) -> int | None:
        """Finds the Steam app id for a title.

        Returns:
            The exact-match app id, else the top result's, else None.
        """
        try:
            items = await asyncio.to_thread(self._store.search, title)
        except RateLimitedError as e:
            logger.warning("%s; %r left unresolved", e, title)
            return None

        match = pick_candidate(title, items, lambda item: item["name"])
        if match is None:
            logger.debug("No storefront match for %r", title)
            return None
        return match["id"]

    async def resolve_compatibility(self, product_id: int) -> CompatibilityTier:
        """Looks up the compatibility tier; UNKNOWN on any failure."""
        try:
            tier = await asyncio.to_thread(self._protondb.get_tier, product_id)
        except RateLimitedError as e:
            logger.warning("%s; compatibility for app %d unknown", e, product_id)
            return CompatibilityTier.UNKNOWN
        return tier or CompatibilityTier.UNKNOWN

    async def resolve_compatibility_batch(self, product_ids: Sequence[int]) -> dict[int, CompatibilityTier]:
        """Looks up tiers for many app ids with the compatibility tunables."""
        unique = list(dict.fromkeys(product_ids))
        tiers = await fetch_in_chunks(
            unique,
            self.resolve_compatibility,
            chunk_size=self._compat_batch_size,
            delay=self._compat_batch_delay,
            sleep=self._sleep,
            label="ProtonDB",
        )
        return {pid: tier or CompatibilityTier.UNKNOWN for pid, tier in zip(unique, tiers)}

    async def resolve_discounts(self, product_ids: Sequence[int]) -> dict[int, Deal]:
        """Reads current discounts for a set of app ids in one request.

        Returns:
            Only app ids with a positive discount. Map membership is the
            "has a deal" signal.
        """
        unique = list(dict.fromkeys(product_ids))
        if not unique:
            return {}
        try:
            deals = await asyncio.to_thread(self._store.get_discounts, unique)
        except RateLimitedError as e:
            logger.warning("%s; discounts unavailable", e)
            return {}
        logger.info("%d of %d apps are discounted", len(deals), len(unique))
        return deals

    async def resolve_details(self, title: str, check_compat: bool) -> StorefrontDetails | None:
        """Resolves the app id and, if asked and found, the compatibility tier."""
        product_id = await self.resolve_product(title)
        if product_id is None:
            return None
        tier = await self.resolve_compatibility(product_id) if check_compat else None
        return StorefrontDetails(product_id=product_id, compatibility_tier=tier)

    async def resolve_batch(self, titles: Sequence[str], check_compat: bool) -> dict[str, StorefrontDetails | None]:
        """Resolves storefront data for many titles.

        App ids are searched in storefront-sized chunks; compatibility is
        then looked up only for titles that resolved.

        Returns:
            Mapping of every input title to its details or None.
        """
        unique = list(dict.fromkeys(titles))
        product_ids = await fetch_in_chunks(
            unique,
            self.resolve_product,
            chunk_size=self._batch_size,
            delay=self._batch_delay,
            sleep=self._sleep,
            label="Steam Store",
        )
        found = {title: pid for title, pid in zip(unique, product_ids) if pid is not None}

        tiers: dict[int, CompatibilityTier] = {}
        if check_compat and found:
            tiers = await self.resolve_compatibility_batch(list(found.values()))

        return {
            title: (
                StorefrontDetails(product_id=found[title], compatibility_tier=tiers.get(found[title]))
                if title in found
                else None
            )
            for title in unique
        }
