"""Compatibility refresh and wishlist deals for PC games."""

from __future__ import annotations

import logging

from src.core.game import CanonicalGame, GameList, Platform
from src.core.library_store import GAMES, LibraryStore
from src.integrations.steam_store import Deal
from src.services.resolvers.storefront_resolver import StorefrontResolver

logger = logging.getLogger("backlogtracker.compat_refresh")

__all__ = ["CompatRefreshService", "find_wishlist_deals"]


async def find_wishlist_deals(games: list[CanonicalGame], storefront: StorefrontResolver) -> dict[int, Deal]:
    """Looks up current discounts for PC wishlist games with a Steam app id.

    Returns:
        App id -> deal, only for discounted apps.
    """
    product_ids = [
        g.storefront_product_id
        for g in games
        if g.list is GameList.WISHLIST and g.platform is Platform.PC and g.storefront_product_id is not None
    ]
    if not product_ids:
        return {}
    return await storefront.resolve_discounts(product_ids)


class CompatRefreshService:
    """Re-resolves compatibility tiers for a user's PC games."""

    def __init__(self, store: LibraryStore, storefront: StorefrontResolver) -> None:
        self._store = store
        self._storefront = storefront

    async def refresh(self, user_id: str) -> int:
        """Refreshes tiers and writes only the ones that changed.

        All changes commit in one batch.

        Returns:
            Number of games whose tier changed.
        """
        games = [
            g for g in self._store.games(user_id) if g.platform is Platform.PC and g.storefront_product_id is not None
        ]
        if not games:
            logger.info("No PC games with Steam app ids to refresh")
            return 0

        tiers = await self._storefront.resolve_compatibility_batch([g.storefront_product_id for g in games])

        batch = self._store.batch(user_id)
        for game in games:
            tier = tiers.get(game.storefront_product_id)
            if tier is not None and tier != game.compatibility_tier:
                batch.update(GAMES, game.id, {"steamDeckCompat": tier.value})
        changed = len(batch)
        if changed:
            batch.commit()

        logger.info("Compatibility refresh: %d of %d games changed", changed, len(games))
        return changed
