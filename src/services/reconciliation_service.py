"""Reconciliation engine: merges resolver outputs into canonical game records.

Pure orchestration with no storage or UI dependency. Single-title and
batch entry points share the same merge policy:

- title: the catalog name replaces the entered title only while searching.
- platform: explicit choice, else detected from catalog platforms.
- playtime: IGDB estimate, else the catalog's coarse estimate, else the
  entered value; never zero.
- storefront fields: only for PC; cleared when the platform leaves PC.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Sequence

from src.core.game import CanonicalGame, CompatibilityTier, GameList, Platform
from src.core.preferences import UserPreferences
from src.integrations.rawg_api import CatalogEntry
from src.services.platform_detection import detect_platform
from src.services.resolvers.catalog_resolver import CatalogResolver
from src.services.resolvers.playtime_resolver import PlaytimeEstimate, PlaytimeResolver
from src.services.resolvers.storefront_resolver import StorefrontDetails, StorefrontResolver
from src.utils.batching import gather_or_cancel
from src.utils.name_matching import unique_casefold

logger = logging.getLogger("backlogtracker.reconciliation")

__all__ = ["BatchReconciliation", "GameDraft", "ReconciliationEngine"]


@dataclass(frozen=True)
class GameDraft:
    """What the user typed in before enrichment.

    Attributes:
        title: Entered title.
        list: Target status list.
        platform: Explicit platform choice, None to auto-detect.
        genres: User-chosen genres, merged with catalog genres.
        rating: User rating 1-5 or None.
        playtime_normally: Entered main-story hours, used as last fallback.
        playtime_completely: Entered completion hours, used as last fallback.
        storefront_product_id: Known Steam app id (skips the store search).
        replay_count: Carried over unchanged.
    """

    title: str
    list: GameList = GameList.BACKLOG
    platform: Platform | None = None
    genres: tuple[str, ...] = ()
    rating: int | None = None
    playtime_normally: int | None = None
    playtime_completely: int | None = None
    storefront_product_id: int | None = None
    replay_count: int = 0


@dataclass(frozen=True)
class BatchReconciliation:
    """Outcome of a batch reconciliation.

    Attributes:
        games: Records for titles the catalog resolved, in input order.
        failed_titles: Titles the catalog could not resolve.
    """

    games: list[CanonicalGame] = field(default_factory=list)
    failed_titles: list[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_titles)


def _positive(value: int | None) -> int | None:
    return value if value is not None and value > 0 else None


def _merge(
    draft: GameDraft,
    entry: CatalogEntry | None,
    platform: Platform,
    estimate: PlaytimeEstimate | None,
    storefront: StorefrontDetails | None,
    *,
    searching: bool,
) -> CanonicalGame:
    """Applies the field priority policy to one title."""
    estimate = estimate or PlaytimeEstimate()
    is_pc = platform is Platform.PC

    return CanonicalGame(
        title=entry.name if (entry and searching) else draft.title,
        platform=platform,
        list=draft.list,
        genres=unique_casefold(entry.genres if entry else (), draft.genres),
        image_url=entry.image_url if entry else None,
        release_date=entry.release_date if entry else None,
        playtime_normally=(
            estimate.normally
            or (entry.playtime_hours if entry else None)
            or _positive(draft.playtime_normally)
        ),
        playtime_completely=estimate.completely or _positive(draft.playtime_completely),
        storefront_product_id=storefront.product_id if (is_pc and storefront) else None,
        compatibility_tier=storefront.compatibility_tier if (is_pc and storefront) else None,
        rating=draft.rating or None,
        replay_count=draft.replay_count,
    )


class ReconciliationEngine:
    """Orchestrates the catalog, playtime and storefront resolvers."""

    def __init__(
        self,
        catalog: CatalogResolver,
        playtime: PlaytimeResolver,
        storefront: StorefrontResolver,
    ) -> None:
        self._catalog = catalog
        self._playtime = playtime
        self._storefront = storefront

    async def _storefront_for(
        self, title: str, known_id: int | None, check_compat: bool
    ) -> StorefrontDetails | None:
        if known_id is None:
            return await self._storefront.resolve_details(title, check_compat)
        tier = await self._storefront.resolve_compatibility(known_id) if check_compat else None
        return StorefrontDetails(product_id=known_id, compatibility_tier=tier)

    async def reconcile_title(
        self,
        draft: GameDraft,
        preferences: UserPreferences,
        *,
        searching: bool = True,
    ) -> CanonicalGame:
        """Builds a canonical record for one title.

        The catalog is consulted first; playtime and (for PC only)
        storefront data are then fetched concurrently. Any source that
        finds nothing just leaves its fields absent.

        Args:
            draft: User-entered values.
            preferences: Owned platforms and handheld preference.
            searching: Whether the user is actively searching, which allows
                the catalog name to replace the entered title.

        Returns:
            The merged record (no id or timestamps).

        Raises:
            AuthConfigurationError: If a required credential is missing or
                rejected. Nothing is returned in that case.
        """
        entry = await self._catalog.resolve_by_title(draft.title)
        platform = draft.platform or detect_platform(entry.platforms if entry else (), preferences)
        lookup_title = entry.name if entry else draft.title

        async def no_storefront() -> None:
            return None

        estimate, storefront = await gather_or_cancel(
            self._playtime.resolve(lookup_title),
            (
                self._storefront_for(lookup_title, draft.storefront_product_id, preferences.plays_on_steam_deck)
                if platform is Platform.PC
                else no_storefront()
            ),
        )

        game = _merge(draft, entry, platform, estimate, storefront, searching=searching)
        logger.info(
            "Reconciled %r -> %r (%s, catalog %s)",
            draft.title,
            game.title,
            game.platform.value,
            "hit" if entry else "miss",
        )
        return game

    async def reconcile_batch(
        self,
        titles: Sequence[str],
        preferences: UserPreferences,
        *,
        target_list: GameList,
        platform: Platform | None = None,
        known_product_ids: dict[str, int] | None = None,
        check_compat: bool | None = None,
    ) -> BatchReconciliation:
        """Builds canonical records for many titles.

        Titles the catalog cannot resolve are reported back and never sent
        to the playtime or storefront services.

        Args:
            titles: Entered titles (duplicates are processed once).
            preferences: Owned platforms and handheld preference.
            target_list: List every new record goes into.
            platform: Platform for every record, None to auto-detect each.
            known_product_ids: Entered title -> Steam app id already known
                (library import), skipping the store search.
            check_compat: Override for compatibility lookups; defaults to
                the user's handheld preference.

        Returns:
            Records for resolved titles and the list of failed titles.

        Raises:
            AuthConfigurationError: If a required credential is missing or
                rejected. Nothing is returned in that case.
        """
        unique = list(dict.fromkeys(t.strip() for t in titles if t and t.strip()))
        known_product_ids = known_product_ids or {}
        if check_compat is None:
            check_compat = preferences.plays_on_steam_deck

        catalog = await self._catalog.resolve_batch_by_titles(unique)
        resolved = [(title, catalog[title]) for title in unique if catalog.get(title) is not None]
        failed = [title for title in unique if catalog.get(title) is None]
        if failed:
            logger.info("Catalog could not resolve %d of %d titles", len(failed), len(unique))
        if not resolved:
            return BatchReconciliation(games=[], failed_titles=failed)

        platforms = {
            title: platform or detect_platform(entry.platforms, preferences) for title, entry in resolved
        }
        pc_titles = [(title, entry) for title, entry in resolved if platforms[title] is Platform.PC]
        pc_search = [entry.name for title, entry in pc_titles if title not in known_product_ids]
        pc_known = [known_product_ids[title] for title, _ in pc_titles if title in known_product_ids]

        async def known_tiers() -> dict[int, CompatibilityTier]:
            if not (check_compat and pc_known):
                return {}
            return await self._storefront.resolve_compatibility_batch(pc_known)

        async def searched() -> dict[str, StorefrontDetails | None]:
            if not pc_search:
                return {}
            return await self._storefront.resolve_batch(pc_search, check_compat)

        estimates, storefront, tiers = await gather_or_cancel(
            self._playtime.resolve_batch([entry.name for _, entry in resolved]),
            searched(),
            known_tiers(),
        )

        games = []
        for title, entry in resolved:
            if title in known_product_ids:
                details = StorefrontDetails(
                    product_id=known_product_ids[title],
                    compatibility_tier=tiers.get(known_product_ids[title]) if check_compat else None,
                )
            else:
                details = storefront.get(entry.name)
            draft = GameDraft(title=title, list=target_list, platform=platforms[title])
            games.append(_merge(draft, entry, platforms[title], estimates.get(entry.name), details, searching=True))

        return BatchReconciliation(games=games, failed_titles=failed)

    async def apply_platform_change(
        self, game: CanonicalGame, platform: Platform, preferences: UserPreferences
    ) -> CanonicalGame:
        """Returns the record moved to ``platform`` with storefront fields fixed up.

        Leaving PC clears the product id and compatibility tier. Landing on
        PC re-resolves them; a miss leaves them absent rather than stale.
        """
        if platform is not Platform.PC:
            return replace(game, platform=platform, storefront_product_id=None, compatibility_tier=None)

        details = await self._storefront.resolve_details(game.title, preferences.plays_on_steam_deck)
        return replace(
            game,
            platform=platform,
            storefront_product_id=details.product_id if details else None,
            compatibility_tier=details.compatibility_tier if details else None,
        )
