"""Platform auto-detection from catalog platform names."""

from __future__ import annotations

import logging
import re
from typing import Sequence

from src.core.game import Platform
from src.core.preferences import UserPreferences

logger = logging.getLogger("backlogtracker.platform_detection")

__all__ = ["detect_platform", "map_catalog_platform"]

# Only current-generation console names map onto a tracked platform
_CATALOG_PATTERNS: list[tuple[re.Pattern[str], Platform]] = [
    (re.compile(r"^PC$"), Platform.PC),
    (re.compile(r"^PlayStation 5"), Platform.PLAYSTATION),
    (re.compile(r"^Xbox Series S/X"), Platform.XBOX),
    (re.compile(r"^Nintendo Switch( 2)?$"), Platform.NINTENDO_SWITCH),
]


def map_catalog_platform(name: str) -> Platform | None:
    """Maps a catalog platform name to a tracked platform.

    Args:
        name: Platform name as reported by the catalog (e.g. "PlayStation 5").

    Returns:
        The tracked platform, or None for anything else.
    """
    for pattern, platform in _CATALOG_PATTERNS:
        if pattern.match(name):
            return platform
    return None


def detect_platform(catalog_platforms: Sequence[str], preferences: UserPreferences) -> Platform:
    """Picks a platform for a newly resolved game.

    Intersects the catalog's platforms with the ones the user owns. The
    favourite platform wins if it is in the intersection, otherwise the
    first intersecting platform in catalog order, otherwise OTHERS_ROMS.

    Args:
        catalog_platforms: Platform names from the catalog entry.
        preferences: The user's owned platforms and favourite.

    Returns:
        The detected platform.
    """
    owned = set(preferences.platforms)
    if preferences.favorite_platform is not None:
        owned.add(preferences.favorite_platform)

    candidates = [p for p in (map_catalog_platform(name) for name in catalog_platforms) if p in owned]
    if preferences.favorite_platform in candidates:
        return preferences.favorite_platform
    if candidates:
        return candidates[0]

    logger.debug("No owned platform among %s, using %s", list(catalog_platforms), Platform.OTHERS_ROMS.value)
    return Platform.OTHERS_ROMS
