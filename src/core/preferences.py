# src/core/preferences.py

"""Per-user preference flags that steer platform detection and recommendations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.core.game import Platform

__all__ = ["UserPreferences"]


@dataclass(frozen=True)
class UserPreferences:
    """User preference flags.

    Attributes:
        platforms: Platforms the user owns, in the user's order.
        favorite_platform: Preferred platform for auto-detection, if set.
        notify_discounts: Whether to check wishlist deals automatically.
        plays_on_steam_deck: Whether compatibility tiers should be resolved.
        track_completionist_playtime: Whether 100% playtime matters to the user.
        custom_genres: User-added genres (append-only vocabulary).
    """

    platforms: tuple[Platform, ...] = ()
    favorite_platform: Platform | None = None
    notify_discounts: bool = False
    plays_on_steam_deck: bool = False
    track_completionist_playtime: bool = False
    custom_genres: tuple[str, ...] = field(default=())

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "platforms": [p.value for p in self.platforms],
            "notifyDiscounts": self.notify_discounts,
            "playsOnSteamDeck": self.plays_on_steam_deck,
            "trackCompletionistPlaytime": self.track_completionist_playtime,
            "customGenres": list(self.custom_genres),
        }
        if self.favorite_platform is not None:
            doc["favoritePlatform"] = self.favorite_platform.value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> UserPreferences:
        """Builds preferences from a stored document, tolerating a missing one."""
        if not doc:
            return cls()
        favorite = doc.get("favoritePlatform")
        return cls(
            platforms=tuple(Platform(p) for p in doc.get("platforms") or []),
            favorite_platform=Platform(favorite) if favorite else None,
            notify_discounts=bool(doc.get("notifyDiscounts")),
            plays_on_steam_deck=bool(doc.get("playsOnSteamDeck")),
            track_completionist_playtime=bool(doc.get("trackCompletionistPlaytime")),
            custom_genres=tuple(doc.get("customGenres") or []),
        )
