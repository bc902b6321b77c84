# src/core/game.py

"""CanonicalGame dataclass and the fixed enumerations it draws from.

A CanonicalGame is the single merged record for one title in one user's
collection. Optional fields use ``None`` as the "absent" sentinel and are
omitted from the stored document; they are never defaulted to zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

__all__ = [
    "CanonicalGame",
    "CompatibilityTier",
    "GameList",
    "Platform",
    "format_timestamp",
    "parse_timestamp",
]


class Platform(str, Enum):
    """Platforms a game can be filed under."""

    PC = "PC"
    PLAYSTATION = "PlayStation"
    XBOX = "Xbox"
    NINTENDO_SWITCH = "Nintendo Switch"
    OTHERS_ROMS = "Others/ROMs"


class GameList(str, Enum):
    """Status lists a game moves between."""

    WISHLIST = "Wishlist"
    BACKLOG = "Backlog"
    NOW_PLAYING = "Now Playing"
    RECENTLY_PLAYED = "Recently Played"


class CompatibilityTier(str, Enum):
    """Community compatibility rating for running a PC title on a handheld.

    Declaration order is the ranking order, best first.
    """

    NATIVE = "native"
    PLATINUM = "platinum"
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"
    BORKED = "borked"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: Any) -> CompatibilityTier:
        """Maps a raw tier string to a member, defaulting to UNKNOWN.

        Args:
            value: Raw tier as reported by the compatibility service.

        Returns:
            The matching tier, or UNKNOWN for anything unrecognised.
        """
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.UNKNOWN

    @property
    def rank(self) -> int:
        """Position in the ordered enumeration (0 is best)."""
        return list(CompatibilityTier).index(self)


def format_timestamp(value: datetime | None) -> str | None:
    """Serializes a timestamp to ISO 8601, passing ``None`` through."""
    return value.isoformat() if value is not None else None


def parse_timestamp(value: Any) -> datetime | None:
    """Parses an ISO 8601 string from a stored document.

    Args:
        value: ISO string, datetime, or None.

    Returns:
        The parsed datetime, or None if absent or malformed.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


@dataclass
class CanonicalGame:
    """The merged record for one title in one user's collection.

    Attributes:
        title: Display name (catalog name when matched, else the user's text).
        platform: Platform the game is filed under.
        list: Status list the game currently sits in.
        genres: Genre labels, catalog genres plus user-added ones.
        id: Document identifier, assigned by the store on creation.
        image_url: Cover image from the catalog.
        release_date: ISO date string from the catalog.
        playtime_normally: Hours to beat the main story.
        playtime_completely: Hours to 100% the game.
        storefront_product_id: Steam app ID (PC only).
        compatibility_tier: Handheld compatibility tier (PC only).
        rating: User rating 1-5, None when unrated.
        replay_count: Times the game left Recently Played for another list.
        date_added: Set by the store when the record is first written.
        date_completed: Set when the game enters Recently Played; kept afterwards.
    """

    title: str
    platform: Platform
    list: GameList
    genres: list[str] = field(default_factory=list)
    id: str | None = None
    image_url: str | None = None
    release_date: str | None = None
    playtime_normally: int | None = None
    playtime_completely: int | None = None
    storefront_product_id: int | None = None
    compatibility_tier: CompatibilityTier | None = None
    rating: int | None = None
    replay_count: int = 0
    date_added: datetime | None = None
    date_completed: datetime | None = None

    def __post_init__(self) -> None:
        """Coerces enum fields and enforces the record invariants.

        Raises:
            ValueError: If a field is out of range or a non-PC game carries
                storefront data.
        """
        self.platform = Platform(self.platform)
        self.list = GameList(self.list)
        if self.compatibility_tier is not None:
            self.compatibility_tier = CompatibilityTier(self.compatibility_tier)

        if self.rating is not None and not 1 <= self.rating <= 5:
            raise ValueError(f"rating must be between 1 and 5, got {self.rating}")
        if self.replay_count < 0:
            raise ValueError(f"replay_count must not be negative, got {self.replay_count}")
        for name in ("playtime_normally", "playtime_completely"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive or absent, got {value}")
        if self.platform is not Platform.PC and (
            self.storefront_product_id is not None or self.compatibility_tier is not None
        ):
            raise ValueError(f"{self.platform.value} game cannot carry storefront data")

    @property
    def is_completed(self) -> bool:
        """True while the game sits in Recently Played."""
        return self.list is GameList.RECENTLY_PLAYED

    def to_document(self) -> dict[str, Any]:
        """Serializes the record to a store document.

        Absent optionals are left out entirely. The id is not part of the
        document body.

        Returns:
            JSON-compatible dict with camelCase keys.
        """
        doc: dict[str, Any] = {
            "title": self.title,
            "platform": self.platform.value,
            "list": self.list.value,
            "genres": list(self.genres),
            "replayCount": self.replay_count,
        }
        optional = {
            "imageUrl": self.image_url,
            "releaseDate": self.release_date,
            "playtimeNormally": self.playtime_normally,
            "playtimeCompletely": self.playtime_completely,
            "steamAppId": self.storefront_product_id,
            "steamDeckCompat": self.compatibility_tier.value if self.compatibility_tier else None,
            "rating": self.rating,
            "dateAdded": format_timestamp(self.date_added),
            "dateCompleted": format_timestamp(self.date_completed),
        }
        doc.update({key: value for key, value in optional.items() if value is not None})
        return doc

    @classmethod
    def from_document(cls, doc_id: str | None, doc: dict[str, Any]) -> CanonicalGame:
        """Builds a record from a stored document.

        Args:
            doc_id: Document identifier.
            doc: Document body as written by to_document().

        Returns:
            The reconstructed CanonicalGame.
        """
        compat = doc.get("steamDeckCompat")
        return cls(
            id=doc_id,
            title=doc.get("title", ""),
            platform=Platform(doc.get("platform", Platform.OTHERS_ROMS.value)),
            list=GameList(doc.get("list", GameList.WISHLIST.value)),
            genres=list(doc.get("genres") or []),
            image_url=doc.get("imageUrl"),
            release_date=doc.get("releaseDate"),
            playtime_normally=doc.get("playtimeNormally"),
            playtime_completely=doc.get("playtimeCompletely"),
            storefront_product_id=doc.get("steamAppId"),
            compatibility_tier=CompatibilityTier.from_value(compat) if compat else None,
            rating=doc.get("rating"),
            replay_count=int(doc.get("replayCount") or 0),
            date_added=parse_timestamp(doc.get("dateAdded")),
            date_completed=parse_timestamp(doc.get("dateCompleted")),
        )
