"""RAWG API client for game catalog search.

Looks up free-text titles in the RAWG games catalog and returns the
descriptive metadata used for canonical records: name, genres, cover
image, release date, a coarse playtime estimate and supported platforms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from src.core.exceptions import AuthConfigurationError, RateLimitedError
from src.version import USER_AGENT

logger = logging.getLogger("backlogtracker.rawg_api")

__all__ = ["CatalogEntry", "RAWGClient"]

_SERVICE = "RAWG"


def _dicts(value: Any) -> list[dict[str, Any]]:
    """Keeps the dict items of a list field, ignoring anything malformed."""
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


@dataclass(frozen=True)
class CatalogEntry:
    """One catalog search candidate.

    Attributes:
        id: RAWG game identifier.
        name: Canonical display name.
        image_url: Cover image URL, if any.
        genres: Genre names.
        release_date: ISO release date, if known.
        playtime_hours: Coarse average playtime in hours, None when 0 or absent.
        platforms: Names of the platforms the game was released on.
    """

    id: int
    name: str
    image_url: str | None = None
    genres: tuple[str, ...] = ()
    release_date: str | None = None
    playtime_hours: int | None = None
    platforms: tuple[str, ...] = ()


class RAWGClient:
    """Client for the RAWG games search endpoint.

    Transport failures are logged and reported as an empty result. A
    rejected key is a configuration problem and raises instead.
    """

    BASE_URL = "https://api.rawg.io/api/games"

    def __init__(self, api_key: str | None, timeout: int = 10) -> None:
        """Initializes the RAWG client.

        Args:
            api_key: RAWG API key; checked lazily on the first search.
            timeout: Request timeout in seconds.
        """
        self._api_key = api_key
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def search(self, title: str, page_size: int = 10) -> list[CatalogEntry]:
        """Searches the catalog for a title.

        Args:
            title: Free-text title to search for.
            page_size: Maximum number of candidates.

        Returns:
            Candidates in ranking order (empty on no match or error).

        Raises:
            AuthConfigurationError: If the key is missing or rejected.
            RateLimitedError: If RAWG answers 429 or 503.
        """
        if not self._api_key:
            raise AuthConfigurationError(_SERVICE, "RAWG API key is not configured (RAWG_API_KEY).")

        try:
            response = self._session.get(
                self.BASE_URL,
                params={"key": self._api_key, "search": title, "page_size": page_size},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("RAWG: network error searching %r: %s", title, exc)
            return []

        if response.status_code in (401, 403):
            raise AuthConfigurationError(_SERVICE, "RAWG rejected the API key. Check RAWG_API_KEY.")
        if response.status_code in (429, 503):
            raise RateLimitedError(_SERVICE, response.status_code)
        if response.status_code != 200:
            logger.warning("RAWG: unexpected status %d searching %r", response.status_code, title)
            return []

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("RAWG: parse error searching %r: %s", title, exc)
            return []

        results = (data.get("results") or []) if isinstance(data, dict) else None
        if not isinstance(results, list):
            logger.warning("RAWG: unexpected response shape searching %r", title)
            return []

        return [entry for entry in (self._parse_entry(item) for item in results) if entry]

    @staticmethod
    def _parse_entry(item: dict[str, Any]) -> CatalogEntry | None:
        """Converts a raw search result into a CatalogEntry.

        Args:
            item: One element of the ``results`` array.

        Returns:
            CatalogEntry, or None if the item lacks an id or name.
        """
        if not isinstance(item, dict) or not isinstance(item.get("id"), int) or not item.get("name"):
            return None

        playtime = item.get("playtime")
        return CatalogEntry(
            id=int(item["id"]),
            name=item["name"],
            image_url=item.get("background_image") or None,
            genres=tuple(g["name"] for g in _dicts(item.get("genres")) if g.get("name")),
            release_date=item.get("released") or None,
            playtime_hours=int(playtime) if isinstance(playtime, (int, float)) and playtime > 0 else None,
            platforms=tuple(
                p["platform"]["name"]
                for p in _dicts(item.get("platforms"))
                if isinstance(p.get("platform"), dict) and p["platform"].get("name")
            ),
        )
