"""ProtonDB API client for Steam Deck compatibility ratings.

Queries the ProtonDB public summaries endpoint for a Steam app. The API
has no authentication and no batch endpoint; callers pace requests
through the batch fetcher.
"""

from __future__ import annotations

import logging

import requests

from src.core.exceptions import RateLimitedError
from src.core.game import CompatibilityTier
from src.version import USER_AGENT

logger = logging.getLogger("backlogtracker.protondb_api")

__all__ = ["ProtonDBClient"]

_SERVICE = "ProtonDB"


class ProtonDBClient:
    """Client for the ProtonDB public API."""

    BASE_URL = "https://www.protondb.com/api/v1/reports/summaries/"

    def __init__(self, timeout: int = 10) -> None:
        """Initializes the ProtonDB client with a configured session."""
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def get_tier(self, app_id: int) -> CompatibilityTier | None:
        """Fetches the compatibility tier for one app.

        Args:
            app_id: Steam app ID.

        Returns:
            The tier (UNKNOWN for unrecognised values), or None on error/404.

        Raises:
            RateLimitedError: On 429/503.
        """
        try:
            url = f"{self.BASE_URL}{app_id}.json"
            response = self._session.get(url, timeout=self._timeout)

            if response.status_code == 404:
                logger.debug("ProtonDB: no data for app %d", app_id)
                return None

            if response.status_code in (429, 503):
                raise RateLimitedError(_SERVICE, response.status_code)

            if response.status_code != 200:
                logger.warning(
                    "ProtonDB: unexpected status %d for app %d",
                    response.status_code,
                    app_id,
                )
                return None

            data = response.json()
            return CompatibilityTier.from_value(data.get("tier"))

        except requests.RequestException as exc:
            logger.warning("ProtonDB: network error for app %d: %s", app_id, exc)
            return None
        except (ValueError, AttributeError) as exc:
            logger.warning("ProtonDB: parse error for app %d: %s", app_id, exc)
            return None
