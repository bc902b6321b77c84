# src/integrations/steam_store.py

"""
Steam Store integration for product search and price lookups.

Uses the public storefront endpoints (no key required): ``storesearch``
to turn a title into an app ID and ``appdetails`` with the
``price_overview`` filter to read current discounts for several apps at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from src.core.exceptions import RateLimitedError
from src.version import USER_AGENT

logger = logging.getLogger("backlogtracker.steam_store")


__all__ = ["Deal", "SteamStoreClient"]

_SERVICE = "Steam Store"


@dataclass(frozen=True)
class Deal:
    """Current discount for one Steam app.

    Attributes:
        discount_percent: Discount in percent, always positive.
        final_formatted: Discounted price as formatted by the store (e.g. "$4.99").
    """

    discount_percent: int
    final_formatted: str

    def to_dict(self) -> dict[str, Any]:
        return {"discountPercent": self.discount_percent, "finalFormatted": self.final_formatted}


class SteamStoreClient:
    """
    Fetches search results and price overviews from the Steam Store.
    """

    SEARCH_URL = "https://store.steampowered.com/api/storesearch/"
    DETAILS_URL = "https://store.steampowered.com/api/appdetails"

    def __init__(self, country: str = "US", timeout: int = 10):
        """
        Initializes the SteamStoreClient.

        Args:
            country (str): Store country code used for search and prices.
            timeout (int): Request timeout in seconds.
        """
        self.country = country
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def _get(self, url: str, params: dict[str, Any]) -> Any | None:
        """GETs a store endpoint and decodes the JSON body.

        Raises:
            RateLimitedError: On 429/503.
        """
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Steam Store: network error: %s", e)
            return None

        if response.status_code in (429, 503):
            raise RateLimitedError(_SERVICE, response.status_code)
        if response.status_code != 200:
            logger.warning("Steam Store: unexpected status %d for %s", response.status_code, url)
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.warning("Steam Store: parse error for %s: %s", url, e)
            return None

    def search(self, term: str) -> list[dict[str, Any]]:
        """
        Searches the store for a title.

        Args:
            term (str): Search term.

        Returns:
            list[dict]: Items with at least ``id`` (int) and ``name``, in ranking order.
        """
        data = self._get(self.SEARCH_URL, {"term": term, "l": "english", "cc": self.country})
        if not isinstance(data, dict):
            return []

        items = []
        for item in data.get("items") or []:
            try:
                items.append({"id": int(item["id"]), "name": item.get("name") or ""})
            except (KeyError, TypeError, ValueError):
                continue
        return items

    def get_discounts(self, app_ids: list[int]) -> dict[int, Deal]:
        """
        Reads current discounts for several apps in one request.

        Apps that are not discounted, not found, or report no price are
        left out of the result.

        Args:
            app_ids (list[int]): Steam app IDs.

        Returns:
            dict[int, Deal]: Only apps with a positive discount.
        """
        if not app_ids:
            return {}

        data = self._get(
            self.DETAILS_URL,
            {
                "appids": ",".join(str(a) for a in app_ids),
                "cc": self.country.lower(),
                "filters": "price_overview",
            },
        )
        if not isinstance(data, dict):
            return {}

        deals: dict[int, Deal] = {}
        for app_id, entry in data.items():
            if not isinstance(entry, dict) or not entry.get("success"):
                continue
            details = entry.get("data")
            price = details.get("price_overview") if isinstance(details, dict) else None
            if not price:
                continue
            percent = int(price.get("discount_percent") or 0)
            if percent > 0:
                deals[int(app_id)] = Deal(discount_percent=percent, final_formatted=price.get("final_formatted", ""))
        return deals
