"""Steam Web API client for account resolution and owned-games listing.

Uses ISteamUser/ResolveVanityURL/v1 to turn a custom profile name into a
SteamID64 and IPlayerService/GetOwnedGames/v1 to list a public library.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import requests

from src.core.exceptions import AuthConfigurationError, RateLimitedError, SteamImportError
from src.version import USER_AGENT

logger = logging.getLogger("backlogtracker.steam_web_api")

__all__ = ["OwnedGame", "SteamWebAPI", "extract_profile_id", "is_steam_id64"]

_SERVICE = "Steam Web API"
_VANITY_URL = "https://api.steampowered.com/ISteamUser/ResolveVanityURL/v1/"
_OWNED_GAMES_URL = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v1/"

_STEAM_ID64 = re.compile(r"^\d{17}$")


@dataclass(frozen=True)
class OwnedGame:
    """One game from a Steam library.

    Attributes:
        app_id: Steam application ID.
        name: Store name of the application.
    """

    app_id: int
    name: str


def is_steam_id64(value: str) -> bool:
    """True if value is a 17-digit SteamID64."""
    return bool(_STEAM_ID64.match(value))


def extract_profile_id(user_input: str) -> str:
    """Pulls the account part out of whatever the user typed.

    Accepts a SteamID64, a ``steamcommunity.com/profiles/<id>`` URL, a
    ``steamcommunity.com/id/<vanity>`` URL or a bare vanity name.

    Args:
        user_input: Raw text from the user.

    Returns:
        Either a SteamID64 or a vanity name still to be resolved.

    Raises:
        SteamImportError: If the input is empty.
    """
    value = (user_input or "").strip()
    if not value:
        raise SteamImportError("Steam ID or Vanity URL is required.")

    for marker in ("steamcommunity.com/profiles/", "steamcommunity.com/id/"):
        if marker in value:
            value = value.split(marker, 1)[1].split("/", 1)[0]
            break
    return value


class SteamWebAPI:
    """Keyed Steam Web API client.

    Attributes:
        api_key: Steam Web API key for authentication.
    """

    def __init__(self, api_key: str | None, timeout: int = 15) -> None:
        """Initializes the SteamWebAPI client.

        Args:
            api_key: Steam Web API key; checked lazily on the first call.
            timeout: Request timeout in seconds.
        """
        self.api_key = (api_key or "").strip()
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def _get(self, url: str, params: dict[str, str]) -> dict:
        """GETs a keyed endpoint and returns the ``response`` object.

        Raises:
            AuthConfigurationError: If the key is missing or rejected.
            RateLimitedError: On 429/503.
            SteamImportError: On any other transport or parse failure.
        """
        if not self.api_key:
            raise AuthConfigurationError(_SERVICE, "Steam Web API key is not configured (STEAM_API_KEY).")

        try:
            response = self._session.get(url, params={"key": self.api_key, **params}, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Steam Web API: network error: %s", exc)
            raise SteamImportError("Could not reach the Steam Web API.") from exc

        if response.status_code in (401, 403):
            raise AuthConfigurationError(_SERVICE, "Steam rejected the Web API key. Check STEAM_API_KEY.")
        if response.status_code in (429, 503):
            raise RateLimitedError(_SERVICE, response.status_code)
        if response.status_code != 200:
            raise SteamImportError(f"Steam Web API returned HTTP {response.status_code}.")

        try:
            return response.json().get("response") or {}
        except (ValueError, AttributeError) as exc:
            raise SteamImportError("Steam Web API returned an unreadable response.") from exc

    def resolve_steam_id(self, user_input: str) -> str:
        """Resolves user input to a SteamID64.

        Args:
            user_input: SteamID64, profile URL or vanity name.

        Returns:
            The 17-digit SteamID64.

        Raises:
            SteamImportError: If the vanity name cannot be resolved.
        """
        candidate = extract_profile_id(user_input)
        if is_steam_id64(candidate):
            return candidate

        data = self._get(_VANITY_URL, {"vanityurl": candidate})
        if data.get("success") == 1 and data.get("steamid"):
            logger.info("Resolved Steam vanity name %r to %s", candidate, data["steamid"])
            return str(data["steamid"])

        raise SteamImportError(
            f"Could not resolve Steam vanity URL: {user_input}. Is your profile public and the URL correct?"
        )

    def get_owned_games(self, steam_id64: str) -> list[OwnedGame]:
        """Lists the games owned by a public Steam account.

        Args:
            steam_id64: 17-digit SteamID64.

        Returns:
            Owned games (possibly empty for an account with no games).

        Raises:
            SteamImportError: If the profile is private or the ID is wrong.
        """
        data = self._get(
            _OWNED_GAMES_URL,
            {"steamid": steam_id64, "include_appinfo": "true", "format": "json"},
        )
        if not data:
            raise SteamImportError(
                "Could not fetch owned games. The Steam ID may be incorrect or the user's profile is private."
            )

        games = []
        for item in data.get("games") or []:
            try:
                games.append(OwnedGame(app_id=int(item["appid"]), name=item.get("name") or ""))
            except (AttributeError, KeyError, TypeError, ValueError):
                continue
        logger.info("Steam account %s owns %d games", steam_id64, len(games))
        return [g for g in games if g.name]
