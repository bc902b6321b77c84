"""IGDB API client for time-to-beat estimates.

IGDB requires a Twitch application token obtained through the
client-credentials flow. The token is held in a TokenCache owned by the
caller, so tests can substitute their own cache and clock.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from src.core.exceptions import AuthConfigurationError, RateLimitedError
from src.version import USER_AGENT

logger = logging.getLogger("backlogtracker.igdb_api")

__all__ = ["IGDBClient", "TokenCache", "escape_query"]

_SERVICE = "IGDB"
_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
_GAMES_URL = "https://api.igdb.com/v4/games"
_MULTIQUERY_URL = "https://api.igdb.com/v4/multiquery"


def escape_query(title: str) -> str:
    """Escapes a title for use inside an Apicalypse string literal."""
    return title.replace("\\", "\\\\").replace('"', '\\"')


class TokenCache:
    """Holds one bearer token and the time it stops being usable.

    Entries are replaced as a whole, so concurrent refreshes simply leave
    the last token written in place.
    """

    def __init__(self) -> None:
        self._entry: tuple[str, float] | None = None

    def get(self, now: float) -> str | None:
        """Returns the cached token if it is still valid at ``now``."""
        entry = self._entry
        if entry is None:
            return None
        token, expires_at = entry
        return token if now < expires_at else None

    def set(self, token: str, expires_at: float) -> None:
        self._entry = (token, expires_at)

    def clear(self) -> None:
        self._entry = None


class IGDBClient:
    """Synchronous client for the IGDB v4 API."""

    def __init__(self, client_id: str | None, client_secret: str | None, timeout: int = 10) -> None:
        """Initializes the IGDB client.

        Args:
            client_id: Twitch application client ID.
            client_secret: Twitch application client secret.
            timeout: Request timeout in seconds.
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

    def request_token(self) -> tuple[str, int]:
        """Exchanges the client credentials for an access token.

        Returns:
            Tuple of (access_token, expires_in_seconds).

        Raises:
            AuthConfigurationError: If the credentials are missing or the
                exchange fails for any reason.
        """
        if not self._client_id or not self._client_secret:
            raise AuthConfigurationError(
                _SERVICE, "IGDB client ID or secret is not configured (IGDB_CLIENT_ID, IGDB_CLIENT_SECRET)."
            )

        try:
            response = self._session.post(
                _TOKEN_URL,
                params={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "client_credentials",
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("IGDB: token request failed: %s", exc)
            raise AuthConfigurationError(_SERVICE, "Could not authenticate with IGDB.") from exc

        token = data.get("access_token")
        if not token:
            raise AuthConfigurationError(_SERVICE, "Access token was not found in the IGDB response.")
        return token, int(data.get("expires_in") or 0)

    def _headers(self, token: str) -> dict[str, str]:
        return {"Client-ID": self._client_id or "", "Authorization": f"Bearer {token}"}

    def _post(self, url: str, body: str, token: str) -> Any:
        """Posts an Apicalypse body and returns the decoded JSON.

        Returns:
            Decoded JSON, or None on transport/parse errors or non-200 status.

        Raises:
            AuthConfigurationError: On 401/403.
            RateLimitedError: On 429/503.
        """
        try:
            response = self._session.post(url, data=body, headers=self._headers(token), timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("IGDB: network error: %s", exc)
            return None

        if response.status_code in (401, 403):
            raise AuthConfigurationError(_SERVICE, "IGDB rejected the access token or client ID.")
        if response.status_code in (429, 503):
            raise RateLimitedError(_SERVICE, response.status_code)
        if response.status_code != 200:
            logger.warning("IGDB: unexpected status %d", response.status_code)
            return None

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("IGDB: parse error: %s", exc)
            return None

    def search_games(self, title: str, token: str, limit: int = 10) -> list[dict[str, Any]]:
        """Searches IGDB games by name.

        Args:
            title: Title to search for.
            token: Bearer token.
            limit: Maximum number of results.

        Returns:
            List of ``{"id", "name"}`` dicts in ranking order.
        """
        body = f'search "{escape_query(title)}"; fields id, name; limit {limit};'
        data = self._post(_GAMES_URL, body, token)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict) and "id" in item]

    def query_time_to_beat(self, game_ids: list[int], token: str) -> dict[int, tuple[int | None, int | None]]:
        """Fetches time-to-beat values for several games in one multiquery.

        Each id gets its own labelled sub-query (``ttb_<id>``) so responses
        can be matched back to the request.

        Args:
            game_ids: IGDB game ids (at most 10 per IGDB multiquery).
            token: Bearer token.

        Returns:
            Dict mapping game id to (normally_seconds, completely_seconds).
            Ids without data are left out.
        """
        if not game_ids:
            return {}

        body = "".join(
            f'query game_time_to_beats "ttb_{gid}" {{ fields normally, completely; where game_id = {gid}; }};'
            for gid in game_ids
        )
        data = self._post(_MULTIQUERY_URL, body, token)
        if not isinstance(data, list):
            return {}

        wanted = set(game_ids)
        results: dict[int, tuple[int | None, int | None]] = {}
        for block in data:
            if not isinstance(block, dict):
                continue
            label = str(block.get("name", ""))
            if not label.startswith("ttb_"):
                continue
            try:
                gid = int(label[4:])
            except ValueError:
                continue
            rows = block.get("result") or []
            if gid not in wanted or not rows:
                continue
            row = rows[0]
            results[gid] = (row.get("normally"), row.get("completely"))
        return results
