"""Playtime resolver: title to time-to-beat estimates via IGDB.

Resolution runs as two explicit phases so the id de-duplication between
them stays visible and testable:

1. ``resolve_ids``: search each title for an IGDB game id.
2. ``query_estimates``: query time-to-beat for the de-duplicated ids in
   multiquery batches.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from src.core.exceptions import RateLimitedError
from src.integrations.igdb_api import IGDBClient, TokenCache
from src.utils.batching import chunked, fetch_in_chunks
from src.utils.name_matching import pick_candidate

logger = logging.getLogger("backlogtracker.playtime")

__all__ = ["PlaytimeEstimate", "PlaytimeResolver", "seconds_to_hours"]


@dataclass(frozen=True)
class PlaytimeEstimate:
    """Hours to beat a game; None means no estimate.

    Attributes:
        normally: Main story, in whole hours.
        completely: 100% completion, in whole hours.
    """

    normally: int | None = None
    completely: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.normally is None and self.completely is None


def seconds_to_hours(seconds: float | None) -> int | None:
    """Converts a duration in seconds to whole hours.

    Rounds to the nearest hour, half up. Zero, missing, or anything that
    rounds to zero hours has no estimate.
    """
    if not seconds or seconds <= 0:
        return None
    return int(seconds / 3600 + 0.5) or None


class PlaytimeResolver:
    """Resolves time-to-beat estimates with lazy token refresh.

    The bearer token lives in an injected TokenCache. A new token is only
    requested when the cache has no valid one at call time.
    """

    def __init__(
        self,
        client: IGDBClient,
        token_cache: TokenCache,
        *,
        clock: Callable[[], float] = time.time,
        token_safety_margin: int = 300,
        search_batch_size: int = 4,
        search_delay: float = 1.0,
        multiquery_size: int = 10,
        multiquery_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._token_cache = token_cache
        self._clock = clock
        self._token_safety_margin = token_safety_margin
        self._search_batch_size = search_batch_size
        self._search_delay = search_delay
        self._multiquery_size = multiquery_size
        self._multiquery_delay = multiquery_delay
        self._sleep = sleep

    async def access_token(self) -> str:
        """Returns a valid bearer token, exchanging credentials if needed.

        Raises:
            AuthConfigurationError: If the credential exchange fails.
        """
        now = self._clock()
        token = self._token_cache.get(now)
        if token:
            return token

        token, expires_in = await asyncio.to_thread(self._client.request_token)
        self._token_cache.set(token, now + expires_in - self._token_safety_margin)
        logger.info("Obtained IGDB access token (valid %ds)", expires_in)
        return token

    async def _search_id(self, title: str, token: str) -> int | None:
        try:
            results = await asyncio.to_thread(self._client.search_games, title, token)
        except RateLimitedError as e:
            logger.warning("%s; %r left unresolved", e, title)
            return None

        match = pick_candidate(title, results, lambda r: r.get("name", ""))
        if match is None:
            logger.debug("No IGDB match for %r", title)
            return None
        return int(match["id"])

    async def resolve_ids(self, titles: Sequence[str]) -> dict[str, int]:
        """Phase one: maps titles to IGDB game ids.

        Returns:
            Only the titles that resolved.
        """
        unique = list(dict.fromkeys(titles))
        if not unique:
            return {}
        token = await self.access_token()

        async def search(title: str) -> int | None:
            return await self._search_id(title, token)

        ids = await fetch_in_chunks(
            unique,
            search,
            chunk_size=self._search_batch_size,
            delay=self._search_delay,
            sleep=self._sleep,
            label="IGDB search",
        )
        return {title: gid for title, gid in zip(unique, ids) if gid is not None}

    async def query_estimates(self, game_ids: Sequence[int]) -> dict[int, PlaytimeEstimate]:
        """Phase two: time-to-beat for de-duplicated ids.

        Ids are sent in multiquery batches; a failed batch only loses the
        ids it contained.

        Returns:
            Estimates for ids that have at least one value.
        """
        unique = list(dict.fromkeys(game_ids))
        if not unique:
            return {}
        token = await self.access_token()

        async def query(batch: list[int]) -> dict[int, tuple[int | None, int | None]]:
            return await asyncio.to_thread(self._client.query_time_to_beat, batch, token)

        batches = await fetch_in_chunks(
            chunked(unique, self._multiquery_size),
            query,
            chunk_size=1,
            delay=self._multiquery_delay,
            sleep=self._sleep,
            label="IGDB multiquery",
        )

        estimates: dict[int, PlaytimeEstimate] = {}
        for batch in batches:
            for gid, (normally, completely) in (batch or {}).items():
                estimate = PlaytimeEstimate(seconds_to_hours(normally), seconds_to_hours(completely))
                if not estimate.is_empty:
                    estimates[gid] = estimate
        return estimates

    async def resolve_batch(self, titles: Sequence[str]) -> dict[str, PlaytimeEstimate]:
        """Resolves estimates for many titles.

        Returns:
            Only the titles that have an estimate.
        """
        title_ids = await self.resolve_ids(titles)
        estimates = await self.query_estimates(list(title_ids.values()))
        resolved = {title: estimates[gid] for title, gid in title_ids.items() if gid in estimates}
        logger.info("Playtime resolved for %d of %d titles", len(resolved), len(set(titles)))
        return resolved

    async def resolve(self, title: str) -> PlaytimeEstimate | None:
        """Resolves estimates for one title, or None."""
        return (await self.resolve_batch([title])).get(title)
