"""OpenAI-backed recommendation oracle.

Sends a structured library snapshot to a chat-completions model in JSON
mode and returns the decoded JSON object. The model is treated as an
untrusted black box: callers validate everything it returns.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

import openai
from openai import AsyncOpenAI

from src.core.exceptions import AuthConfigurationError, OracleError

logger = logging.getLogger("backlogtracker.openai_oracle")

__all__ = ["OpenAIOracle", "OracleVariant"]

_SERVICE = "OpenAI"


class OracleVariant(str, Enum):
    """The kinds of question the oracle answers."""

    MOOD = "mood"
    UP_NEXT = "up_next"
    EXTERNAL = "external"
    CHALLENGE_IDEAS = "challenge_ideas"


_RULES = (
    "Ratings run 1-5; treat a missing rating as a neutral 3/5 for ranking only. "
    "A high replayCount or rating marks a favourite; low ratings mark what to avoid. "
    "Use dateCompleted to avoid repeating something just finished and dateAdded to surface long-ignored backlog games."
)

_SYSTEM_PROMPTS: dict[OracleVariant, str] = {
    OracleVariant.MOOD: (
        "You are an expert gaming curator. Suggest exactly 3 games from the user's library that fit "
        "their current mood (moodText; if empty, just pick something good). Only suggest games on platforms "
        "the user owns, prefer Backlog and Wishlist games, favour games that advance an active challenge, and "
        "favour handheld-friendly compatibility when the user plays on a Steam Deck and wants portable play. "
        + _RULES
        + ' Reply with JSON: {"recommendations": [{"gameId": "<id from gameLibrary>", "reason": "<1-2 sentences>"}]}.'
    ),
    OracleVariant.UP_NEXT: (
        "You are an expert gaming curator. Build a varied, ranked 'Up Next' queue of exactly 5 games from "
        "the user's library. Backlog games are the main candidates; Wishlist games only with a rating of 4 or 5. "
        "Shorter games that clear the backlog are welcome. "
        + _RULES
        + ' Reply with JSON: {"suggestions": [{"gameId": "<id from gameLibrary>", "reason": "<1-2 sentences>"}]}.'
    ),
    OracleVariant.EXTERNAL: (
        "You are an expert gaming curator. Recommend ONE game that is NOT in the user's library and is available "
        "on one of the platforms they own. Base it on their favourites and active challenges, and offer a fresh "
        "experience rather than the next entry of a series they already have. "
        + _RULES
        + ' Reply with JSON: {"title": "<game title>", "reason": "<2-3 sentences>", "genres": ["<genre>"]}.'
    ),
    OracleVariant.CHALLENGE_IDEAS: (
        "You are an expert in gaming culture and goal setting. Propose 3 to 5 short, achievable challenge ideas "
        "based on the user's library. Every challenge must be trackable only by counting games moved to the "
        "completed list, so never mention achievements, endings or in-game objectives. Mix difficulties, combine "
        "genres or platforms, and keep each goal between 1 and 5. "
        'Reply with JSON: {"ideas": [{"title": "<catchy title>", "description": "<one sentence>", "goal": <1-5>}]}.'
    ),
}


class OpenAIOracle:
    """Chat-completions client answering recommendation questions in JSON.

    Attributes:
        model: Model name passed to the API.
    """

    def __init__(self, api_key: str | None, model: str, client: AsyncOpenAI | None = None) -> None:
        """Initializes the oracle.

        Args:
            api_key: OpenAI API key; checked lazily on the first request.
            model: Chat model name.
            client: Preconfigured client, mainly for tests.
        """
        self._api_key = api_key
        self.model = model
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise AuthConfigurationError(_SERVICE, "OpenAI API key is not configured (OPENAI_API_KEY).")
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def ask(self, variant: OracleVariant, payload: dict[str, Any]) -> dict[str, Any]:
        """Sends one request and decodes the JSON reply.

        Args:
            variant: Which question to ask.
            payload: Snapshot of library, challenges and preferences.

        Returns:
            The decoded JSON object (possibly missing expected keys).

        Raises:
            AuthConfigurationError: If the key is missing or rejected.
            OracleError: If the request fails or the reply is not a JSON object.
        """
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPTS[variant]},
                    {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
                ],
                response_format={"type": "json_object"},
                temperature=0.7,
            )
        except openai.AuthenticationError as exc:
            raise AuthConfigurationError(_SERVICE, "OpenAI rejected the API key. Check OPENAI_API_KEY.") from exc
        except openai.OpenAIError as exc:
            logger.warning("Oracle request (%s) failed: %s", variant.value, exc)
            raise OracleError(f"Recommendation request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        try:
            result = json.loads(content or "")
        except json.JSONDecodeError as exc:
            logger.warning("Oracle reply (%s) was not JSON: %r", variant.value, content)
            raise OracleError("Recommendation service returned an unreadable reply.") from exc

        if not isinstance(result, dict):
            raise OracleError("Recommendation service returned an unexpected reply.")
        logger.debug("Oracle reply (%s): %s", variant.value, result)
        return result
