"""Recommendation input assembly and oracle output validation.

Serializes the whole library, active challenges and preference flags into
one request per question and maps the oracle's answer back onto library
records. The oracle is not trusted to follow its output contract: unknown
or repeated ids are dropped and lists are cut to their fixed size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from src.core.challenge import Challenge, ChallengeIdea
from src.core.game import CanonicalGame, format_timestamp
from src.core.preferences import UserPreferences
from src.integrations.openai_oracle import OracleVariant

logger = logging.getLogger("backlogtracker.recommendations")

__all__ = [
    "CHALLENGE_IDEAS_MAX",
    "ExternalRecommendation",
    "MOOD_LIMIT",
    "RecommendationOracle",
    "RecommendationService",
    "Suggestion",
    "UP_NEXT_LIMIT",
    "build_request",
]

MOOD_LIMIT = 3
UP_NEXT_LIMIT = 5
CHALLENGE_IDEAS_MIN = 3
CHALLENGE_IDEAS_MAX = 5
_CHALLENGE_GOAL_MAX = 5


class RecommendationOracle(Protocol):
    """Anything that answers a structured request with a JSON object."""

    async def ask(self, variant: OracleVariant, payload: dict[str, Any]) -> dict[str, Any]: ...


@dataclass(frozen=True)
class Suggestion:
    """A library game the oracle suggests, with its rationale."""

    game: CanonicalGame
    reason: str


@dataclass(frozen=True)
class ExternalRecommendation:
    """A game outside the library suggested by the oracle.

    Attributes:
        title: Suggested title.
        reason: Rationale.
        genres: Main genres of the suggestion.
        low_confidence: True when the title is already in the library,
            which breaks the oracle's contract.
    """

    title: str
    reason: str
    genres: tuple[str, ...] = field(default=())
    low_confidence: bool = False


def _game_payload(game: CanonicalGame) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": game.id,
        "title": game.title,
        "platform": game.platform.value,
        "genres": list(game.genres),
        "list": game.list.value,
    }
    optional = {
        "rating": game.rating,
        "playtimeNormally": game.playtime_normally,
        "playtimeCompletely": game.playtime_completely,
        "steamDeckCompat": game.compatibility_tier.value if game.compatibility_tier else None,
        "releaseDate": game.release_date,
        "dateAdded": format_timestamp(game.date_added),
        "dateCompleted": format_timestamp(game.date_completed),
        "replayCount": game.replay_count or None,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})
    return payload


def _challenge_payload(challenge: Challenge) -> dict[str, Any]:
    return {
        "title": challenge.title,
        "description": challenge.description,
        "goal": challenge.goal,
        "progress": challenge.progress,
    }


def build_request(
    variant: OracleVariant,
    games: Sequence[CanonicalGame],
    challenges: Sequence[Challenge] = (),
    preferences: UserPreferences | None = None,
    mood_text: str | None = None,
) -> dict[str, Any]:
    """Builds the oracle input for one question.

    Every variant sees the complete library. Challenges and preference
    flags are included where the question uses them.

    Args:
        variant: Question kind.
        games: The whole library.
        challenges: The user's challenges; only active ones are sent.
        preferences: Preference flags.
        mood_text: Free-text mood (mood variant only).

    Returns:
        JSON-serializable request payload.
    """
    preferences = preferences or UserPreferences()
    payload: dict[str, Any] = {"gameLibrary": [_game_payload(g) for g in games]}
    active = [_challenge_payload(c) for c in challenges if c.is_active]
    platforms = [p.value for p in preferences.platforms]

    if variant is OracleVariant.MOOD:
        payload["activeChallenges"] = active
        payload["moodText"] = (mood_text or "").strip()
        payload["userPreferences"] = {
            "platforms": platforms,
            "trackCompletionistPlaytime": preferences.track_completionist_playtime,
            "playsOnSteamDeck": preferences.plays_on_steam_deck,
        }
    elif variant is OracleVariant.UP_NEXT:
        payload["userPreferences"] = {
            "playsOnSteamDeck": preferences.plays_on_steam_deck,
            "trackCompletionistPlaytime": preferences.track_completionist_playtime,
        }
    elif variant is OracleVariant.EXTERNAL:
        payload["activeChallenges"] = active
        payload["userPreferences"] = {
            "platforms": platforms,
            "trackCompletionistPlaytime": preferences.track_completionist_playtime,
        }
    return payload


class RecommendationService:
    """Asks the oracle for suggestions and validates what comes back."""

    def __init__(self, oracle: RecommendationOracle) -> None:
        self._oracle = oracle

    @staticmethod
    def _suggestions(
        items: Any, games: Sequence[CanonicalGame], limit: int, variant: OracleVariant
    ) -> list[Suggestion]:
        by_id = {g.id: g for g in games if g.id}
        seen: set[str] = set()
        suggestions: list[Suggestion] = []

        for item in items if isinstance(items, list) else []:
            if not isinstance(item, dict):
                continue
            game_id = str(item.get("gameId") or "")
            if game_id not in by_id or game_id in seen:
                logger.warning("Oracle (%s) returned unknown or repeated game id %r; dropped", variant.value, game_id)
                continue
            seen.add(game_id)
            suggestions.append(Suggestion(game=by_id[game_id], reason=str(item.get("reason") or "").strip()))

        if len(suggestions) > limit:
            logger.warning("Oracle (%s) returned %d suggestions, keeping %d", variant.value, len(suggestions), limit)
        return suggestions[:limit]

    async def mood_suggestions(
        self,
        games: Sequence[CanonicalGame],
        challenges: Sequence[Challenge],
        preferences: UserPreferences,
        mood_text: str = "",
    ) -> list[Suggestion]:
        """Up to three library games matching the user's mood."""
        if not games:
            return []
        request = build_request(OracleVariant.MOOD, games, challenges, preferences, mood_text)
        reply = await self._oracle.ask(OracleVariant.MOOD, request)
        return self._suggestions(reply.get("recommendations"), games, MOOD_LIMIT, OracleVariant.MOOD)

    async def up_next(self, games: Sequence[CanonicalGame], preferences: UserPreferences) -> list[Suggestion]:
        """Up to five library games for the automatic "up next" queue."""
        if not games:
            return []
        request = build_request(OracleVariant.UP_NEXT, games, preferences=preferences)
        reply = await self._oracle.ask(OracleVariant.UP_NEXT, request)
        return self._suggestions(reply.get("suggestions"), games, UP_NEXT_LIMIT, OracleVariant.UP_NEXT)

    async def external_discovery(
        self,
        games: Sequence[CanonicalGame],
        challenges: Sequence[Challenge],
        preferences: UserPreferences,
    ) -> ExternalRecommendation | None:
        """One game from outside the library.

        A title that is already in the library is still returned but marked
        low-confidence and logged.

        Returns:
            The recommendation, or None if the library is empty or the reply
            carries no title.
        """
        if not games:
            return None
        request = build_request(OracleVariant.EXTERNAL, games, challenges, preferences)
        reply = await self._oracle.ask(OracleVariant.EXTERNAL, request)

        title = str(reply.get("title") or "").strip()
        if not title:
            logger.warning("Oracle (external) reply carried no title")
            return None

        library_titles = {g.title.strip().casefold() for g in games}
        low_confidence = title.casefold() in library_titles
        if low_confidence:
            logger.warning("Oracle (external) suggested %r which is already in the library", title)

        genres = reply.get("genres")
        return ExternalRecommendation(
            title=title,
            reason=str(reply.get("reason") or "").strip(),
            genres=tuple(str(g) for g in genres) if isinstance(genres, list) else (),
            low_confidence=low_confidence,
        )

    async def challenge_ideas(self, games: Sequence[CanonicalGame]) -> list[ChallengeIdea]:
        """Three to five challenge ideas drawn from the library.

        Ideas without a title or with a non-positive goal are dropped, goals
        above five are capped, and extra ideas are cut. Short replies are
        returned as they are.
        """
        if not games:
            return []
        request = build_request(OracleVariant.CHALLENGE_IDEAS, games)
        reply = await self._oracle.ask(OracleVariant.CHALLENGE_IDEAS, request)

        ideas: list[ChallengeIdea] = []
        items = reply.get("ideas")
        for item in items if isinstance(items, list) else []:
            if not isinstance(item, dict):
                continue
            title = str(item.get("title") or "").strip()
            try:
                goal = int(item.get("goal"))
            except (TypeError, ValueError):
                goal = 0
            if not title or goal < 1:
                logger.warning("Oracle (challenge ideas) returned an invalid idea: %r", item)
                continue
            ideas.append(
                ChallengeIdea(
                    title=title,
                    description=str(item.get("description") or "").strip(),
                    goal=min(goal, _CHALLENGE_GOAL_MAX),
                )
            )

        if len(ideas) < CHALLENGE_IDEAS_MIN:
            logger.warning("Oracle (challenge ideas) returned only %d usable ideas", len(ideas))
        return ideas[:CHALLENGE_IDEAS_MAX]
