"""Challenge progress matching.

When a game is completed, every active challenge whose text mentions
genres or platforms the completed game satisfies (or mentions none at
all) advances by one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence

from src.core.challenge import Challenge
from src.core.game import CanonicalGame, Platform
from src.utils.name_matching import unique_casefold

logger = logging.getLogger("backlogtracker.challenges")

__all__ = ["ChallengeCriteria", "ChallengeMatcher", "Vocabulary", "find_keywords"]


@dataclass(frozen=True)
class Vocabulary:
    """Genre and platform words a challenge text is searched for.

    Attributes:
        genres: Known genre labels.
        platforms: Known platform names.
    """

    genres: tuple[str, ...] = ()
    platforms: tuple[str, ...] = ()

    @classmethod
    def from_library(
        cls,
        games: Iterable[CanonicalGame],
        extra_genres: Iterable[str] = (),
        extra_platforms: Iterable[Platform] = (),
    ) -> Vocabulary:
        """Builds the vocabulary from a user's games plus extra entries."""
        games = list(games)
        return cls(
            genres=tuple(unique_casefold([g for game in games for g in game.genres], extra_genres)),
            platforms=tuple(
                unique_casefold([game.platform.value for game in games], [p.value for p in extra_platforms])
            ),
        )


@dataclass(frozen=True)
class ChallengeCriteria:
    """Keywords found in one challenge's text."""

    genres: tuple[str, ...] = field(default=())
    platforms: tuple[str, ...] = field(default=())

    @property
    def unconstrained(self) -> bool:
        return not self.genres and not self.platforms

    def matches(self, game: CanonicalGame) -> bool:
        """Any found genre suffices, ANDed with any found platform."""
        if self.unconstrained:
            return True
        game_genres = {g.casefold() for g in game.genres}
        genre_ok = not self.genres or any(g.casefold() in game_genres for g in self.genres)
        platform_ok = not self.platforms or game.platform.value.casefold() in {
            p.casefold() for p in self.platforms
        }
        return genre_ok and platform_ok


def find_keywords(text: str, words: Iterable[str]) -> tuple[str, ...]:
    """Returns the words that occur in text as whole words, ignoring case.

    Word boundaries are "not preceded/followed by a word character", so
    entries with punctuation such as "Others/ROMs" work too.
    """
    found = []
    for word in words:
        if word and re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text, re.IGNORECASE):
            found.append(word)
    return tuple(found)


class ChallengeMatcher:
    """Advances active challenges for a completed game."""

    @staticmethod
    def criteria_for(challenge: Challenge, vocabulary: Vocabulary) -> ChallengeCriteria:
        text = f"{challenge.title} {challenge.description}"
        return ChallengeCriteria(
            genres=find_keywords(text, vocabulary.genres),
            platforms=find_keywords(text, vocabulary.platforms),
        )

    def apply_completion(
        self,
        game: CanonicalGame,
        challenges: Sequence[Challenge],
        vocabulary: Vocabulary,
        now: datetime,
    ) -> list[Challenge]:
        """Computes challenge updates for one completion event.

        Pure: nothing is written. Challenges that are not active or are
        already at their goal are skipped.

        Args:
            game: The game that just entered Recently Played.
            challenges: The user's challenges.
            vocabulary: Genre/platform words to look for.
            now: Timestamp for challenges that complete.

        Returns:
            Updated copies of the challenges that matched.
        """
        updated = []
        for challenge in challenges:
            if not challenge.is_active or challenge.progress >= challenge.goal:
                continue
            criteria = self.criteria_for(challenge, vocabulary)
            if not criteria.matches(game):
                continue

            advanced = challenge.advance(now)
            updated.append(advanced)
            if advanced.is_active:
                logger.info("Challenge %r progressed to %d/%d", challenge.title, advanced.progress, advanced.goal)
            else:
                logger.info("Challenge %r completed", challenge.title)
        return updated
