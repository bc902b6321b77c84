# tests/unit/test_services/test_challenge_service.py

"""Tests for keyword extraction and challenge progress on completion."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.core.challenge import Challenge, ChallengeStatus
from src.core.game import CanonicalGame, GameList, Platform
from src.services.challenge_service import ChallengeCriteria, ChallengeMatcher, Vocabulary, find_keywords

NOW = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)

VOCABULARY = Vocabulary(
    genres=("RPG", "Action", "Puzzle", "Platformer"),
    platforms=("PC", "PlayStation", "Nintendo Switch", "Others/ROMs"),
)


def _make_game(genres: list[str], platform: Platform = Platform.PC) -> CanonicalGame:
    return CanonicalGame(title="Done", platform=platform, list=GameList.RECENTLY_PLAYED, genres=genres)


def _make_challenge(description: str, goal: int = 3, progress: int = 0, **kwargs) -> Challenge:
    return Challenge(id="c", title="Challenge", description=description, goal=goal, progress=progress, **kwargs)


class TestFindKeywords:
    def test_whole_words_only(self):
        assert find_keywords("Beat a JRPG", ["RPG"]) == ()
        assert find_keywords("Beat an RPG!", ["RPG"]) == ("RPG",)

    def test_case_insensitive(self):
        assert find_keywords("finish two puzzle games", ["Puzzle"]) == ("Puzzle",)

    def test_multi_word_and_punctuated_entries(self):
        text = "Clear three Nintendo Switch games or anything from Others/ROMs"
        assert find_keywords(text, ["Nintendo Switch", "Others/ROMs", "PC"]) == ("Nintendo Switch", "Others/ROMs")

    def test_regex_characters_escaped(self):
        assert find_keywords("Play C++ tutorials", ["C++"]) == ("C++",)


class TestChallengeCriteria:
    def test_unconstrained_matches_everything(self):
        assert ChallengeCriteria().matches(_make_game([]))

    def test_any_genre_suffices(self):
        criteria = ChallengeCriteria(genres=("RPG", "Action"))
        assert criteria.matches(_make_game(["rpg"]))
        assert not criteria.matches(_make_game(["Puzzle"]))

    def test_platform_anded_with_genre(self):
        criteria = ChallengeCriteria(genres=("RPG",), platforms=("Nintendo Switch",))
        assert criteria.matches(_make_game(["RPG"], Platform.NINTENDO_SWITCH))
        assert not criteria.matches(_make_game(["RPG"], Platform.PC))


class TestApplyCompletion:
    """Tests for ChallengeMatcher.apply_completion()."""

    def test_rpg_and_action_challenge_completes_on_rpg(self):
        """Either mentioned genre is enough; goal 1 completes and stamps completedAt."""
        challenge = _make_challenge("Beat an RPG and an Action game", goal=1)

        updated = ChallengeMatcher().apply_completion(_make_game(["RPG"]), [challenge], VOCABULARY, NOW)

        assert len(updated) == 1
        assert updated[0].progress == 1
        assert updated[0].status is ChallengeStatus.COMPLETED
        assert updated[0].completed_at == NOW

    def test_progress_increments_below_goal(self):
        challenge = _make_challenge("Beat an RPG and an Action game", goal=3, progress=1)
        updated = ChallengeMatcher().apply_completion(_make_game(["RPG"]), [challenge], VOCABULARY, NOW)
        assert updated[0].progress == 2
        assert updated[0].is_active
        assert updated[0].completed_at is None

    def test_no_keywords_counts_any_game(self):
        challenge = _make_challenge("Finish five games this month")
        updated = ChallengeMatcher().apply_completion(_make_game(["Racing"]), [challenge], VOCABULARY, NOW)
        assert updated[0].progress == 1

    def test_non_matching_game_ignored(self):
        challenge = _make_challenge("Finish two Puzzle games on PlayStation")
        updated = ChallengeMatcher().apply_completion(_make_game(["Puzzle"]), [challenge], VOCABULARY, NOW)
        assert updated == []

    @pytest.mark.parametrize(
        "challenge",
        [
            _make_challenge("Any game", goal=1, progress=1, status=ChallengeStatus.COMPLETED, completed_at=NOW),
            _make_challenge("Any game", goal=2, progress=2),
        ],
    )
    def test_finished_challenges_skipped(self, challenge):
        assert ChallengeMatcher().apply_completion(_make_game([]), [challenge], VOCABULARY, NOW) == []


class TestVocabulary:
    def test_from_library(self, sample_games):
        vocabulary = Vocabulary.from_library(sample_games, ["Cozy", "rpg"], [Platform.XBOX])
        assert vocabulary.genres == ("Action", "Metroidvania", "RPG", "Platformer", "Cozy")
        assert vocabulary.platforms == ("PC", "PlayStation", "Nintendo Switch", "Xbox")
