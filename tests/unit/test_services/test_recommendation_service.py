# tests/unit/test_services/test_recommendation_service.py

"""Tests for recommendation requests and validation of oracle replies."""

from __future__ import annotations

import asyncio
from typing import Any

from src.core.challenge import Challenge, ChallengeIdea, ChallengeStatus
from src.core.game import CanonicalGame, GameList, Platform
from src.core.preferences import UserPreferences
from src.integrations.openai_oracle import OracleVariant
from src.services.recommendation_service import RecommendationService, build_request

PREFS = UserPreferences(
    platforms=(Platform.PC, Platform.PLAYSTATION),
    plays_on_steam_deck=True,
    track_completionist_playtime=True,
)


class FakeOracle:
    """Returns a canned reply and records what it was asked."""

    def __init__(self, reply: dict[str, Any]) -> None:
        self.reply = reply
        self.requests: list[tuple[OracleVariant, dict[str, Any]]] = []

    async def ask(self, variant: OracleVariant, payload: dict[str, Any]) -> dict[str, Any]:
        self.requests.append((variant, payload))
        return self.reply


# ---------------------------------------------------------------
# Request assembly
# ---------------------------------------------------------------


class TestBuildRequest:
    def test_mood_request(self, sample_games):
        challenges = [
            Challenge(id="a", title="RPG month", description="Beat an RPG", goal=2),
            Challenge(id="b", title="Old", description="", goal=1, progress=1, status=ChallengeStatus.COMPLETED),
        ]

        request = build_request(OracleVariant.MOOD, sample_games, challenges, PREFS, "  something cozy ")

        assert [g["id"] for g in request["gameLibrary"]] == ["g1", "g2", "g3"]
        assert request["moodText"] == "something cozy"
        assert request["activeChallenges"] == [
            {"title": "RPG month", "description": "Beat an RPG", "goal": 2, "progress": 0}
        ]
        assert request["userPreferences"] == {
            "platforms": ["PC", "PlayStation"],
            "trackCompletionistPlaytime": True,
            "playsOnSteamDeck": True,
        }

    def test_game_payload_omits_absent_fields(self, sample_games):
        request = build_request(OracleVariant.UP_NEXT, sample_games, preferences=PREFS)
        first, second, third = request["gameLibrary"]
        assert first["steamDeckCompat"] == "platinum"
        assert "rating" not in first
        assert "replayCount" not in first
        assert second["rating"] == 5
        assert third["replayCount"] == 2
        assert "dateCompleted" in third
        assert "activeChallenges" not in request

    def test_challenge_ideas_request_has_library_only(self, sample_games):
        request = build_request(OracleVariant.CHALLENGE_IDEAS, sample_games)
        assert set(request) == {"gameLibrary"}


# ---------------------------------------------------------------
# Validation
# ---------------------------------------------------------------


class TestSuggestions:
    def test_unknown_and_repeated_ids_dropped(self, sample_games):
        oracle = FakeOracle(
            {
                "recommendations": [
                    {"gameId": "g2", "reason": "You loved it"},
                    {"gameId": "made-up", "reason": "?"},
                    {"gameId": "g2", "reason": "again"},
                    {"gameId": "g1", "reason": "Short and sweet"},
                ]
            }
        )

        suggestions = asyncio.run(RecommendationService(oracle).mood_suggestions(sample_games, [], PREFS, "chill"))

        assert [(s.game.id, s.reason) for s in suggestions] == [("g2", "You loved it"), ("g1", "Short and sweet")]

    def test_mood_truncated_to_three(self, sample_games):
        games = sample_games + [
            CanonicalGame(id=f"x{i}", title=f"Extra {i}", platform=Platform.PC, list=GameList.BACKLOG)
            for i in range(3)
        ]
        oracle = FakeOracle({"recommendations": [{"gameId": g.id, "reason": ""} for g in games]})

        suggestions = asyncio.run(RecommendationService(oracle).mood_suggestions(games, [], PREFS))

        assert [s.game.id for s in suggestions] == ["g1", "g2", "g3"]

    def test_up_next_never_padded(self, sample_games):
        oracle = FakeOracle({"suggestions": [{"gameId": "g1", "reason": "Next!"}]})
        suggestions = asyncio.run(RecommendationService(oracle).up_next(sample_games, PREFS))
        assert [s.game.id for s in suggestions] == ["g1"]
        assert oracle.requests[0][0] is OracleVariant.UP_NEXT

    def test_up_next_capped_at_five(self):
        games = [
            CanonicalGame(id=f"b{i}", title=f"Backlog {i}", platform=Platform.PC, list=GameList.BACKLOG)
            for i in range(7)
        ]
        oracle = FakeOracle({"suggestions": [{"gameId": g.id, "reason": ""} for g in games]})

        suggestions = asyncio.run(RecommendationService(oracle).up_next(games, PREFS))

        assert [s.game.id for s in suggestions] == ["b0", "b1", "b2", "b3", "b4"]

    def test_missing_key_gives_empty(self, sample_games):
        oracle = FakeOracle({"unexpected": True})
        assert asyncio.run(RecommendationService(oracle).up_next(sample_games, PREFS)) == []

    def test_empty_library_skips_oracle(self):
        oracle = FakeOracle({})
        service = RecommendationService(oracle)
        assert asyncio.run(service.mood_suggestions([], [], PREFS)) == []
        assert asyncio.run(service.up_next([], PREFS)) == []
        assert asyncio.run(service.external_discovery([], [], PREFS)) is None
        assert asyncio.run(service.challenge_ideas([])) == []
        assert oracle.requests == []


class TestExternalDiscovery:
    def test_new_title(self, sample_games):
        oracle = FakeOracle(
            {"title": "Ori and the Will of the Wisps", "reason": "More metroidvania", "genres": ["Platformer"]}
        )

        rec = asyncio.run(RecommendationService(oracle).external_discovery(sample_games, [], PREFS))

        assert rec.title == "Ori and the Will of the Wisps"
        assert rec.genres == ("Platformer",)
        assert rec.low_confidence is False

    def test_library_collision_flagged(self, sample_games):
        oracle = FakeOracle({"title": "celeste", "reason": "Again?"})
        rec = asyncio.run(RecommendationService(oracle).external_discovery(sample_games, [], PREFS))
        assert rec.low_confidence is True

    def test_no_title(self, sample_games):
        oracle = FakeOracle({"reason": "forgot the title"})
        assert asyncio.run(RecommendationService(oracle).external_discovery(sample_games, [], PREFS)) is None


class TestChallengeIdeas:
    def test_invalid_ideas_dropped_and_goals_capped(self, sample_games):
        oracle = FakeOracle(
            {
                "ideas": [
                    {"title": "Genre Hopper", "description": "Finish an RPG and a Platformer", "goal": 2},
                    {"title": "", "description": "no title", "goal": 1},
                    {"title": "Zero", "description": "", "goal": 0},
                    {"title": "Marathon", "description": "Finish ten games", "goal": 10},
                    {"title": "Weird goal", "description": "", "goal": "three"},
                ]
            }
        )

        ideas = asyncio.run(RecommendationService(oracle).challenge_ideas(sample_games))

        assert ideas == [
            ChallengeIdea("Genre Hopper", "Finish an RPG and a Platformer", 2),
            ChallengeIdea("Marathon", "Finish ten games", 5),
        ]

    def test_truncated_to_five(self, sample_games):
        oracle = FakeOracle({"ideas": [{"title": f"Idea {i}", "description": "", "goal": 1} for i in range(8)]})
        ideas = asyncio.run(RecommendationService(oracle).challenge_ideas(sample_games))
        assert [i.title for i in ideas] == [f"Idea {i}" for i in range(5)]
