# tests/unit/test_core/test_game.py

"""Tests for the CanonicalGame dataclass and its enumerations."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.core.game import CanonicalGame, CompatibilityTier, GameList, Platform, parse_timestamp


class TestCompatibilityTier:
    """Tests for CompatibilityTier parsing and ranking."""

    @pytest.mark.parametrize("raw", ["gold", "GOLD", " Gold "])
    def test_from_value_known(self, raw):
        assert CompatibilityTier.from_value(raw) is CompatibilityTier.GOLD

    @pytest.mark.parametrize("raw", ["pending", "", None, 3])
    def test_from_value_unknown(self, raw):
        assert CompatibilityTier.from_value(raw) is CompatibilityTier.UNKNOWN

    def test_rank_follows_declaration_order(self):
        assert CompatibilityTier.NATIVE.rank == 0
        assert CompatibilityTier.PLATINUM.rank < CompatibilityTier.BORKED.rank
        assert CompatibilityTier.UNKNOWN.rank == len(CompatibilityTier) - 1


class TestCanonicalGameInvariants:
    """Tests for CanonicalGame validation."""

    def test_defaults(self):
        game = CanonicalGame(title="Tunic", platform=Platform.PC, list=GameList.BACKLOG)
        assert game.genres == []
        assert game.rating is None
        assert game.replay_count == 0
        assert game.playtime_normally is None
        assert game.is_completed is False

    def test_string_enums_coerced(self):
        game = CanonicalGame(title="Tunic", platform="Xbox", list="Now Playing")
        assert game.platform is Platform.XBOX
        assert game.list is GameList.NOW_PLAYING

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValueError, match="rating"):
            CanonicalGame(title="X", platform=Platform.PC, list=GameList.BACKLOG, rating=rating)

    def test_zero_playtime_rejected(self):
        with pytest.raises(ValueError, match="playtime_normally"):
            CanonicalGame(title="X", platform=Platform.PC, list=GameList.BACKLOG, playtime_normally=0)

    def test_negative_replay_count_rejected(self):
        with pytest.raises(ValueError, match="replay_count"):
            CanonicalGame(title="X", platform=Platform.PC, list=GameList.BACKLOG, replay_count=-1)

    @pytest.mark.parametrize(
        "fields",
        [{"storefront_product_id": 10}, {"compatibility_tier": CompatibilityTier.GOLD}],
    )
    def test_non_pc_cannot_carry_storefront_data(self, fields):
        with pytest.raises(ValueError, match="storefront"):
            CanonicalGame(title="X", platform=Platform.PLAYSTATION, list=GameList.BACKLOG, **fields)


class TestCanonicalGameDocuments:
    """Tests for to_document() / from_document()."""

    def test_absent_fields_are_omitted(self):
        doc = CanonicalGame(title="Tunic", platform=Platform.PC, list=GameList.BACKLOG).to_document()
        assert doc == {
            "title": "Tunic",
            "platform": "PC",
            "list": "Backlog",
            "genres": [],
            "replayCount": 0,
        }
        assert "playtimeNormally" not in doc
        assert "rating" not in doc

    def test_full_record_keys(self):
        added = datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)
        game = CanonicalGame(
            id="abc",
            title="Hades",
            platform=Platform.PC,
            list=GameList.RECENTLY_PLAYED,
            genres=["Roguelike"],
            image_url="https://img.example/hades.jpg",
            release_date="2020-09-17",
            playtime_normally=22,
            playtime_completely=95,
            storefront_product_id=1145360,
            compatibility_tier=CompatibilityTier.PLATINUM,
            rating=5,
            replay_count=1,
            date_added=added,
            date_completed=added,
        )
        doc = game.to_document()

        assert "id" not in doc
        assert doc["steamAppId"] == 1145360
        assert doc["steamDeckCompat"] == "platinum"
        assert doc["dateAdded"] == added.isoformat()
        assert CanonicalGame.from_document("abc", doc) == game

    def test_from_document_maps_unknown_tier(self):
        game = CanonicalGame.from_document(
            "x", {"title": "Y", "platform": "PC", "list": "Backlog", "steamDeckCompat": "pending"}
        )
        assert game.compatibility_tier is CompatibilityTier.UNKNOWN

    def test_parse_timestamp_malformed(self):
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None
