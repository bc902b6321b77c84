"""Tests for the RAWG catalog client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from src.core.exceptions import AuthConfigurationError, RateLimitedError
from src.integrations.rawg_api import CatalogEntry, RAWGClient


def _make_response(status_code: int = 200, payload: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    return response


def _make_client(mock_session_cls: MagicMock, response: MagicMock) -> tuple[RAWGClient, MagicMock]:
    mock_session = MagicMock()
    mock_session.get.return_value = response
    mock_session_cls.return_value = mock_session
    return RAWGClient("test-key"), mock_session


class TestRAWGClientSearch:
    """Tests for RAWGClient.search()."""

    @patch("src.integrations.rawg_api.requests.Session")
    def test_search_parses_entries(self, mock_session_cls: MagicMock) -> None:
        payload = {
            "results": [
                {
                    "id": 3328,
                    "name": "The Witcher 3: Wild Hunt",
                    "background_image": "https://media.rawg.io/w3.jpg",
                    "genres": [{"name": "Action"}, {"name": "RPG"}],
                    "released": "2015-05-18",
                    "playtime": 46,
                    "platforms": [{"platform": {"name": "PC"}}, {"platform": {"name": "Nintendo Switch"}}],
                },
                {"id": 1, "name": ""},
            ]
        }
        client, session = _make_client(mock_session_cls, _make_response(payload=payload))

        results = client.search("witcher 3")

        assert results == [
            CatalogEntry(
                id=3328,
                name="The Witcher 3: Wild Hunt",
                image_url="https://media.rawg.io/w3.jpg",
                genres=("Action", "RPG"),
                release_date="2015-05-18",
                playtime_hours=46,
                platforms=("PC", "Nintendo Switch"),
            )
        ]
        params = session.get.call_args.kwargs["params"]
        assert params == {"key": "test-key", "search": "witcher 3", "page_size": 10}

    @patch("src.integrations.rawg_api.requests.Session")
    def test_zero_playtime_and_missing_image_are_absent(self, mock_session_cls: MagicMock) -> None:
        payload = {"results": [{"id": 5, "name": "Tiny", "playtime": 0, "background_image": None}]}
        client, _ = _make_client(mock_session_cls, _make_response(payload=payload))

        entry = client.search("Tiny")[0]
        assert entry.playtime_hours is None
        assert entry.image_url is None
        assert entry.genres == ()

    @patch("src.integrations.rawg_api.requests.Session")
    def test_missing_key_raises_without_request(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session

        with pytest.raises(AuthConfigurationError):
            RAWGClient(None).search("anything")
        mock_session.get.assert_not_called()

    @pytest.mark.parametrize("status", [401, 403])
    @patch("src.integrations.rawg_api.requests.Session")
    def test_rejected_key_raises(self, mock_session_cls: MagicMock, status: int) -> None:
        client, _ = _make_client(mock_session_cls, _make_response(status))
        with pytest.raises(AuthConfigurationError):
            client.search("x")

    @pytest.mark.parametrize("status", [429, 503])
    @patch("src.integrations.rawg_api.requests.Session")
    def test_rate_limit_raises(self, mock_session_cls: MagicMock, status: int) -> None:
        client, _ = _make_client(mock_session_cls, _make_response(status))
        with pytest.raises(RateLimitedError) as exc_info:
            client.search("x")
        assert exc_info.value.status_code == status

    @patch("src.integrations.rawg_api.requests.Session")
    def test_server_error_returns_empty(self, mock_session_cls: MagicMock) -> None:
        client, _ = _make_client(mock_session_cls, _make_response(500))
        assert client.search("x") == []

    @patch("src.integrations.rawg_api.requests.Session")
    def test_network_error_returns_empty(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session.get.side_effect = requests.ConnectionError("offline")
        mock_session_cls.return_value = mock_session
        assert RAWGClient("k").search("x") == []

    @patch("src.integrations.rawg_api.requests.Session")
    def test_invalid_json_returns_empty(self, mock_session_cls: MagicMock) -> None:
        response = _make_response()
        response.json.side_effect = ValueError("not json")
        client, _ = _make_client(mock_session_cls, response)
        assert client.search("x") == []

    @pytest.mark.parametrize("payload", [["unexpected"], None, "oops", {"results": {"id": 1}}])
    @patch("src.integrations.rawg_api.requests.Session")
    def test_unexpected_body_shape_returns_empty(self, mock_session_cls: MagicMock, payload) -> None:
        response = _make_response()
        response.json.return_value = payload
        client, _ = _make_client(mock_session_cls, response)
        assert client.search("Some Game") == []

    @patch("src.integrations.rawg_api.requests.Session")
    def test_malformed_items_skipped(self, mock_session_cls: MagicMock) -> None:
        payload = {
            "results": [
                "not an entry",
                {"id": "abc", "name": "Bad id"},
                {
                    "id": 7,
                    "name": "Messy",
                    "genres": ["Action", {"name": "RPG"}, None],
                    "platforms": [None, {"platform": "PC"}, {"platform": {"name": "Xbox Series S/X"}}],
                },
            ]
        }
        client, _ = _make_client(mock_session_cls, _make_response(payload=payload))

        assert client.search("Messy") == [
            CatalogEntry(id=7, name="Messy", genres=("RPG",), platforms=("Xbox Series S/X",))
        ]
