"""Tests for the ProtonDB API client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from src.core.exceptions import RateLimitedError
from src.core.game import CompatibilityTier
from src.integrations.protondb_api import ProtonDBClient


def _mock_session(mock_session_cls: MagicMock, status_code: int = 200, payload=None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    mock_session = MagicMock()
    mock_session.get.return_value = mock_response
    mock_session_cls.return_value = mock_session
    return mock_session


class TestProtonDBClientGetTier:
    """Tests for ProtonDBClient.get_tier()."""

    @patch("src.integrations.protondb_api.requests.Session")
    def test_get_tier_success(self, mock_session_cls: MagicMock) -> None:
        session = _mock_session(mock_session_cls, payload={"tier": "gold", "confidence": "strong"})

        assert ProtonDBClient().get_tier(730) is CompatibilityTier.GOLD
        assert session.get.call_args.args[0].endswith("/summaries/730.json")

    @patch("src.integrations.protondb_api.requests.Session")
    def test_unrecognised_tier_is_unknown(self, mock_session_cls: MagicMock) -> None:
        _mock_session(mock_session_cls, payload={"tier": "pending"})
        assert ProtonDBClient().get_tier(1) is CompatibilityTier.UNKNOWN

    @patch("src.integrations.protondb_api.requests.Session")
    def test_get_tier_404_returns_none(self, mock_session_cls: MagicMock) -> None:
        _mock_session(mock_session_cls, status_code=404)
        assert ProtonDBClient().get_tier(999999) is None

    @patch("src.integrations.protondb_api.requests.Session")
    def test_get_tier_rate_limited(self, mock_session_cls: MagicMock) -> None:
        _mock_session(mock_session_cls, status_code=503)
        with pytest.raises(RateLimitedError):
            ProtonDBClient().get_tier(730)

    @patch("src.integrations.protondb_api.requests.Session")
    def test_get_tier_network_error(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session.get.side_effect = requests.Timeout("slow")
        mock_session_cls.return_value = mock_session
        assert ProtonDBClient().get_tier(730) is None

    @patch("src.integrations.protondb_api.requests.Session")
    def test_get_tier_bad_json(self, mock_session_cls: MagicMock) -> None:
        session = _mock_session(mock_session_cls)
        session.get.return_value.json.side_effect = ValueError("bad")
        assert ProtonDBClient().get_tier(730) is None
