"""Tests for settings loading and plugin registration."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from linked_tickets.config import Settings, load_settings
from linked_tickets.gateway import HttpxPlatformClient, TicketGateway
from linked_tickets.plugin import register_plugin


class TestSettings:
    def test_field_id_is_parsed_from_string(self, monkeypatch):
        monkeypatch.setenv("LINKED_TICKETS_CUSTOM_FIELD_ID", " 360001234567 ")
        monkeypatch.setenv("ZENDESK_BASE_URL", "https://example.zendesk.com/")

        settings = load_settings()

        assert settings.LINKED_TICKETS_CUSTOM_FIELD_ID == 360001234567
        assert settings.ZENDESK_BASE_URL == "https://example.zendesk.com"
        assert settings.SIMILAR_TICKET_LIMIT == 10

    def test_non_numeric_field_id_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(LINKED_TICKETS_CUSTOM_FIELD_ID="abc", ZENDESK_BASE_URL="https://x")

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("LINKED_TICKETS_CUSTOM_FIELD_ID", "1")
        monkeypatch.setenv("ZENDESK_BASE_URL", "https://example.zendesk.com")

        settings = load_settings(SIMILAR_TICKET_LIMIT=3)

        assert settings.SIMILAR_TICKET_LIMIT == 3


class TestRegisterPlugin:
    def _settings(self):
        return Settings(
            LINKED_TICKETS_CUSTOM_FIELD_ID="360001234567",
            ZENDESK_BASE_URL="https://example.zendesk.com",
            ZENDESK_EMAIL="agent@example.com",
            ZENDESK_API_TOKEN="secret",
        )

    def test_wires_tools_and_routes(self):
        mcp = MagicMock()
        api_router = MagicMock()
        client = MagicMock()

        result = register_plugin(mcp, api_router, settings=self._settings(), client=client)

        mcp.tool.assert_called_once()
        api_router.include_router.assert_called_once()
        assert isinstance(result["gateway"], TicketGateway)
        assert result["gateway"].custom_field_id == 360001234567
        assert result["client"] is client

    def test_builds_httpx_client_when_none_given(self):
        result = register_plugin(MagicMock(), MagicMock(), settings=self._settings())

        assert isinstance(result["client"], HttpxPlatformClient)
