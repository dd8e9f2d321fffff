"""Tests for the ticket_link MCP tool.

Registers the tool on a mock FastMCP and calls it directly.
All test data is fixed and deterministic.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from linked_tickets.gateway import NotFoundError, TransportError
from linked_tickets.mcp_tools import register_linking_tools
from linked_tickets.models import Ticket

FIELD_ID = 360001234567
BASE_URL = "https://example.zendesk.com"


def _make_mock_mcp():
    """Create a mock FastMCP that captures registered tools."""
    mock = MagicMock()
    registered = {}

    def tool_decorator():
        def decorator(func):
            registered[func.__name__] = func
            return func
        return decorator

    mock.tool = tool_decorator
    mock._registered_tools = registered
    return mock


def _make_ticket(id, subject="Printer offline", links=None):
    custom_fields = [{"id": FIELD_ID, "value": links}] if links is not None else []
    return Ticket(id=id, subject=subject, status="open", custom_fields=custom_fields)


def _make_mock_gateway(tickets=None):
    tickets = {t.id: t for t in (tickets or [])}
    gateway = MagicMock()
    gateway.custom_field_id = FIELD_ID

    async def fetch_ticket(ticket_id):
        if ticket_id not in tickets:
            raise NotFoundError(f"ticket {ticket_id}")
        return tickets[ticket_id]

    gateway.fetch_ticket = AsyncMock(side_effect=fetch_ticket)
    gateway.fetch_tickets_by_ids = AsyncMock(return_value=[])
    gateway.search_tickets = AsyncMock(return_value=[])
    gateway.search_tickets_paged = AsyncMock(return_value=[])
    gateway.update_link_fields_for_pair = AsyncMock(return_value=MagicMock())
    gateway.append_audit_comment = AsyncMock(return_value={})
    return gateway


def _register(gateway):
    mcp = _make_mock_mcp()
    register_linking_tools(mcp, gateway, base_url=BASE_URL)
    return mcp._registered_tools["ticket_link"]


@pytest.mark.asyncio
class TestTicketLinkTool:
    async def test_registers_single_tool(self):
        mcp = _make_mock_mcp()
        register_linking_tools(mcp, _make_mock_gateway())
        assert list(mcp._registered_tools) == ["ticket_link"]

    async def test_list(self):
        gateway = _make_mock_gateway([_make_ticket(1, links="link:4")])
        gateway.fetch_tickets_by_ids.return_value = [_make_ticket(4, subject="Paper jam")]
        tool = _register(gateway)

        data = json.loads(await tool(action="list", ticket_id=1))

        assert data["linked_ids"] == [4]
        assert data["tickets"][0]["url"] == "https://example.zendesk.com/agent/tickets/4"

    async def test_search_requires_query(self):
        tool = _register(_make_mock_gateway([_make_ticket(1)]))

        data = json.loads(await tool(action="search", ticket_id=1))

        assert "query is required" in data["error"]
        assert data["error_type"] == "ValueError"

    async def test_search(self):
        gateway = _make_mock_gateway([_make_ticket(1, links="link:4")])
        gateway.search_tickets.return_value = [_make_ticket(4), _make_ticket(8)]
        tool = _register(gateway)

        data = json.loads(await tool(action="search", ticket_id=1, query="printer"))

        assert [t["id"] for t in data["tickets"]] == [8]

    async def test_similar(self):
        gateway = _make_mock_gateway([_make_ticket(1)])
        gateway.search_tickets_paged.return_value = [_make_ticket(2)]
        tool = _register(gateway)

        data = json.loads(await tool(action="similar", ticket_id=1))

        assert [t["id"] for t in data["tickets"]] == [2]

    async def test_link(self):
        gateway = _make_mock_gateway([_make_ticket(1, links=""), _make_ticket(999, links="")])
        tool = _register(gateway)

        data = json.loads(
            await tool(action="link", ticket_id=1, target_id=999, comment="Test comment")
        )

        assert data["status"] == "linked"
        assert data["result"]["source_value"] == "link:999"
        gateway.append_audit_comment.assert_any_await(
            999, "Linked ticket #1.\n\nComment: Test comment"
        )

    async def test_link_requires_target(self):
        tool = _register(_make_mock_gateway([_make_ticket(1)]))

        data = json.loads(await tool(action="link", ticket_id=1))

        assert "target_id is required" in data["error"]
        assert data["error_type"] == "ValueError"

    async def test_link_persist_failure_is_reported(self):
        gateway = _make_mock_gateway([_make_ticket(1, links=""), _make_ticket(999, links="")])
        gateway.update_link_fields_for_pair.side_effect = TransportError("HTTP 500")
        tool = _register(gateway)

        data = json.loads(await tool(action="link", ticket_id=1, target_id=999))

        assert data["error"].startswith("Error linking ticket")
        assert data["error_type"] == "PersistFailedError"

    async def test_unlink(self):
        gateway = _make_mock_gateway([_make_ticket(1, links="link:2"), _make_ticket(2, links="link:1")])
        tool = _register(gateway)

        data = json.loads(await tool(action="unlink", ticket_id=1, target_id=2))

        assert data["status"] == "unlinked"
        gateway.update_link_fields_for_pair.assert_awaited_once_with(1, "", 2, "")

    async def test_unknown_ticket(self):
        tool = _register(_make_mock_gateway())

        data = json.loads(await tool(action="list", ticket_id=5))

        assert data == {"error": "Ticket 5 not found", "error_type": "NotFoundError"}

    async def test_unknown_action(self):
        tool = _register(_make_mock_gateway([_make_ticket(1)]))

        data = json.loads(await tool(action="merge", ticket_id=1))

        assert data["error_type"] == "ValueError"
        assert data["valid_actions"] == ["list", "search", "similar", "link", "unlink"]

    async def test_self_link_is_refused(self):
        gateway = _make_mock_gateway([_make_ticket(1)])
        tool = _register(gateway)

        data = json.loads(await tool(action="link", ticket_id=1, target_id=1))

        assert data == {"error": "A ticket cannot be linked to itself", "error_type": "ValueError"}
        gateway.update_link_fields_for_pair.assert_not_awaited()

    async def test_self_unlink_is_refused(self):
        gateway = _make_mock_gateway([_make_ticket(1)])
        tool = _register(gateway)

        data = json.loads(await tool(action="unlink", ticket_id=1, target_id=1))

        assert data["error_type"] == "ValueError"
        gateway.update_link_fields_for_pair.assert_not_awaited()
