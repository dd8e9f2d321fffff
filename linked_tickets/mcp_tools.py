"""MCP tool definitions for linked-tickets.

Provides one tool covering the whole linked-tickets workflow:
- ticket_link: list / search / similar / link / unlink

Registration pattern: register_linking_tools() takes the FastMCP instance and
a configured TicketGateway from the host, decoupling this plugin from host
internals.
"""

import json
from typing import Annotated, Any, Literal, Optional, Set

from linked_tickets.gateway import NotFoundError, TicketGateway
from linked_tickets.models import Ticket
from linked_tickets.projection import DEFAULT_SIMILAR_LIMIT, LinkedTicketsProjection
from linked_tickets.sync import LinkSyncEngine

VALID_ACTIONS = ["list", "search", "similar", "link", "unlink"]


def _safe_json(data: Any) -> str:
    """Serialize pydantic models or plain data as JSON."""
    try:
        if hasattr(data, "model_dump"):
            return json.dumps(data.model_dump(mode="json"), default=str)
        return json.dumps(data, default=str)
    except Exception as e:
        return json.dumps({"error": str(e)})


def register_linking_tools(
    mcp_instance: Any,
    gateway: TicketGateway,
    base_url: str = "",
    similar_limit: int = DEFAULT_SIMILAR_LIMIT,
) -> None:
    """Register linked-tickets MCP tools on the given FastMCP instance.

    Args:
        mcp_instance: FastMCP server to register tools on.
        gateway: Gateway used for every platform call.
        base_url: Zendesk base URL for agent-facing ticket links.
        similar_limit: Max results for the similar action.
    """
    engine = LinkSyncEngine(gateway)
    in_flight: Set[int] = set()

    @mcp_instance.tool()
    async def ticket_link(
        action: Annotated[
            Literal["list", "search", "similar", "link", "unlink"],
            "Operation to perform",
        ],
        ticket_id: Annotated[int, "Current Zendesk ticket ID"],
        target_id: Annotated[Optional[int], "Ticket to link or unlink (link/unlink)"] = None,
        query: Annotated[Optional[str], "Search text (search)"] = None,
        comment: Annotated[Optional[str], "Internal comment recorded with the link (link)"] = None,
    ) -> str:
        """Manage symmetric links between Zendesk tickets.

        action → required params:
          list    → ticket_id
          search  → ticket_id + query (already linked tickets are excluded)
          similar → ticket_id
          link    → ticket_id + target_id (+ optional comment)
          unlink  → ticket_id + target_id"""
        if action not in VALID_ACTIONS:
            return json.dumps({
                "error": f"Unknown action: {action}",
                "error_type": "ValueError",
                "valid_actions": VALID_ACTIONS,
            })

        try:
            projection = await LinkedTicketsProjection.load(
                engine,
                gateway,
                ticket_id,
                base_url=base_url,
                similar_limit=similar_limit,
                in_flight=in_flight,
            )
        except NotFoundError:
            return json.dumps({"error": f"Ticket {ticket_id} not found", "error_type": "NotFoundError"})
        except Exception as e:
            return json.dumps(
                {"error": f"Error fetching ticket: {str(e)[:200]}", "error_type": e.__class__.__name__}
            )

        if action == "list":
            await projection.refresh_linked_tickets()
            return _safe_json(projection.view())

        if action == "search":
            if not query:
                return json.dumps({"error": "query is required for search", "error_type": "ValueError"})
            results = await projection.search(query)
            return _safe_json({
                "ticket_id": ticket_id,
                "query": query,
                "tickets": [projection.summarize(t).model_dump() for t in results],
            })

        if action == "similar":
            results = await projection.similar_tickets()
            return _safe_json({
                "ticket_id": ticket_id,
                "tickets": [projection.summarize(t).model_dump() for t in results],
            })

        if not target_id:
            return json.dumps(
                {"error": f"target_id is required for {action}", "error_type": "ValueError"}
            )

        if action == "link":
            if target_id == ticket_id:
                return json.dumps(
                    {"error": "A ticket cannot be linked to itself", "error_type": "ValueError"}
                )
            try:
                result = await projection.link(Ticket(id=target_id), comment)
            except Exception as e:
                return json.dumps(
                    {"error": f"Error linking ticket: {str(e)[:200]}", "error_type": e.__class__.__name__}
                )
            return _safe_json({"status": "linked", "result": result.model_dump(mode="json")})

        try:
            result = await projection.unlink(target_id)
        except Exception as e:
            return json.dumps(
                {"error": f"Error unlinking ticket: {str(e)[:200]}", "error_type": e.__class__.__name__}
            )
        return _safe_json({"status": "unlinked", "result": result.model_dump(mode="json")})
