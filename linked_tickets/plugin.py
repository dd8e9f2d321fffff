"""Plugin registration entry point for linked-tickets.

Provides a single function to wire up MCP tools and REST API routes into the
host application.
"""

import logging
from typing import Any, Dict, Optional

from linked_tickets.api_routes import configure_routes, router
from linked_tickets.config import Settings, load_settings
from linked_tickets.gateway import HttpxPlatformClient, PlatformClient, TicketGateway
from linked_tickets.mcp_tools import register_linking_tools

logger = logging.getLogger(__name__)


def register_plugin(
    mcp_instance: Any,
    api_router: Any,
    settings: Optional[Settings] = None,
    client: Optional[PlatformClient] = None,
) -> Dict[str, Any]:
    """One-call plugin registration.

    Wires up:
    1. The platform client and TicketGateway
    2. MCP tools (1 tool) on the mcp_instance
    3. REST API routes on the api_router

    Args:
        mcp_instance: FastMCP server to register tools on.
        api_router: FastAPI APIRouter to include linked-ticket routes.
        settings: Plugin settings. Read from the environment if None.
        client: Platform client. An HttpxPlatformClient built from settings
            if None.

    Returns:
        Dict with:
            - settings: The effective Settings
            - client: The platform client (caller closes it on shutdown)
            - gateway: The configured TicketGateway
    """
    if settings is None:
        settings = load_settings()

    if client is None:
        client = HttpxPlatformClient(
            settings.ZENDESK_BASE_URL,
            email=settings.ZENDESK_EMAIL,
            api_token=settings.ZENDESK_API_TOKEN,
            timeout=settings.ZENDESK_TIMEOUT,
        )
    gateway = TicketGateway(client, settings.LINKED_TICKETS_CUSTOM_FIELD_ID)

    # 1. Register MCP tools
    register_linking_tools(
        mcp_instance=mcp_instance,
        gateway=gateway,
        base_url=settings.ZENDESK_BASE_URL,
        similar_limit=settings.SIMILAR_TICKET_LIMIT,
    )
    logger.info("linked_tickets: MCP tools registered (1 tool)")

    # 2. Configure and include REST API routes
    configure_routes(
        gateway=gateway,
        base_url=settings.ZENDESK_BASE_URL,
        similar_limit=settings.SIMILAR_TICKET_LIMIT,
    )
    api_router.include_router(router)
    logger.info("linked_tickets: REST API routes mounted")

    return {
        "settings": settings,
        "client": client,
        "gateway": gateway,
    }
