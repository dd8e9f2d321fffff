"""FastAPI REST API routes for linked-tickets.

Exposes the linked tickets of one Zendesk ticket, link candidates, and the
link/unlink actions. The router is mounted at /tickets/{ticket_id}/links by
the host application.

The router receives its TicketGateway via configure_routes().
"""

from typing import Optional, Set

from fastapi import APIRouter, HTTPException, Query, status

from linked_tickets.gateway import GatewayError, NotFoundError, TicketGateway
from linked_tickets.models import (
    CandidateList,
    LinkCreate,
    LinkedTicketsView,
    LinkResult,
    Ticket,
)
from linked_tickets.projection import (
    DEFAULT_SIMILAR_LIMIT,
    LinkedTicketsProjection,
    LinkInFlightError,
)
from linked_tickets.sync import LinkSyncEngine, PersistFailedError, SourceUnavailableError

router = APIRouter(prefix="/tickets/{ticket_id}/links", tags=["Linked Tickets"])

# These will be set by the plugin registration to provide platform access.
_gateway: Optional[TicketGateway] = None
_engine: Optional[LinkSyncEngine] = None
_base_url: str = ""
_similar_limit: int = DEFAULT_SIMILAR_LIMIT

# Ticket ids with a link change in progress, shared by all requests
_in_flight: Set[int] = set()


def configure_routes(
    gateway: TicketGateway,
    base_url: str = "",
    similar_limit: int = DEFAULT_SIMILAR_LIMIT,
) -> None:
    """Configure the router with platform access.

    Args:
        gateway: Gateway used for every request.
        base_url: Zendesk base URL for agent-facing ticket links.
        similar_limit: Max similar tickets returned by /similar.
    """
    global _gateway, _engine, _base_url, _similar_limit
    _gateway = gateway
    _engine = LinkSyncEngine(gateway)
    _base_url = base_url
    _similar_limit = similar_limit
    _in_flight.clear()


def _require_gateway():
    """Ensure platform access is configured."""
    if _gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Linked tickets plugin platform access not configured",
        )


async def _load(ticket_id: int) -> LinkedTicketsProjection:
    _require_gateway()
    try:
        return await LinkedTicketsProjection.load(
            _engine,
            _gateway,
            ticket_id,
            base_url=_base_url,
            similar_limit=_similar_limit,
            in_flight=_in_flight,
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Ticket {ticket_id} not found")
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=f"Error fetching ticket: {e}")


# --------------------------------------------------------------------------- #
# Read                                                                        #
# --------------------------------------------------------------------------- #


@router.get("", response_model=LinkedTicketsView)
async def list_linked_tickets(ticket_id: int):
    """Get the linked-tickets field and the resolved linked tickets."""
    projection = await _load(ticket_id)
    await projection.refresh_linked_tickets()
    return projection.view()


@router.get("/search", response_model=CandidateList)
async def search_candidates(ticket_id: int, query: str = Query(..., min_length=1)):
    """Search tickets that can still be linked to this one."""
    projection = await _load(ticket_id)
    results = await projection.search(query)
    return CandidateList(
        ticket_id=ticket_id,
        query=query,
        tickets=[projection.summarize(t) for t in results],
    )


@router.get("/similar", response_model=CandidateList)
async def similar_tickets(ticket_id: int):
    """Unlinked tickets with a subject similar to this one."""
    projection = await _load(ticket_id)
    results = await projection.similar_tickets()
    return CandidateList(
        ticket_id=ticket_id,
        query=projection.ticket.subject,
        tickets=[projection.summarize(t) for t in results],
    )


# --------------------------------------------------------------------------- #
# Write                                                                       #
# --------------------------------------------------------------------------- #


@router.post("", response_model=LinkResult, status_code=status.HTTP_201_CREATED)
async def link_ticket(ticket_id: int, body: LinkCreate):
    """Link another ticket to this one, on both sides."""
    if body.target_id == ticket_id:
        raise HTTPException(status_code=422, detail="A ticket cannot be linked to itself")
    projection = await _load(ticket_id)
    try:
        return await projection.link(Ticket(id=body.target_id), body.comment)
    except LinkInFlightError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SourceUnavailableError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistFailedError as e:
        raise HTTPException(status_code=502, detail=f"Error linking ticket: {e}")


@router.delete("/{target_id}", response_model=LinkResult)
async def unlink_ticket(ticket_id: int, target_id: int):
    """Remove the link between this ticket and target_id, on both sides."""
    projection = await _load(ticket_id)
    try:
        return await projection.unlink(target_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except LinkInFlightError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SourceUnavailableError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistFailedError as e:
        raise HTTPException(status_code=502, detail=f"Error unlinking ticket: {e}")
