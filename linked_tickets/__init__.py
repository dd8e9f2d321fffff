"""Linked Tickets - symmetric ticket links stored in a Zendesk custom field."""

from linked_tickets.codec import decode_link_field, encode_link_field
from linked_tickets.gateway import (
    GatewayError,
    HttpxPlatformClient,
    NotFoundError,
    TicketGateway,
    TransportError,
)
from linked_tickets.link_set import add_member, remove_member
from linked_tickets.models import (
    LinkKind,
    LinkOperation,
    LinkResult,
    SyncState,
    Ticket,
)
from linked_tickets.projection import LinkedTicketsProjection, LinkInFlightError
from linked_tickets.sync import (
    AnnotationFailedError,
    LinkSyncEngine,
    LinkSyncError,
    PersistFailedError,
    SourceUnavailableError,
)

__version__ = "0.1.0"

__all__ = [
    "decode_link_field",
    "encode_link_field",
    "add_member",
    "remove_member",
    "TicketGateway",
    "HttpxPlatformClient",
    "GatewayError",
    "NotFoundError",
    "TransportError",
    "LinkSyncEngine",
    "LinkSyncError",
    "SourceUnavailableError",
    "PersistFailedError",
    "AnnotationFailedError",
    "LinkedTicketsProjection",
    "LinkInFlightError",
    "LinkKind",
    "LinkOperation",
    "LinkResult",
    "SyncState",
    "Ticket",
]
