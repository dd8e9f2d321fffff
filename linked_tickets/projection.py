"""In-memory view of one ticket's links.

LinkedTicketsProjection owns the mirrored link tags of the current ticket
and the resolved linked Ticket objects. Both change only after the engine
reports a completed transaction.
"""

import logging
from typing import List, Optional, Set

from linked_tickets.codec import (
    decode_link_field,
    encode_link_field,
    excluded_ticket_ids,
    linked_ticket_ids,
)
from linked_tickets.gateway import GatewayError, TicketGateway
from linked_tickets.models import (
    LinkedTicketsView,
    LinkedTicketSummary,
    LinkResult,
    Ticket,
)
from linked_tickets.sync import LinkSyncEngine

logger = logging.getLogger(__name__)

DEFAULT_SIMILAR_LIMIT = 10


class LinkInFlightError(Exception):
    """Raised when a link or unlink touching the same ticket is still running."""

    pass


class LinkedTicketsProjection:
    """Links of the current ticket, as shown to the caller."""

    def __init__(
        self,
        engine: LinkSyncEngine,
        gateway: TicketGateway,
        ticket: Optional[Ticket],
        link_field_value: Optional[str] = None,
        base_url: str = "",
        similar_limit: int = DEFAULT_SIMILAR_LIMIT,
        in_flight: Optional[Set[int]] = None,
    ):
        self.engine = engine
        self.gateway = gateway
        self.ticket = ticket
        self.base_url = base_url.rstrip("/")
        self.similar_limit = similar_limit
        self.link_tags: List[str] = decode_link_field(link_field_value)
        self.linked_tickets: List[Ticket] = []
        # Shared between projections when several serve the same process
        self._in_flight = in_flight if in_flight is not None else set()

    @classmethod
    async def load(
        cls,
        engine: LinkSyncEngine,
        gateway: TicketGateway,
        ticket_id: int,
        base_url: str = "",
        similar_limit: int = DEFAULT_SIMILAR_LIMIT,
        in_flight: Optional[Set[int]] = None,
    ) -> "LinkedTicketsProjection":
        """Fetch the current ticket and mirror its linked-tickets field.

        Raises:
            NotFoundError: If the ticket does not exist.
            TransportError: On any other failure.
        """
        ticket = await gateway.fetch_ticket(ticket_id)
        raw = ticket.custom_field_value(gateway.custom_field_id)
        return cls(
            engine,
            gateway,
            ticket,
            link_field_value=raw if isinstance(raw, str) else None,
            base_url=base_url,
            similar_limit=similar_limit,
            in_flight=in_flight,
        )

    # --- Read side --- #

    @property
    def ticket_id(self) -> Optional[int]:
        return self.ticket.id if self.ticket else None

    @property
    def link_field(self) -> str:
        return encode_link_field(self.link_tags)

    @property
    def linked_ids(self) -> List[int]:
        return linked_ticket_ids(self.link_tags)

    def ticket_url(self, ticket_id: int) -> str:
        return f"{self.base_url}/agent/tickets/{ticket_id}"

    def summarize(self, ticket: Ticket) -> LinkedTicketSummary:
        return LinkedTicketSummary(
            id=ticket.id,
            subject=ticket.subject,
            description=ticket.description,
            status=ticket.status,
            url=self.ticket_url(ticket.id),
        )

    def view(self) -> LinkedTicketsView:
        return LinkedTicketsView(
            ticket_id=self.ticket_id or 0,
            link_field=self.link_field,
            linked_ids=self.linked_ids,
            tickets=[self.summarize(t) for t in self.linked_tickets],
        )

    async def refresh_linked_tickets(self) -> List[Ticket]:
        """Resolve the linked ids into Ticket objects.

        No request is made when every linked id is already resolved. A failed
        lookup leaves an empty list.
        """
        ids = self.linked_ids
        if not ids:
            self.linked_tickets = []
            return self.linked_tickets

        resolved = {t.id for t in self.linked_tickets}
        if len(ids) == len(self.linked_tickets) and all(i in resolved for i in ids):
            return self.linked_tickets

        try:
            self.linked_tickets = await self.gateway.fetch_tickets_by_ids(ids)
        except GatewayError as e:
            logger.error("Error fetching linked tickets: %s", e)
            self.linked_tickets = []
        return self.linked_tickets

    async def search(self, query: str) -> List[Ticket]:
        """Tickets matching query that could still be linked."""
        if not query or not query.strip():
            return []
        try:
            results = await self.gateway.search_tickets(query.strip())
        except GatewayError as e:
            logger.error("Error searching tickets: %s", e)
            return []
        excluded = excluded_ticket_ids(self.link_tags, self.ticket_id)
        return [t for t in results if t.id not in excluded]

    async def similar_tickets(self) -> List[Ticket]:
        """Unlinked tickets found by searching for the current subject."""
        if not self.ticket or not self.ticket.subject:
            return []
        excluded = excluded_ticket_ids(self.link_tags, self.ticket_id)
        try:
            results = await self.gateway.search_tickets_paged(
                self.ticket.subject, self.similar_limit + len(excluded)
            )
        except GatewayError as e:
            logger.error("Error fetching similar tickets: %s", e)
            return []
        return [t for t in results if t.id not in excluded][: self.similar_limit]

    # --- Write side --- #

    async def link(self, target: Ticket, comment: Optional[str] = None) -> LinkResult:
        """Link target to the current ticket and mirror the change.

        Raises:
            ValueError: If target is the current ticket.
            LinkInFlightError: If either ticket already has a change running.
            SourceUnavailableError: If there is no current ticket.
            PersistFailedError: If the platform rejected the update.
        """
        self._refuse_self(target.id)
        claimed = self._begin(target.id)
        try:
            result = await self.engine.link(self.ticket_id, self.link_tags, target.id, comment)
        except Exception:
            logger.exception("Error linking ticket #%s", target.id)
            raise
        finally:
            self._in_flight.difference_update(claimed)

        self.link_tags = decode_link_field(result.source_value)
        if all(t.id != target.id for t in self.linked_tickets):
            self.linked_tickets = self.linked_tickets + [target]
        return result

    async def unlink(self, target_id: int) -> LinkResult:
        """Unlink target_id from the current ticket and mirror the change."""
        self._refuse_self(target_id)
        claimed = self._begin(target_id)
        try:
            result = await self.engine.unlink(self.ticket_id, self.link_tags, target_id)
        except Exception:
            logger.exception("Error unlinking ticket #%s", target_id)
            raise
        finally:
            self._in_flight.difference_update(claimed)

        self.link_tags = decode_link_field(result.source_value)
        self.linked_tickets = [t for t in self.linked_tickets if t.id != target_id]
        return result

    def _refuse_self(self, target_id: int) -> None:
        if self.ticket_id is not None and target_id == self.ticket_id:
            raise ValueError("A ticket cannot be linked to itself")

    def _begin(self, target_id: int) -> Set[int]:
        """Claim both tickets' link fields, or raise if either is taken.

        Every change rewrites the whole field of both tickets, so two changes
        sharing any ticket would overwrite each other.
        """
        ids = {target_id}
        if self.ticket_id:
            ids.add(self.ticket_id)
        busy = ids & self._in_flight
        if busy:
            raise LinkInFlightError(
                f"A link change on #{min(busy)} is already running"
            )
        self._in_flight.update(ids)
        return ids
