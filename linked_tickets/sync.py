"""LinkSyncEngine - keeps both sides of a ticket link consistent.

One call runs one transaction through the state machine:

    idle -> reading -> computing -> persisting -> annotating -> done
               \\-> failed_read_fallback -> computing

A failed read of the target falls back to an empty link set. A failed
persist aborts the transaction. A failed audit comment is only reported.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from linked_tickets.codec import decode_link_field, encode_link_field
from linked_tickets.gateway import GatewayError, TicketGateway
from linked_tickets.link_set import add_member, remove_member
from linked_tickets.models import LinkKind, LinkOperation, LinkResult, SyncState

logger = logging.getLogger(__name__)


# =========================================================================== #
# Errors                                                                      #
# =========================================================================== #


class LinkSyncError(Exception):
    """Base class for link transaction failures."""

    def __init__(self, message: str, operation: Optional[LinkOperation] = None):
        super().__init__(message)
        self.operation = operation


class SourceUnavailableError(LinkSyncError):
    """Raised when the source ticket id is not known. No request was made."""

    pass


class PersistFailedError(LinkSyncError):
    """Raised when the batched field update was rejected."""

    pass


class AnnotationFailedError(LinkSyncError):
    """Describes rejected audit comments. Reported on the result, never raised."""

    pass


# =========================================================================== #
# Audit comments                                                              #
# =========================================================================== #


def audit_comment_text(kind: LinkKind, other_id: int, comment: Optional[str] = None) -> str:
    """Build the internal comment recorded on one side of a link change.

    Args:
        kind: Link or unlink.
        other_id: ID of the ticket on the other side.
        comment: Free text from the user. Only used for links; blank text
            counts as no comment.
    """
    if kind == LinkKind.unlink:
        return f"Unlinked ticket #{other_id}."

    text = f"Linked ticket #{other_id}."
    if comment and comment.strip():
        text += f"\n\nComment: {comment.strip()}"
    return text


def apply_operation(tags: Sequence[str], kind: LinkKind, ticket_id: int) -> List[str]:
    if kind == LinkKind.link:
        return add_member(tags, ticket_id)
    return remove_member(tags, ticket_id)


# =========================================================================== #
# LinkSyncEngine                                                              #
# =========================================================================== #


class LinkSyncEngine:
    """Runs link and unlink transactions against a TicketGateway.

    The engine holds no state between calls. Callers pass in their mirror of
    the source ticket's link set and update it from the returned LinkResult.
    Transactions on the same pair are not serialized here.
    """

    def __init__(self, gateway: TicketGateway):
        self.gateway = gateway

    async def link(
        self,
        source_id: Optional[int],
        source_links: Sequence[str],
        target_id: int,
        comment: Optional[str] = None,
    ) -> LinkResult:
        operation = LinkOperation(
            source_id=source_id, target_id=target_id, kind=LinkKind.link, comment=comment
        )
        return await self.execute(operation, source_links)

    async def unlink(
        self,
        source_id: Optional[int],
        source_links: Sequence[str],
        target_id: int,
    ) -> LinkResult:
        operation = LinkOperation(source_id=source_id, target_id=target_id, kind=LinkKind.unlink)
        return await self.execute(operation, source_links)

    async def execute(self, operation: LinkOperation, source_links: Sequence[str]) -> LinkResult:
        """Run one transaction.

        Args:
            operation: What to do and between which tickets.
            source_links: Current link tags of the source ticket.

        Returns:
            LinkResult in state ``done``. ``annotation_error`` is set when an
            audit comment could not be written.

        Raises:
            SourceUnavailableError: If operation.source_id is missing.
            PersistFailedError: If the batched update was rejected.
        """
        result = LinkResult(operation=operation)
        self._enter(result, SyncState.idle)

        source_id = operation.source_id
        if not source_id:
            logger.error("Current ticket ID not available")
            raise SourceUnavailableError("Current ticket ID not available", operation)

        target_id = operation.target_id

        # Reading
        self._enter(result, SyncState.reading)
        target_links = await self._read_target_links(result, target_id)

        # Computing
        self._enter(result, SyncState.computing)
        new_source = apply_operation(source_links, operation.kind, target_id)
        new_target = apply_operation(target_links, operation.kind, source_id)
        result.source_value = encode_link_field(new_source)
        result.target_value = encode_link_field(new_target)

        # Persisting
        self._enter(result, SyncState.persisting)
        try:
            await self.gateway.update_link_fields_for_pair(
                source_id, result.source_value, target_id, result.target_value
            )
        except GatewayError as e:
            logger.error(
                "Persisting %s of #%s and #%s failed: %s",
                operation.kind.value, source_id, target_id, e,
            )
            raise PersistFailedError(
                f"Could not update linked tickets of #{source_id} and #{target_id}: {e}",
                operation,
            ) from e

        # Annotating
        self._enter(result, SyncState.annotating)
        result.annotation_error = await self._annotate(operation)

        self._enter(result, SyncState.done)
        logger.info(
            "Successfully %sed ticket #%s %s #%s",
            operation.kind.value, target_id,
            "to" if operation.kind == LinkKind.link else "from", source_id,
        )
        return result

    # --- Steps --- #

    async def _read_target_links(self, result: LinkResult, target_id: int) -> List[str]:
        """Current link tags of the target, or [] if it cannot be read."""
        try:
            target = await self.gateway.fetch_ticket(target_id)
        except GatewayError as e:
            logger.warning(
                "Error fetching target ticket #%s linked field, assuming no links: %s",
                target_id, e,
            )
            result.target_read_failed = True
            self._enter(result, SyncState.failed_read_fallback)
            return []
        return decode_link_field(target.custom_field_value(self.gateway.custom_field_id))

    async def _annotate(self, operation: LinkOperation) -> Optional[str]:
        """Write both audit comments concurrently.

        Returns:
            None when both were written, otherwise the AnnotationFailedError
            message.
        """
        source_id = operation.source_id
        target_id = operation.target_id
        outcomes = await asyncio.gather(
            self.gateway.append_audit_comment(
                source_id, audit_comment_text(operation.kind, target_id, operation.comment)
            ),
            self.gateway.append_audit_comment(
                target_id, audit_comment_text(operation.kind, source_id, operation.comment)
            ),
            return_exceptions=True,
        )

        failures = []
        for ticket_id, outcome in zip((source_id, target_id), outcomes):
            if isinstance(outcome, BaseException):
                failures.append(f"#{ticket_id}: {outcome}")
        if not failures:
            return None

        error = AnnotationFailedError(
            "Error adding internal comment on " + "; ".join(failures), operation
        )
        logger.error("%s", error)
        return str(error)

    @staticmethod
    def _enter(result: LinkResult, state: SyncState) -> None:
        logger.debug("link transaction %s -> %s", result.state.value, state.value)
        result.state = state
        result.states.append(state)
