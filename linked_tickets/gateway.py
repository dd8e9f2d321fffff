"""Remote ticket gateway for linked-tickets.

Thin request layer over the Zendesk REST API:
- Takes a platform client as parameter (DI); any object with an async
  ``request(method, url, params=None, json=None)`` works
- One outbound request per operation, no retries, no caching
- Failures are logged and re-raised as GatewayError subclasses
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from linked_tickets.models import (
    SearchPage,
    Ticket,
    TicketEnvelope,
    TicketsEnvelope,
    UpdateManyResponse,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


# =========================================================================== #
# Errors                                                                      #
# =========================================================================== #


class GatewayError(Exception):
    """Raised when a platform request is rejected."""

    pass


class NotFoundError(GatewayError):
    """Raised when the platform answers 404 for a ticket."""

    pass


class TransportError(GatewayError):
    """Raised for any other HTTP or network failure."""

    pass


# =========================================================================== #
# Platform client                                                             #
# =========================================================================== #


class PlatformClient(Protocol):
    """Protocol for the client used by TicketGateway to reach the platform.

    The caller is responsible for the client lifecycle.
    """

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]: ...


class HttpxPlatformClient:
    """PlatformClient backed by an ``httpx.AsyncClient``.

    Authenticates with an agent email and API token
    (``<email>/token:<api_token>`` basic auth).
    """

    def __init__(
        self,
        base_url: str,
        email: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        auth = None
        if email and api_token:
            auth = httpx.BasicAuth(f"{email}/token", api_token)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(f"{method} {url}: not found") from e
            raise TransportError(
                f"{method} {url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {url}: invalid JSON response") from e

    async def aclose(self) -> None:
        await self._client.aclose()


# =========================================================================== #
# TicketGateway                                                               #
# =========================================================================== #


class TicketGateway:
    """Stateless request layer for the linked-tickets custom field.

    Every call re-reads the platform; nothing is cached between calls.
    """

    def __init__(self, client: PlatformClient, custom_field_id: int):
        self.client = client
        self.custom_field_id = int(custom_field_id)

    def _link_field_entry(self, value: str) -> Dict[str, Any]:
        return {"id": self.custom_field_id, "value": value}

    async def _request(self, label: str, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            return await self.client.request(method, url, **kwargs)
        except GatewayError as e:
            logger.error("%s error: %s", label, e)
            raise
        except Exception as e:
            logger.error("%s error: %s", label, e)
            raise TransportError(str(e)) from e

    def _parse(self, label: str, model: Type[M], data: Any) -> M:
        try:
            return model.model_validate(data or {})
        except ValidationError as e:
            logger.error("%s error: unexpected response: %s", label, e)
            raise TransportError(f"{label}: unexpected response") from e

    async def fetch_ticket(self, ticket_id: int) -> Ticket:
        """Get a ticket by ID.

        Raises:
            NotFoundError: If the ticket does not exist.
            TransportError: On any other failure.
        """
        data = await self._request("Get ticket", "GET", f"/api/v2/tickets/{ticket_id}.json")
        return self._parse("Get ticket", TicketEnvelope, data).ticket

    async def fetch_tickets_by_ids(self, ticket_ids: Sequence[int]) -> List[Ticket]:
        """Get several tickets in one request.

        The platform silently omits ids it cannot return, so the result may
        be shorter than the input and is not guaranteed to follow its order.
        """
        if not ticket_ids:
            return []
        data = await self._request(
            "Search by IDs",
            "GET",
            "/api/v2/tickets/show_many.json",
            params={"ids": ",".join(str(i) for i in ticket_ids)},
        )
        return self._parse("Search by IDs", TicketsEnvelope, data).tickets

    async def search_tickets(self, query: str) -> List[Ticket]:
        """Free-text search restricted to tickets."""
        data = await self._request(
            "Search",
            "GET",
            "/api/v2/search.json",
            params={"query": f"type:ticket {query}"},
        )
        return self._parse("Search", SearchPage, data).results

    async def search_tickets_paged(self, query: str, page_size: int = 5) -> List[Ticket]:
        """Cursor-paginated search. Only the first page is returned.

        Args:
            query: Search text.
            page_size: Page size requested upstream; the platform decides
                the final count.
        """
        data = await self._request(
            "Search pagination",
            "GET",
            "/api/v2/search/export.json",
            params={
                "query": query,
                "page[size]": page_size,
                "filter[type]": "ticket",
            },
        )
        return self._parse("Search pagination", SearchPage, data).results

    async def update_link_field(self, ticket_id: int, value: str) -> Ticket:
        """Overwrite the linked-tickets field of a single ticket."""
        logger.debug("Updating linked tickets field of #%s: %r", ticket_id, value)
        payload = {"ticket": {"custom_fields": [self._link_field_entry(value)]}}
        data = await self._request(
            "Update custom field", "PUT", f"/api/v2/tickets/{ticket_id}.json", json=payload
        )
        return self._parse("Update custom field", TicketEnvelope, data).ticket

    async def update_link_fields_for_pair(
        self,
        source_id: int,
        source_value: str,
        target_id: int,
        target_value: str,
    ) -> UpdateManyResponse:
        """Write the linked-tickets field of two tickets in one batched request.

        Args:
            source_id: Source ticket ID.
            source_value: Encoded field value for the source ticket.
            target_id: Target ticket ID.
            target_value: Encoded field value for the target ticket.

        Returns:
            The platform acknowledgement (a background job status).
        """
        payload = {
            "tickets": [
                {"id": source_id, "custom_fields": [self._link_field_entry(source_value)]},
                {"id": target_id, "custom_fields": [self._link_field_entry(target_value)]},
            ]
        }
        data = await self._request(
            "Update many", "PUT", "/api/v2/tickets/update_many.json", json=payload
        )
        return self._parse("Update many", UpdateManyResponse, data)

    async def append_audit_comment(self, ticket_id: int, text: str) -> Dict[str, Any]:
        """Add an internal (non-public) comment to a ticket."""
        payload = {"ticket": {"comment": {"body": text, "public": False}}}
        return await self._request(
            "Add internal comment", "PUT", f"/api/v2/tickets/{ticket_id}.json", json=payload
        )
