"""Pydantic models for linked-tickets."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --------------------------------------------------------------------------- #
# Enums                                                                       #
# --------------------------------------------------------------------------- #


class LinkKind(str, Enum):
    link = "link"
    unlink = "unlink"


class SyncState(str, Enum):
    idle = "idle"
    reading = "reading"
    failed_read_fallback = "failed_read_fallback"
    computing = "computing"
    persisting = "persisting"
    annotating = "annotating"
    done = "done"


# --------------------------------------------------------------------------- #
# Platform records                                                            #
# --------------------------------------------------------------------------- #


class CustomField(BaseModel):
    id: int
    value: Optional[Any] = None


class Ticket(BaseModel):
    """A Zendesk ticket as returned by the REST API.

    Only the attributes this package reads are declared; everything else the
    platform sends is kept as extra data.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    subject: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    custom_fields: List[CustomField] = Field(default_factory=list)

    def custom_field_value(self, field_id: int) -> Optional[Any]:
        """Raw value of a custom field, or None when the ticket lacks it."""
        for field in self.custom_fields:
            if field.id == field_id:
                return field.value
        return None


class TicketEnvelope(BaseModel):
    ticket: Ticket


class TicketsEnvelope(BaseModel):
    tickets: List[Ticket] = Field(default_factory=list)


class SearchPage(BaseModel):
    model_config = ConfigDict(extra="allow")

    results: List[Ticket] = Field(default_factory=list)
    count: Optional[int] = None
    next_page: Optional[str] = None
    previous_page: Optional[str] = None


class UpdateManyResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    job_status: Optional[Dict[str, Any]] = None


# --------------------------------------------------------------------------- #
# Link transactions                                                           #
# --------------------------------------------------------------------------- #


class LinkOperation(BaseModel):
    source_id: Optional[int] = None
    target_id: int
    kind: LinkKind
    comment: Optional[str] = None


class LinkResult(BaseModel):
    operation: LinkOperation
    state: SyncState = SyncState.idle
    states: List[SyncState] = Field(default_factory=list)
    source_value: str = ""
    target_value: str = ""
    target_read_failed: bool = False
    annotation_error: Optional[str] = None


# --------------------------------------------------------------------------- #
# Request models                                                              #
# --------------------------------------------------------------------------- #


class LinkCreate(BaseModel):
    target_id: int = Field(..., gt=0)
    comment: Optional[str] = Field(None, max_length=5000)


# --------------------------------------------------------------------------- #
# Response models                                                             #
# --------------------------------------------------------------------------- #


class LinkedTicketSummary(BaseModel):
    id: int
    subject: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    url: str


class LinkedTicketsView(BaseModel):
    ticket_id: int
    link_field: str
    linked_ids: List[int] = Field(default_factory=list)
    tickets: List[LinkedTicketSummary] = Field(default_factory=list)


class CandidateList(BaseModel):
    ticket_id: int
    query: Optional[str] = None
    tickets: List[LinkedTicketSummary] = Field(default_factory=list)
