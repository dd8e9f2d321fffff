"""Encoding of the linked-tickets custom field.

The field holds a comma-joined list of ``link:<id>`` tags, e.g.
``link:123,link:456``. Decoding is lenient: anything that is not a
well-formed tag is dropped without error.
"""

from typing import Iterable, List, Optional, Set

LINK_PREFIX = "link:"


def link_tag(ticket_id: int) -> str:
    """Build the tag for a ticket id."""
    return f"{LINK_PREFIX}{ticket_id}"


def parse_link_tag(token: str) -> Optional[int]:
    """Return the ticket id of a tag, or None if the token is malformed."""
    if not isinstance(token, str):
        return None
    token = token.strip()
    if not token.startswith(LINK_PREFIX):
        return None
    suffix = token[len(LINK_PREFIX):].strip()
    if not (suffix.isascii() and suffix.isdigit()):
        return None
    ticket_id = int(suffix)
    if ticket_id <= 0:
        return None
    return ticket_id


def decode_link_field(raw: Optional[str]) -> List[str]:
    """Decode a raw field value into an ordered, de-duplicated list of tags.

    Args:
        raw: The custom field value as stored on the platform. None, empty
            strings and non-string values all decode to an empty list.

    Returns:
        Normalized tags in their original order. Duplicate ids keep their
        first position.
    """
    if not raw or not isinstance(raw, str):
        return []

    tags: List[str] = []
    seen: Set[int] = set()
    for token in raw.split(","):
        ticket_id = parse_link_tag(token)
        if ticket_id is None or ticket_id in seen:
            continue
        seen.add(ticket_id)
        tags.append(link_tag(ticket_id))
    return tags


def encode_link_field(tags: Iterable[str]) -> str:
    """Join tags into the stored field value. No tags encode to ``""``."""
    return ",".join(tags)


def linked_ticket_ids(tags: Iterable[str]) -> List[int]:
    """Ticket ids of the well-formed tags, in order."""
    ids: List[int] = []
    for tag in tags or []:
        ticket_id = parse_link_tag(tag)
        if ticket_id is not None:
            ids.append(ticket_id)
    return ids


def excluded_ticket_ids(tags: Iterable[str], current_id: Optional[int] = None) -> Set[int]:
    """Ids that must not be offered as link candidates.

    That is every ticket already linked, plus the current ticket itself.
    """
    excluded = set(linked_ticket_ids(tags))
    if current_id:
        excluded.add(current_id)
    return excluded
