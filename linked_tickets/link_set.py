"""Membership changes on a link set.

All functions are pure: the input list is never mutated and a new list is
returned even when nothing changes.
"""

from typing import List, Sequence

from linked_tickets.codec import link_tag


def has_member(tags: Sequence[str], ticket_id: int) -> bool:
    return link_tag(ticket_id) in tags


def add_member(tags: Sequence[str], ticket_id: int) -> List[str]:
    """Append the tag for ticket_id unless it is already present."""
    updated = list(tags)
    tag = link_tag(ticket_id)
    if tag not in updated:
        updated.append(tag)
    return updated


def remove_member(tags: Sequence[str], ticket_id: int) -> List[str]:
    """Drop the tag for ticket_id. Removing an absent id is a no-op."""
    tag = link_tag(ticket_id)
    return [t for t in tags if t != tag]
