"""Ticket repository contract and the query logic shared by implementations.

Any storage medium implements ``TicketRepository``. Filtering and statistics
are plain functions over a ticket list so every implementation answers
``search`` and ``stats`` identically.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Container, Iterable, Optional, Protocol

from .errors import TicketNotFoundError, ValidationError
from .models.ticket import (
    Ticket,
    TicketChanges,
    TicketDraft,
    TicketPriority,
    TicketStatus,
    TicketType,
)
from .transitions import apply_transition

SEARCH_FIELDS = ("title", "description")


@dataclass(frozen=True)
class SearchCriteria:
    """Filters for searching tickets. Every field is optional; empty criteria match all."""

    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    type: Optional[TicketType] = None
    query: Optional[str] = None
    search_in: tuple[str, ...] = SEARCH_FIELDS
    limit: Optional[int] = None
    offset: int = 0

    @classmethod
    def parse(
        cls,
        status: Any = None,
        priority: Any = None,
        type: Any = None,
        query: Optional[str] = None,
        search_in: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> "SearchCriteria":
        """Build criteria from raw boundary values."""
        if isinstance(search_in, str):
            search_in = [search_in]
        if search_in is None:
            fields = SEARCH_FIELDS
        else:
            fields = tuple(f.strip().lower() for f in search_in)
            unknown = [f for f in fields if f not in SEARCH_FIELDS]
            if unknown or not fields:
                raise ValidationError(
                    f"search_in must be a non-empty subset of {', '.join(SEARCH_FIELDS)}",
                    "search_in",
                    search_in,
                )
        if limit is not None and limit < 0:
            raise ValidationError("limit cannot be negative", "limit", limit)
        if offset is not None and offset < 0:
            raise ValidationError("offset cannot be negative", "offset", offset)

        return cls(
            status=None if status is None else TicketStatus.parse(status),
            priority=None if priority is None else TicketPriority.parse(priority),
            type=None if type is None else TicketType.parse(type),
            query=query,
            search_in=fields,
            limit=limit,
            offset=offset or 0,
        )

    def matches(self, ticket: Ticket) -> bool:
        """Check one ticket against the equality filters and text query (AND)."""
        if self.status is not None and ticket.status != self.status:
            return False
        if self.priority is not None and ticket.priority != self.priority:
            return False
        if self.type is not None and ticket.type != self.type:
            return False

        needle = (self.query or "").strip().lower()
        if not needle:
            return True
        # Text match is OR across the selected fields
        if "title" in self.search_in and needle in ticket.title.lower():
            return True
        if "description" in self.search_in and needle in ticket.description.lower():
            return True
        return False


@dataclass
class TicketStats:
    """Point-in-time counts over the collection. Never persisted."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=lambda: {s.value: 0 for s in TicketStatus})
    by_priority: dict[str, int] = field(default_factory=lambda: {p.value: 0 for p in TicketPriority})
    by_type: dict[str, int] = field(default_factory=lambda: {t.value: 0 for t in TicketType})

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "by_type": dict(self.by_type),
        }


def filter_tickets(tickets: Iterable[Ticket], criteria: Optional[SearchCriteria] = None) -> list[Ticket]:
    """Apply criteria in stored order, then offset, then limit."""
    criteria = criteria or SearchCriteria()
    matched = [t for t in tickets if criteria.matches(t)]
    start = criteria.offset
    if criteria.limit is None:
        return matched[start:]
    return matched[start:start + criteria.limit]


def compute_stats(tickets: Iterable[Ticket]) -> TicketStats:
    """Count tickets by status, priority and type in a single pass."""
    stats = TicketStats()
    for ticket in tickets:
        stats.total += 1
        stats.by_status[ticket.status.value] += 1
        stats.by_priority[ticket.priority.value] += 1
        stats.by_type[ticket.type.value] += 1
    return stats


def generate_ticket_id(existing: Container[str] = ()) -> str:
    """Return a new 8-hex-character ID not present in existing."""
    while True:
        ticket_id = uuid.uuid4().hex[:8]
        if ticket_id not in existing:
            return ticket_id


class TicketRepository(Protocol):
    """Storage-independent access to the ticket collection."""

    def create(self, draft: TicketDraft) -> Ticket:
        """Assign an ID and timestamps, persist, and return the stored ticket."""
        ...

    def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Return the ticket or None. A miss is not an error."""
        ...

    def get_all(self) -> list[Ticket]:
        """Return the full collection in stored order."""
        ...

    def update(self, ticket_id: str, changes: TicketChanges) -> Ticket:
        """Merge the provided fields. Raises TicketNotFoundError."""
        ...

    def update_status(self, ticket_id: str, target: TicketStatus) -> Ticket:
        """Change status through the transition policy.

        Raises TicketNotFoundError or TicketTransitionError.
        """
        ...

    def delete(self, ticket_id: str) -> None:
        """Remove permanently. Raises TicketNotFoundError."""
        ...

    def search(self, criteria: SearchCriteria) -> list[Ticket]:
        ...

    def stats(self) -> TicketStats:
        ...


class InMemoryTicketRepository:
    """List-backed repository for tests and ephemeral collections.

    Returned tickets are copies; mutating them does not change the collection.
    """

    def __init__(self, tickets: Optional[Iterable[Ticket]] = None):
        self._tickets: list[Ticket] = [t.copy() for t in tickets or []]
        ids = [t.id for t in self._tickets]
        if len(ids) != len(set(ids)):
            raise ValidationError("Duplicate ticket IDs in collection")

    def _find(self, ticket_id: str) -> Ticket:
        for ticket in self._tickets:
            if ticket.id == ticket_id:
                return ticket
        raise TicketNotFoundError(ticket_id)

    def create(self, draft: TicketDraft) -> Ticket:
        ticket_id = generate_ticket_id({t.id for t in self._tickets})
        ticket = Ticket.create(ticket_id, draft)
        self._tickets.append(ticket)
        return ticket.copy()

    def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        for ticket in self._tickets:
            if ticket.id == ticket_id:
                return ticket.copy()
        return None

    def get_all(self) -> list[Ticket]:
        return [t.copy() for t in self._tickets]

    def update(self, ticket_id: str, changes: TicketChanges) -> Ticket:
        ticket = self._find(ticket_id)
        ticket.apply_changes(changes)
        return ticket.copy()

    def update_status(self, ticket_id: str, target: TicketStatus) -> Ticket:
        ticket = self._find(ticket_id)
        apply_transition(ticket, target)
        return ticket.copy()

    def delete(self, ticket_id: str) -> None:
        ticket = self._find(ticket_id)
        self._tickets.remove(ticket)

    def search(self, criteria: SearchCriteria) -> list[Ticket]:
        return [t.copy() for t in filter_tickets(self._tickets, criteria)]

    def stats(self) -> TicketStats:
        return compute_stats(self._tickets)
