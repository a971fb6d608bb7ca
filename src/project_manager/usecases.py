"""Ticket use cases.

The operations the CLI and MCP adapters call. Each one composes the
repository with entity validation and the transition policy; errors from
either propagate unchanged to the caller.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .errors import TicketNotFoundError
from .models.ticket import TITLE_MAX_LENGTH, Ticket, TicketChanges, TicketDraft, TicketStatus
from .repository import SearchCriteria, TicketRepository, TicketStats
from .transitions import StatusAction


class TicketUseCases:
    """Use-case call surface over an injected repository."""

    def __init__(self, repository: TicketRepository, max_title_length: int = TITLE_MAX_LENGTH):
        """Initialize the use cases.

        Args:
            repository: Storage for the ticket collection
            max_title_length: Upper bound for titles on create and update
        """
        self.repository = repository
        self.max_title_length = max_title_length

    def create_ticket(
        self,
        title: str,
        description: Optional[str] = None,
        priority: Any = None,
        type: Any = None,
        privacy: Any = None,
        status: Any = None,
    ) -> Ticket:
        """Create a ticket. Omitted fields default to pending/medium/task/local-only.

        Raises:
            ValidationError: If any field is invalid
        """
        draft = TicketDraft.parse(
            title,
            description=description,
            priority=priority,
            type=type,
            privacy=privacy,
            status=status,
            max_title_length=self.max_title_length,
        )
        return self.repository.create(draft)

    def get_ticket_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Return the ticket, or None if there is no ticket with that ID."""
        return self.repository.get_by_id(ticket_id.strip())

    def get_all_tickets(self) -> list[Ticket]:
        return self.repository.get_all()

    def search_tickets(
        self,
        criteria: Optional[SearchCriteria] = None,
        *,
        status: Any = None,
        priority: Any = None,
        type: Any = None,
        query: Optional[str] = None,
        search_in: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Ticket]:
        """Search with a prepared SearchCriteria or with raw keyword filters."""
        if criteria is None:
            criteria = SearchCriteria.parse(
                status=status,
                priority=priority,
                type=type,
                query=query,
                search_in=search_in,
                limit=limit,
                offset=offset,
            )
        return self.repository.search(criteria)

    def update_ticket(
        self,
        ticket_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Any = None,
        type: Any = None,
    ) -> Ticket:
        """Merge only the provided fields.

        Raises:
            ValidationError: If no field is given or a value is invalid
            TicketNotFoundError: If the ticket does not exist
        """
        changes = TicketChanges.parse(
            title=title,
            description=description,
            priority=priority,
            type=type,
            max_title_length=self.max_title_length,
        )
        return self.repository.update(ticket_id.strip(), changes)

    def update_ticket_field(
        self,
        ticket_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Ticket:
        """Update title and/or description."""
        return self.update_ticket(ticket_id, title=title, description=description)

    def update_ticket_title(self, ticket_id: str, title: str) -> Ticket:
        return self.update_ticket(ticket_id, title=title)

    def update_ticket_description(self, ticket_id: str, description: str) -> Ticket:
        return self.update_ticket(ticket_id, description=description)

    def update_ticket_priority(self, ticket_id: str, priority: Any) -> Ticket:
        return self.update_ticket(ticket_id, priority=priority)

    def update_ticket_type(self, ticket_id: str, type: Any) -> Ticket:
        return self.update_ticket(ticket_id, type=type)

    def update_ticket_status(self, ticket_id: str, status: Any) -> Ticket:
        """Change status through the transition policy.

        Raises:
            ValidationError: If status is not a known value
            TicketTransitionError: If the change is not allowed
            TicketNotFoundError: If the ticket does not exist
        """
        return self.repository.update_status(ticket_id.strip(), TicketStatus.parse(status))

    def apply_action(self, ticket_id: str, action: StatusAction) -> Ticket:
        return self.update_ticket_status(ticket_id, action.target)

    def start_ticket(self, ticket_id: str) -> Ticket:
        return self.apply_action(ticket_id, StatusAction.START)

    def complete_ticket(self, ticket_id: str) -> Ticket:
        return self.apply_action(ticket_id, StatusAction.COMPLETE)

    def archive_ticket(self, ticket_id: str) -> Ticket:
        return self.apply_action(ticket_id, StatusAction.ARCHIVE)

    def delete_ticket(self, ticket_id: str) -> None:
        """Delete permanently. Raises TicketNotFoundError."""
        self.repository.delete(ticket_id.strip())

    def get_ticket_stats(self) -> TicketStats:
        return self.repository.stats()

    def require_ticket(self, ticket_id: str) -> Ticket:
        """Like get_ticket_by_id, but a miss raises TicketNotFoundError."""
        ticket = self.get_ticket_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket
