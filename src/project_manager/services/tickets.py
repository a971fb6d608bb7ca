"""Shared ticket operations for CLI and MCP.

Each function calls the use cases and returns a plain dict: the payload on
success, or ``{"error": <kind>, "message": ...}`` when the core raises.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Optional

from ..config import PMConfig
from ..errors import (
    ProjectManagerError,
    StorageError,
    TicketNotFoundError,
    TicketTransitionError,
    ValidationError,
)
from ..models.ticket import Ticket, TicketStatus, format_timestamp
from ..output.pagination import paginate
from ..transitions import StatusAction, allowed_targets
from ..usecases import TicketUseCases


def format_ticket(ticket: Ticket) -> dict:
    return {
        "id": ticket.id,
        "title": ticket.title,
        "description": ticket.description,
        "status": ticket.status.value,
        "priority": ticket.priority.value,
        "type": ticket.type.value,
        "privacy": ticket.privacy.value,
        "created_at": format_timestamp(ticket.created_at),
        "updated_at": format_timestamp(ticket.updated_at),
    }


def format_ticket_summary(ticket: Ticket) -> dict:
    return {
        "id": ticket.id,
        "title": ticket.title,
        "status": ticket.status.value,
        "priority": ticket.priority.value,
        "type": ticket.type.value,
    }


def format_error(error: ProjectManagerError) -> dict:
    """Translate a core error into the error dict shape."""
    if isinstance(error, TicketNotFoundError):
        return {"error": "not_found", "message": str(error), "ticket_id": error.ticket_id}
    if isinstance(error, TicketTransitionError):
        return {
            "error": "invalid_transition",
            "message": str(error),
            "from": error.from_status,
            "to": error.to_status,
        }
    if isinstance(error, ValidationError):
        return {"error": "validation_error", "message": str(error), "field": error.field}
    if isinstance(error, StorageError):
        return {
            "error": "storage_error",
            "message": str(error),
            "path": str(error.path) if error.path else None,
        }
    return {"error": "error", "message": str(error)}


def _returns_error_dict(func: Callable[..., dict]) -> Callable[..., dict]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> dict:
        try:
            return func(*args, **kwargs)
        except ProjectManagerError as e:
            return format_error(e)

    return wrapper


@_returns_error_dict
def create_ticket(
    usecases: TicketUseCases,
    config: PMConfig,
    title: str,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    privacy: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    """Create a ticket, filling omitted fields from the configured defaults."""
    ticket = usecases.create_ticket(
        title,
        description=description,
        priority=priority or config.default_priority,
        type=type or config.default_type,
        privacy=privacy or config.default_privacy,
        status=status or config.default_status,
    )
    return {"success": True, "ticket": format_ticket(ticket)}


@_returns_error_dict
def get_ticket(usecases: TicketUseCases, ticket_id: str) -> dict:
    ticket = usecases.require_ticket(ticket_id)
    return {"ticket": format_ticket(ticket)}


@_returns_error_dict
def list_tickets(
    usecases: TicketUseCases,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    include_archived: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> dict:
    """List ticket summaries with pagination.

    Archived tickets are hidden unless include_archived is set or they are
    asked for explicitly with status="archived".
    """
    if limit < 1:
        raise ValidationError("limit must be at least 1", "limit", limit)
    if offset < 0:
        raise ValidationError("offset must be zero or more", "offset", offset)
    tickets = usecases.search_tickets(status=status, priority=priority, type=type)
    if status is None and not include_archived:
        tickets = [t for t in tickets if t.status != TicketStatus.ARCHIVED]
    summaries = [format_ticket_summary(t) for t in tickets]
    page, pagination = paginate(summaries, limit, offset)
    return {"tickets": page, "pagination": pagination}


@_returns_error_dict
def search_tickets(
    usecases: TicketUseCases,
    query: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    search_in: Optional[list[str]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> dict:
    """Search tickets; returns full records in stored order."""
    tickets = usecases.search_tickets(
        status=status,
        priority=priority,
        type=type,
        query=query,
        search_in=search_in,
        limit=limit,
        offset=offset,
    )
    return {"tickets": [format_ticket(t) for t in tickets], "count": len(tickets)}


@_returns_error_dict
def update_ticket_content(
    usecases: TicketUseCases,
    ticket_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> dict:
    ticket = usecases.update_ticket_field(ticket_id, title=title, description=description)
    return {"success": True, "ticket": format_ticket(ticket)}


@_returns_error_dict
def update_ticket_priority(usecases: TicketUseCases, ticket_id: str, priority: str) -> dict:
    ticket = usecases.update_ticket_priority(ticket_id, priority)
    return {"success": True, "ticket": format_ticket(ticket)}


@_returns_error_dict
def update_ticket_type(usecases: TicketUseCases, ticket_id: str, type: str) -> dict:
    ticket = usecases.update_ticket_type(ticket_id, type)
    return {"success": True, "ticket": format_ticket(ticket)}


@_returns_error_dict
def update_ticket_status(usecases: TicketUseCases, ticket_id: str, status: str) -> dict:
    """Change status; the response includes the previous status."""
    previous = usecases.require_ticket(ticket_id)
    ticket = usecases.update_ticket_status(ticket_id, status)
    return {
        "success": True,
        "previous_status": previous.status.value,
        "ticket": format_ticket(ticket),
        "next_statuses": [s.value for s in allowed_targets(ticket.status) if s != ticket.status],
    }


@_returns_error_dict
def apply_ticket_action(usecases: TicketUseCases, ticket_id: str, action: str) -> dict:
    """Run a lifecycle verb: start, complete or archive."""
    try:
        verb = StatusAction(action.strip().lower())
    except ValueError:
        allowed = ", ".join(a.value for a in StatusAction)
        raise ValidationError(f"Unknown action: {action}. Expected one of: {allowed}", "action", action) from None
    return update_ticket_status(usecases, ticket_id, verb.target.value)


@_returns_error_dict
def delete_ticket(usecases: TicketUseCases, ticket_id: str) -> dict:
    existing = usecases.require_ticket(ticket_id)
    usecases.delete_ticket(ticket_id)
    return {
        "success": True,
        "deleted_ticket_id": existing.id,
        "deleted_title": existing.title,
    }


@_returns_error_dict
def get_ticket_stats(usecases: TicketUseCases) -> dict:
    return {"stats": usecases.get_ticket_stats().to_dict()}
