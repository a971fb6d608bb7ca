"""Errors raised by the ticket core.

The core raises these and never formats user-facing output; the CLI and MCP
adapters decide how each one is presented.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union


class ProjectManagerError(Exception):
    """Base class for all project-manager errors."""


class TicketNotFoundError(ProjectManagerError):
    """No ticket with the requested ID exists in the collection."""

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket not found: {ticket_id}")


class ValidationError(ProjectManagerError):
    """Input was rejected: empty title, unknown enum value, length bound, etc."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.message = message
        self.field = field
        self.value = value
        super().__init__(message)


class TicketTransitionError(ValidationError):
    """A status change that the transition policy does not allow."""

    def __init__(self, from_status: Any, to_status: Any):
        self.from_status = _status_value(from_status)
        self.to_status = _status_value(to_status)
        super().__init__(
            f"cannot transition from {self.from_status} to {self.to_status}",
            field="status",
            value=self.to_status,
        )


class StorageError(ProjectManagerError):
    """Reading or writing the ticket document failed, or it has the wrong shape."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.message = message
        self.path = Path(path) if path is not None else None
        super().__init__(f"{message}: {self.path}" if self.path else message)


def _status_value(status: Any) -> str:
    return str(getattr(status, "value", status))
