"""Data models for project-manager."""

from .ticket import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Ticket,
    TicketChanges,
    TicketDraft,
    TicketPriority,
    TicketPrivacy,
    TicketStatus,
    TicketType,
)

__all__ = [
    "DESCRIPTION_MAX_LENGTH",
    "TITLE_MAX_LENGTH",
    "Ticket",
    "TicketChanges",
    "TicketDraft",
    "TicketPriority",
    "TicketPrivacy",
    "TicketStatus",
    "TicketType",
]
