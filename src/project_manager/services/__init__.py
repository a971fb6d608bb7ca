"""Shared service layer for CLI and MCP."""

from .context import (
    TicketContext,
    ensure_storage_checked,
    get_project_info,
    get_ticket_context,
    reset_checked_paths,
    resolve_config_info,
)
from .tickets import (
    apply_ticket_action,
    create_ticket,
    delete_ticket,
    format_error,
    format_ticket,
    format_ticket_summary,
    get_ticket,
    get_ticket_stats,
    list_tickets,
    search_tickets,
    update_ticket_content,
    update_ticket_priority,
    update_ticket_status,
    update_ticket_type,
)

__all__ = [
    "TicketContext",
    "ensure_storage_checked",
    "get_project_info",
    "get_ticket_context",
    "reset_checked_paths",
    "resolve_config_info",
    "apply_ticket_action",
    "create_ticket",
    "delete_ticket",
    "format_error",
    "format_ticket",
    "format_ticket_summary",
    "get_ticket",
    "get_ticket_stats",
    "list_tickets",
    "search_tickets",
    "update_ticket_content",
    "update_ticket_priority",
    "update_ticket_status",
    "update_ticket_type",
]
