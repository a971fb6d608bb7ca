"""Shared output formatting for CLI and MCP."""

from .format import (
    format_response,
    render_cli,
    render_compact,
    render_stats_table,
    render_ticket_detail,
    render_ticket_table,
    truncate,
)
from .pagination import build_pagination, paginate

__all__ = [
    "format_response",
    "render_cli",
    "render_compact",
    "render_stats_table",
    "render_ticket_detail",
    "render_ticket_table",
    "truncate",
    "build_pagination",
    "paginate",
]
