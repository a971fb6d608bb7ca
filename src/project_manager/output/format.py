"""Output formatting utilities for CLI and MCP."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

from rich import box
from rich.markup import escape
from rich.table import Table

STATUS_STYLES = {
    "pending": "yellow",
    "in_progress": "cyan",
    "completed": "green",
    "archived": "dim",
}

PRIORITY_STYLES = {
    "high": "bold red",
    "medium": "yellow",
    "low": "dim",
}


def format_response(
    payload: Any,
    output_format: str = "json",
    text_renderer: Optional[Callable[[Any], str]] = None,
) -> dict:
    """Normalize response with format metadata and content.

    Args:
        payload: Data to serialize.
        output_format: "json" or "text".
        text_renderer: Optional renderer for text output.
    """
    output_format = (output_format or "json").lower()

    if output_format == "text":
        content = text_renderer(payload) if text_renderer else json.dumps(payload, indent=2, ensure_ascii=False)
        return {"format": "text", "content": content}

    return {"format": "json", "content": payload}


def render_cli(response: dict) -> str:
    """Render a formatted response into a CLI string."""
    fmt = response.get("format")
    content = response.get("content")
    if fmt == "json":
        return json.dumps(content, indent=2, ensure_ascii=False)
    return str(content)


def truncate(text: Optional[str], max_length: int) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)] + "..."


def _styled(value: str, styles: dict) -> str:
    style = styles.get(value)
    return f"[{style}]{value}[/{style}]" if style else value


def render_ticket_table(tickets: list[dict], title_length: int = 50) -> Table:
    """Build a rich table of ticket summaries."""
    table = Table(
        show_header=True,
        header_style="bold",
        box=box.ROUNDED,
        pad_edge=False,
        show_edge=False,
    )
    table.add_column("ID", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Title", overflow="fold")

    for ticket in tickets:
        table.add_row(
            ticket["id"],
            _styled(ticket["status"], STATUS_STYLES),
            _styled(ticket["priority"], PRIORITY_STYLES),
            ticket["type"],
            escape(truncate(ticket["title"], title_length)),
        )
    return table


def render_compact(tickets: list[dict], title_length: int = 50) -> str:
    """One line per ticket: ``<id> [status] priority type  title``."""
    lines = [
        f"{t['id']} [{t['status']}] {t['priority']} {t['type']}  {truncate(t['title'], title_length)}"
        for t in tickets
    ]
    return "\n".join(lines)


def render_ticket_detail(ticket: dict) -> str:
    """Multi-line rendering of a single ticket."""
    lines = [
        f"[bold]{escape(ticket['title'])}[/bold]",
        f"ID:       {ticket['id']}",
        f"Status:   {_styled(ticket['status'], STATUS_STYLES)}",
        f"Priority: {_styled(ticket['priority'], PRIORITY_STYLES)}",
        f"Type:     {ticket['type']}",
        f"Privacy:  {ticket['privacy']}",
        f"Created:  {ticket['created_at']}",
        f"Updated:  {ticket['updated_at']}",
    ]
    if ticket.get("description"):
        lines.extend(["", escape(ticket["description"])])
    return "\n".join(lines)


def render_stats_table(stats: dict) -> Table:
    """Counts by status, priority and type, one section per dimension."""
    table = Table(show_header=True, header_style="bold", box=box.SIMPLE, title=f"Total tickets: {stats['total']}")
    table.add_column("Group", no_wrap=True)
    table.add_column("Value", no_wrap=True)
    table.add_column("Count", justify="right")

    for group in ("by_status", "by_priority", "by_type"):
        label = group.replace("by_", "")
        for value, count in stats[group].items():
            table.add_row(label, value, str(count))
            label = ""
    return table
