"""MCP Server for project-manager - local ticket tracking.

This MCP server exposes the ticket store to AI assistants over stdio.
Every tool accepts an optional ``storage_path``; without it the configured
tickets file is used (see ``project_manager.config``).
"""

import warnings
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import save_config_value
from .errors import ValidationError
from .output import format_response, render_compact
from .services import (
    TicketContext,
    format_error,
    get_project_info as svc_get_project_info,
    get_ticket_context,
    resolve_config_info,
)
from .services.tickets import (
    create_ticket as svc_create_ticket,
    delete_ticket as svc_delete_ticket,
    get_ticket as svc_get_ticket,
    get_ticket_stats as svc_get_ticket_stats,
    list_tickets as svc_list_tickets,
    search_tickets as svc_search_tickets,
    update_ticket_content as svc_update_ticket_content,
    update_ticket_priority as svc_update_ticket_priority,
    update_ticket_status as svc_update_ticket_status,
)

# Create the MCP server
mcp = FastMCP(
    "project-manager",
    instructions="""Project Manager - local ticket tracking

## Quick Reference

| Goal | Tool |
|------|------|
| New ticket | `create_ticket(title, ...)` |
| Find work | `search_tickets(query, status=...)` |
| Browse | `list_tickets(status=..., limit=20, offset=0)` |
| Full details | `get_ticket_by_id(ticket_id)` |
| Start / finish | `update_ticket_status(ticket_id, "in_progress" / "completed")` |
| Overview | `get_ticket_stats()` |
| Project context | `get_project_info(include_package_info=True)` |

## Status workflow
pending -> in_progress -> completed -> archived.
A ticket may skip ahead (pending -> completed, in_progress -> archived)
but never move back. Archived is terminal; archiving again is a no-op.
Any other change returns `{"error": "invalid_transition"}`.

## Values
- priority: high, medium, low
- type: bug, feature, task
- privacy: local-only, shareable, public

## Pagination
`list_tickets` returns `pagination: {has_more, next_offset}`.
To get more: call again with `offset=next_offset`.

## Token Efficiency
- `list_tickets` returns summaries without descriptions
- `search_tickets` returns full records
- Pass `format="text"` for one line per ticket""",
)


def _get_context(storage_path: Optional[str] = None) -> TicketContext:
    """Resolve the ticket context for a tool call.

    Integrity warnings go through ``warnings`` so they never reach stdout,
    which carries the MCP protocol.
    """
    context = get_ticket_context(storage_path)
    for message in context.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)
    return context


def _with_warnings(result: dict, context: TicketContext) -> dict:
    if context.warnings:
        result = {**result, "warnings": list(context.warnings)}
    return result


def _render_tickets_text(payload: dict) -> str:
    if "error" in payload:
        return f"Error: {payload['message']}"
    if "tickets" in payload:
        return render_compact(payload["tickets"]) or "No tickets found."
    if "ticket" in payload:
        return render_compact([payload["ticket"]])
    return str(payload)


# ============================================================================
# Ticket MCP Tools
# ============================================================================


@mcp.tool()
def create_ticket(
    title: str,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    privacy: Optional[str] = None,
    status: Optional[str] = None,
    storage_path: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Create a ticket.

    Args:
        title: Ticket title (required, trimmed, max 200 characters)
        description: Optional detailed description
        priority: high, medium or low (default from config, usually medium)
        type: bug, feature or task (default task)
        privacy: local-only, shareable or public (default local-only)
        status: Initial status, pending or in_progress (default pending)
        storage_path: Tickets JSON file (defaults to the configured file)

    Returns the created ticket including its generated 8-character id.
    """
    context = _get_context(storage_path)
    result = svc_create_ticket(
        context.usecases,
        context.config,
        title,
        description=description,
        priority=priority,
        type=type,
        privacy=privacy,
        status=status,
    )
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def get_ticket_by_id(ticket_id: str, storage_path: Optional[str] = None, format: str = "json") -> dict:
    """Get full details for a single ticket.

    Args:
        ticket_id: Ticket ID
        storage_path: Tickets JSON file (defaults to the configured file)

    Returns the ticket, or {"error": "not_found"} if no ticket has that id.
    """
    context = _get_context(storage_path)
    result = svc_get_ticket(context.usecases, ticket_id)
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def list_tickets(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    include_archived: bool = False,
    limit: int = 20,
    offset: int = 0,
    storage_path: Optional[str] = None,
    format: str = "json",
) -> dict:
    """List ticket summaries in stored order.

    Returns MINIMAL summaries (id, title, status, priority, type).
    Use get_ticket_by_id(ticket_id) for the description and timestamps.

    Args:
        status: Filter by status (pending, in_progress, completed, archived)
        priority: Filter by priority
        type: Filter by type
        include_archived: Include archived tickets (default False)
        limit: Maximum tickets to return (default 20, max 100)
        offset: Skip first N tickets for pagination (default 0)
        storage_path: Tickets JSON file (defaults to the configured file)

    Includes pagination info: total_count, has_more, next_offset.
    """
    context = _get_context(storage_path)
    result = svc_list_tickets(
        context.usecases,
        status=status,
        priority=priority,
        type=type,
        include_archived=include_archived,
        limit=limit,
        offset=offset,
    )
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def search_tickets(
    query: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    search_in: Optional[list[str]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    storage_path: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Search tickets by text and filters.

    Filters combine with AND. The query is a case-insensitive substring
    matched against title or description; an empty query matches all.

    Args:
        query: Text to look for
        status: Filter by status
        priority: Filter by priority
        type: Filter by type
        search_in: Fields to search, subset of ["title", "description"] (default both)
        limit: Maximum matches to return (0 returns none)
        offset: Skip first N matches
        storage_path: Tickets JSON file (defaults to the configured file)
    """
    context = _get_context(storage_path)
    result = svc_search_tickets(
        context.usecases,
        query=query,
        status=status,
        priority=priority,
        type=type,
        search_in=search_in,
        limit=limit,
        offset=offset,
    )
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def update_ticket_content(
    ticket_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    storage_path: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Update a ticket's title and/or description.

    Args:
        ticket_id: Ticket ID
        title: New title
        description: New description (empty string clears it)
        storage_path: Tickets JSON file (defaults to the configured file)

    At least one of title or description is required.
    """
    context = _get_context(storage_path)
    result = svc_update_ticket_content(context.usecases, ticket_id, title=title, description=description)
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def update_ticket_priority(
    ticket_id: str,
    priority: str,
    storage_path: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Change a ticket's priority (high, medium, low)."""
    context = _get_context(storage_path)
    result = svc_update_ticket_priority(context.usecases, ticket_id, priority)
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def update_ticket_status(
    ticket_id: str,
    status: str,
    storage_path: Optional[str] = None,
    format: str = "json",
) -> dict:
    """Move a ticket through the status workflow.

    Args:
        ticket_id: Ticket ID
        status: Target status (pending, in_progress, completed, archived)
        storage_path: Tickets JSON file (defaults to the configured file)

    Returns the updated ticket with previous_status and next_statuses, or
    {"error": "invalid_transition"} when the workflow forbids the change.
    """
    context = _get_context(storage_path)
    result = svc_update_ticket_status(context.usecases, ticket_id, status)
    return format_response(_with_warnings(result, context), format, _render_tickets_text)


@mcp.tool()
def delete_ticket(ticket_id: str, storage_path: Optional[str] = None, format: str = "json") -> dict:
    """Delete a ticket permanently.

    Args:
        ticket_id: Ticket ID
        storage_path: Tickets JSON file (defaults to the configured file)
    """
    context = _get_context(storage_path)
    result = svc_delete_ticket(context.usecases, ticket_id)
    return format_response(_with_warnings(result, context), format)


@mcp.tool()
def get_ticket_stats(storage_path: Optional[str] = None, format: str = "json") -> dict:
    """Count tickets by status, priority and type.

    Every known value appears in each breakdown, zero when unused.
    """
    context = _get_context(storage_path)
    result = svc_get_ticket_stats(context.usecases)
    return format_response(_with_warnings(result, context), format)


# ============================================================================
# Config MCP Tools
# ============================================================================


@mcp.tool()
def get_project_config(storage_path: Optional[str] = None, format: str = "json") -> dict:
    """Show the effective configuration and the resolved tickets file."""
    return format_response(resolve_config_info(storage_path), format)


@mcp.tool()
def set_project_config(key: str, value: str, format: str = "json") -> dict:
    """Save one setting to the user config file.

    Args:
        key: default_priority, default_type, default_privacy, default_status,
            default_output_format, storage_path, confirm_deletion,
            max_title_length or display_title_length
        value: New value
    """
    try:
        path = save_config_value(key, value)
    except ValidationError as e:
        return format_response(format_error(e), format)
    return format_response({"success": True, "key": key, "config_path": str(path)}, format)


# ============================================================================
# Project MCP Tools
# ============================================================================


def _render_project_info_text(info: dict) -> str:
    lines = [f"Project Directory: {info['project_directory']}", ""]

    readme = info["readme"]
    if readme:
        lines += [f"README ({readme['file']}):", readme["content"]]
    else:
        lines.append("No README file found.")

    package = info.get("package")
    if package is not None:
        lines.append("")
        if not package["found"]:
            lines.append("No package.json found.")
        elif "error" in package:
            lines.append(package["error"])
        else:
            lines.append("Package Information:")
            for label, key in (("Name", "name"), ("Version", "version"), ("Description", "description")):
                if package[key]:
                    lines.append(f"  {label}: {package[key]}")
            if package["scripts"]:
                lines.append(f"  Scripts: {', '.join(package['scripts'])}")
            lines.append(f"  Dependencies: {package['dependency_count']}")
            lines.append(f"  Dev Dependencies: {package['dev_dependency_count']}")
    return "\n".join(lines)


@mcp.tool()
def get_project_info(include_package_info: bool = False, format: str = "json") -> dict:
    """Describe the server's working directory.

    Args:
        include_package_info: Also summarise package.json (name, version,
            scripts, dependency counts)
    """
    info = svc_get_project_info(include_package_info=include_package_info)
    return format_response(info, format, _render_project_info_text)


def main():
    """Run the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
