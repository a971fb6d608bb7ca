"""Main CLI for project-manager."""

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from .config import OUTPUT_FORMATS, save_config_value
from .errors import ValidationError
from .output import (
    format_response,
    render_cli,
    render_compact,
    render_stats_table,
    render_ticket_detail,
    render_ticket_table,
)
from .services import (
    TicketContext,
    apply_ticket_action,
    create_ticket as svc_create_ticket,
    delete_ticket as svc_delete_ticket,
    get_ticket as svc_get_ticket,
    get_ticket_context,
    get_ticket_stats as svc_get_ticket_stats,
    list_tickets as svc_list_tickets,
    resolve_config_info,
    search_tickets as svc_search_tickets,
    update_ticket_content as svc_update_ticket_content,
    update_ticket_priority as svc_update_ticket_priority,
    update_ticket_status as svc_update_ticket_status,
    update_ticket_type as svc_update_ticket_type,
)

app = typer.Typer(
    name="pm",
    help="Project Manager - local ticket tracking from the command line",
    no_args_is_help=True,
)
update_app = typer.Typer(help="Update a single ticket field", no_args_is_help=True)
config_app = typer.Typer(help="Show or change configuration", no_args_is_help=True)
app.add_typer(update_app, name="update")
app.add_typer(config_app, name="config")

console = Console()
error_console = Console(stderr=True)

FORMAT_HELP = "Output format (table|json|compact)"

# Single-letter values accepted by create and update
PRIORITY_SHORTCUTS = {"h": "high", "m": "medium", "l": "low"}
TYPE_SHORTCUTS = {"f": "feature", "b": "bug", "t": "task"}


@app.callback()
def main(
    ctx: typer.Context,
    storage: Optional[str] = typer.Option(None, "--storage", help="Path to the tickets JSON file"),
):
    """Track tickets in a local JSON file."""
    ctx.obj = {"storage": storage}


# ============================================================================
# Helpers
# ============================================================================


def _load(ctx: typer.Context) -> TicketContext:
    """Build the ticket context and surface integrity warnings on stderr."""
    storage = ctx.obj.get("storage") if ctx.obj else None
    context = get_ticket_context(storage)
    for warning in context.warnings:
        error_console.print(f"[yellow]Warning:[/yellow] {warning}")
    return context


def _check(result: dict) -> dict:
    """Exit with status 1 if the service returned an error."""
    if "error" in result:
        error_console.print(f"[red]Error:[/red] {result['message']}")
        raise typer.Exit(1)
    return result


def expand_shortcut(value: Optional[str], shortcuts: dict[str, str]) -> Optional[str]:
    """Expand a one-letter shortcut (e.g. "h" -> "high"); other values pass through."""
    if value is None:
        return None
    return shortcuts.get(value.strip().lower(), value)


def _resolve_format(output_format: Optional[str], context: TicketContext) -> str:
    fmt = (output_format or context.config.default_output_format).lower()
    if fmt not in OUTPUT_FORMATS:
        error_console.print(f"[red]Error:[/red] Unknown format: {fmt}. Expected one of: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)
    return fmt


def _print_json(payload: dict) -> None:
    typer.echo(render_cli(format_response(payload, "json")))


def _print_ticket_result(result: dict, fmt: str, verb: str) -> None:
    if fmt == "json":
        _print_json(result)
        return
    ticket = result["ticket"]
    if fmt == "compact":
        console.print(render_compact([ticket]), markup=False)
        return
    console.print(f"[green]✓[/green] {verb} [cyan]{ticket['id']}[/cyan]: {escape(ticket['title'])} [dim]({ticket['status']})[/dim]")


def _print_ticket_list(tickets: list[dict], fmt: str, context: TicketContext, payload: dict) -> None:
    if fmt == "json":
        _print_json(payload)
    elif fmt == "compact":
        if tickets:
            console.print(render_compact(tickets, context.config.display_title_length), markup=False)
    elif not tickets:
        console.print("[dim]No tickets found.[/dim]")
    else:
        console.print(render_ticket_table(tickets, context.config.display_title_length))


# ============================================================================
# Ticket Commands
# ============================================================================


@app.command("create")
def create_ticket(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Ticket title"),
    description: Optional[str] = typer.Option(None, "-d", "--description", help="Ticket description"),
    priority: Optional[str] = typer.Option(None, "-p", "--priority", help="Priority (high|medium|low, or h|m|l)"),
    ticket_type: Optional[str] = typer.Option(None, "-t", "--type", help="Type (bug|feature|task, or b|f|t)"),
    privacy: Optional[str] = typer.Option(None, "--privacy", help="Privacy (local-only|shareable|public)"),
    status: Optional[str] = typer.Option(None, "-s", "--status", help="Initial status (pending|in_progress)"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Create a new ticket.

    Omitted fields use the configured defaults.
    """
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(
        svc_create_ticket(
            context.usecases,
            context.config,
            title,
            description=description,
            priority=expand_shortcut(priority, PRIORITY_SHORTCUTS),
            type=expand_shortcut(ticket_type, TYPE_SHORTCUTS),
            privacy=privacy,
            status=status,
        )
    )
    _print_ticket_result(result, fmt, "Created")


@app.command("list")
def list_tickets(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "-s", "--status", help="Filter by status"),
    priority: Optional[str] = typer.Option(None, "-p", "--priority", help="Filter by priority"),
    ticket_type: Optional[str] = typer.Option(None, "-t", "--type", help="Filter by type"),
    include_archived: bool = typer.Option(False, "--all", "-a", help="Include archived tickets"),
    limit: int = typer.Option(20, "--limit", help="Maximum tickets to show (1-100)"),
    offset: int = typer.Option(0, "--offset", help="Skip first N tickets for pagination"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """List tickets in stored order.

    Archived tickets are hidden unless --all is given or --status archived is used.
    """
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(
        svc_list_tickets(
            context.usecases,
            status=status,
            priority=priority,
            type=ticket_type,
            include_archived=include_archived,
            limit=limit,
            offset=offset,
        )
    )
    _print_ticket_list(result["tickets"], fmt, context, result)

    pagination = result["pagination"]
    if fmt == "table" and pagination["has_more"]:
        console.print(
            f"[dim]Showing {len(result['tickets'])} of {pagination['total_count']}. "
            f"Next page: --offset {pagination['next_offset']}[/dim]"
        )


@app.command("show")
def show_ticket(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Show full ticket details."""
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(svc_get_ticket(context.usecases, ticket_id))
    if fmt == "json":
        _print_json(result)
    elif fmt == "compact":
        console.print(render_compact([result["ticket"]]), markup=False)
    else:
        console.print(render_ticket_detail(result["ticket"]))


@app.command("search")
def search_tickets(
    ctx: typer.Context,
    query: Optional[str] = typer.Argument(None, help="Text to search for (case-insensitive)"),
    status: Optional[str] = typer.Option(None, "-s", "--status", help="Filter by status"),
    priority: Optional[str] = typer.Option(None, "-p", "--priority", help="Filter by priority"),
    ticket_type: Optional[str] = typer.Option(None, "-t", "--type", help="Filter by type"),
    search_in: Optional[list[str]] = typer.Option(None, "--in", help="Fields to search (title|description), repeatable"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum tickets to return"),
    offset: Optional[int] = typer.Option(None, "--offset", help="Skip first N matches"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Search tickets by text and filters.

    Filters combine with AND; the text matches title or description.
    """
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(
        svc_search_tickets(
            context.usecases,
            query=query,
            status=status,
            priority=priority,
            type=ticket_type,
            search_in=search_in or None,
            limit=limit,
            offset=offset,
        )
    )
    _print_ticket_list(result["tickets"], fmt, context, result)


def _list_by_status(ctx: typer.Context, status: str, label: str, compact: bool, output_format: Optional[str]) -> None:
    context = _load(ctx)
    fmt = "compact" if compact else _resolve_format(output_format, context)
    result = _check(svc_search_tickets(context.usecases, status=status))
    if not result["tickets"] and fmt != "json":
        console.print(f"No {label} tickets found.")
        return
    _print_ticket_list(result["tickets"], fmt, context, result)


@app.command("todo")
def todo_tickets(
    ctx: typer.Context,
    compact: bool = typer.Option(False, "--compact", "-c", help="One line per ticket"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """List pending tickets."""
    _list_by_status(ctx, "pending", "pending", compact, output_format)


@app.command("wip")
def wip_tickets(
    ctx: typer.Context,
    compact: bool = typer.Option(False, "--compact", "-c", help="One line per ticket"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """List tickets in progress."""
    _list_by_status(ctx, "in_progress", "in-progress", compact, output_format)


@app.command("start")
def start_ticket(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Move a ticket to in_progress."""
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(apply_ticket_action(context.usecases, ticket_id, "start"))
    _print_ticket_result(result, fmt, "Started")


@app.command("done")
def complete_ticket(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Mark a ticket as completed."""
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(apply_ticket_action(context.usecases, ticket_id, "complete"))
    _print_ticket_result(result, fmt, "Completed")


@app.command("archive")
def archive_ticket(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Archive a ticket."""
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(apply_ticket_action(context.usecases, ticket_id, "archive"))
    _print_ticket_result(result, fmt, "Archived")


@app.command("delete")
def delete_ticket(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    force: bool = typer.Option(False, "--force", "-F", help="Delete without confirmation"),
):
    """Delete a ticket permanently."""
    context = _load(ctx)
    existing = _check(svc_get_ticket(context.usecases, ticket_id))["ticket"]

    if context.config.confirm_deletion and not force:
        if not typer.confirm(f"Delete ticket {existing['id']} ({existing['title']})?"):
            raise typer.Exit(0)

    result = _check(svc_delete_ticket(context.usecases, ticket_id))
    console.print(f"[green]✓[/green] Deleted [cyan]{result['deleted_ticket_id']}[/cyan]: {escape(result['deleted_title'])}")


@app.command("stats")
def show_stats(
    ctx: typer.Context,
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Show ticket counts by status, priority and type."""
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(svc_get_ticket_stats(context.usecases))
    if fmt == "json":
        _print_json(result)
    elif fmt == "compact":
        stats = result["stats"]
        parts = [f"total={stats['total']}"]
        for group in ("by_status", "by_priority", "by_type"):
            parts.extend(f"{k}={v}" for k, v in stats[group].items())
        console.print(" ".join(parts), markup=False)
    else:
        console.print(render_stats_table(result["stats"]))


# ============================================================================
# Update Commands
# ============================================================================


def _run_update(ctx: typer.Context, update, ticket_id: str, value: str, output_format: Optional[str]) -> None:
    context = _load(ctx)
    fmt = _resolve_format(output_format, context)
    result = _check(update(context.usecases, ticket_id, value))
    _print_ticket_result(result, fmt, "Updated")


@update_app.command("title")
def update_title(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    title: str = typer.Argument(..., help="New title"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Change the title."""
    _run_update(ctx, lambda uc, tid, v: svc_update_ticket_content(uc, tid, title=v), ticket_id, title, output_format)


@update_app.command("description")
def update_description(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    description: str = typer.Argument(..., help="New description (empty string clears it)"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Change the description."""
    _run_update(
        ctx,
        lambda uc, tid, v: svc_update_ticket_content(uc, tid, description=v),
        ticket_id,
        description,
        output_format,
    )


@update_app.command("priority")
def update_priority(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    priority: str = typer.Argument(..., help="high|medium|low (or h|m|l)"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Change the priority."""
    _run_update(ctx, svc_update_ticket_priority, ticket_id, expand_shortcut(priority, PRIORITY_SHORTCUTS), output_format)


@update_app.command("type")
def update_type(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    ticket_type: str = typer.Argument(..., help="bug|feature|task (or b|f|t)"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Change the type."""
    _run_update(ctx, svc_update_ticket_type, ticket_id, expand_shortcut(ticket_type, TYPE_SHORTCUTS), output_format)


@update_app.command("status")
def update_status(
    ctx: typer.Context,
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    status: str = typer.Argument(..., help="pending|in_progress|completed|archived"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help=FORMAT_HELP),
):
    """Change the status. Only transitions allowed by the workflow succeed."""
    _run_update(ctx, svc_update_ticket_status, ticket_id, status, output_format)


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Show the effective configuration as JSON."""
    storage = ctx.obj.get("storage") if ctx.obj else None
    _print_json(resolve_config_info(storage))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Config key (e.g. default_priority)"),
    value: str = typer.Argument(..., help="New value"),
):
    """Save a setting to the user config file."""
    try:
        path = save_config_value(key, value)
    except ValidationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Saved {key} to {path}")


# ============================================================================
# MCP Server
# ============================================================================


@app.command("mcp")
def run_mcp_server():
    """Run the MCP server over stdio."""
    from .mcp_server import main as mcp_main

    mcp_main()


if __name__ == "__main__":
    app()
