"""Tests for the shared service layer."""

import json
from pathlib import Path

import pytest

from project_manager.config import PMConfig
from project_manager.services import (
    apply_ticket_action,
    create_ticket,
    delete_ticket,
    ensure_storage_checked,
    get_ticket,
    get_ticket_context,
    get_ticket_stats,
    list_tickets,
    resolve_config_info,
    search_tickets,
    update_ticket_content,
    update_ticket_priority,
    update_ticket_status,
    update_ticket_type,
)
from project_manager.usecases import TicketUseCases


@pytest.fixture
def config() -> PMConfig:
    return PMConfig()


def new_id(usecases: TicketUseCases, config: PMConfig, title: str = "Fix login bug", **kwargs) -> str:
    return create_ticket(usecases, config, title, **kwargs)["ticket"]["id"]


class TestCreateTicket:
    """Tests for create_ticket."""

    def test_returns_snake_case_ticket(self, usecases, config):
        result = create_ticket(usecases, config, "Fix login bug", description="Crash")

        assert result["success"] is True
        ticket = result["ticket"]
        assert ticket["status"] == "pending"
        assert ticket["privacy"] == "local-only"
        assert ticket["created_at"].endswith("Z")
        assert "createdAt" not in ticket

    def test_config_defaults_applied(self, usecases):
        config = PMConfig(default_priority="high", default_type="bug")
        ticket = create_ticket(usecases, config, "Defaults")["ticket"]

        assert ticket["priority"] == "high"
        assert ticket["type"] == "bug"

    def test_explicit_values_override_config(self, usecases):
        config = PMConfig(default_priority="high")
        assert create_ticket(usecases, config, "Explicit", priority="low")["ticket"]["priority"] == "low"

    def test_validation_error_dict(self, usecases, config):
        result = create_ticket(usecases, config, "  ")

        assert result["error"] == "validation_error"
        assert result["field"] == "title"


class TestReadServices:
    """Tests for get/list/search/stats."""

    def test_get_ticket_not_found(self, usecases):
        result = get_ticket(usecases, "missing")
        assert result == {"error": "not_found", "message": "Ticket not found: missing", "ticket_id": "missing"}

    def test_list_hides_archived_by_default(self, usecases, config):
        keep = new_id(usecases, config, "Keep")
        gone = new_id(usecases, config, "Gone")
        apply_ticket_action(usecases, gone, "archive")

        assert [t["id"] for t in list_tickets(usecases)["tickets"]] == [keep]
        assert len(list_tickets(usecases, include_archived=True)["tickets"]) == 2
        assert [t["id"] for t in list_tickets(usecases, status="archived")["tickets"]] == [gone]

    def test_list_returns_summaries_with_pagination(self, usecases, config):
        for n in range(3):
            new_id(usecases, config, f"Ticket {n}")

        result = list_tickets(usecases, limit=2)

        assert set(result["tickets"][0]) == {"id", "title", "status", "priority", "type"}
        assert result["pagination"]["total_count"] == 3
        assert result["pagination"]["has_more"] is True
        assert result["pagination"]["next_offset"] == 2

    def test_list_invalid_filter(self, usecases):
        assert list_tickets(usecases, status="open")["error"] == "validation_error"

    @pytest.mark.parametrize("limit,offset", [(0, 0), (-3, 0), (5, -1)])
    def test_list_rejects_out_of_range_page(self, usecases, config, limit, offset):
        new_id(usecases, config, "Anything")
        result = list_tickets(usecases, limit=limit, offset=offset)
        assert result["error"] == "validation_error"

    def test_list_caps_limit_at_100(self, usecases, config):
        new_id(usecases, config, "Anything")
        assert list_tickets(usecases, limit=500)["pagination"]["limit"] == 100

    def test_search_returns_full_records(self, usecases, config):
        new_id(usecases, config, "Fix login bug", description="session expires")
        new_id(usecases, config, "Unrelated")

        result = search_tickets(usecases, query="SESSION")

        assert result["count"] == 1
        assert result["tickets"][0]["description"] == "session expires"

    def test_search_negative_limit(self, usecases):
        assert search_tickets(usecases, limit=-1)["error"] == "validation_error"

    def test_stats(self, usecases, config):
        new_id(usecases, config, "One", type="bug")
        stats = get_ticket_stats(usecases)["stats"]
        assert stats["total"] == 1
        assert stats["by_type"] == {"feature": 0, "bug": 1, "task": 0}


class TestMutationServices:
    """Tests for update and delete services."""

    def test_update_content(self, usecases, config):
        ticket_id = new_id(usecases, config)
        result = update_ticket_content(usecases, ticket_id, description="Details")
        assert result["ticket"]["description"] == "Details"

    def test_update_content_requires_field(self, usecases, config):
        ticket_id = new_id(usecases, config)
        assert update_ticket_content(usecases, ticket_id)["error"] == "validation_error"

    def test_update_priority_and_type(self, usecases, config):
        ticket_id = new_id(usecases, config)
        assert update_ticket_priority(usecases, ticket_id, "HIGH")["ticket"]["priority"] == "high"
        assert update_ticket_type(usecases, ticket_id, "feature")["ticket"]["type"] == "feature"

    def test_update_status_reports_previous_and_next(self, usecases, config):
        ticket_id = new_id(usecases, config)
        result = update_ticket_status(usecases, ticket_id, "in_progress")

        assert result["previous_status"] == "pending"
        assert result["ticket"]["status"] == "in_progress"
        assert result["next_statuses"] == ["completed", "archived"]

    def test_invalid_transition_dict(self, usecases, config):
        ticket_id = new_id(usecases, config)
        apply_ticket_action(usecases, ticket_id, "complete")

        result = update_ticket_status(usecases, ticket_id, "in_progress")

        assert result["error"] == "invalid_transition"
        assert result["from"] == "completed"
        assert result["to"] == "in_progress"
        assert get_ticket(usecases, ticket_id)["ticket"]["status"] == "completed"

    def test_unknown_action(self, usecases, config):
        ticket_id = new_id(usecases, config)
        result = apply_ticket_action(usecases, ticket_id, "finish")
        assert result["error"] == "validation_error"
        assert result["field"] == "action"

    def test_status_of_missing_ticket(self, usecases):
        assert update_ticket_status(usecases, "missing", "completed")["error"] == "not_found"

    def test_delete(self, usecases, config):
        ticket_id = new_id(usecases, config, "Bye")
        result = delete_ticket(usecases, ticket_id)

        assert result == {"success": True, "deleted_ticket_id": ticket_id, "deleted_title": "Bye"}
        assert delete_ticket(usecases, ticket_id)["error"] == "not_found"

    def test_storage_error_dict(self, usecases, repo):
        repo.path.write_text("{broken")
        result = get_ticket_stats(usecases)
        assert result["error"] == "storage_error"
        assert result["path"] == str(repo.path)

    def test_deeply_nested_file_is_storage_error(self, usecases, repo):
        repo.path.write_text("[" * 200000)
        assert list_tickets(usecases)["error"] == "storage_error"


class TestContext:
    """Tests for context resolution."""

    def test_context_uses_explicit_storage(self, storage_path: Path):
        context = get_ticket_context(str(storage_path))

        assert context.storage_path == storage_path
        assert context.warnings == []
        assert context.usecases.create_ticket("Via context").title == "Via context"
        assert storage_path.exists()

    def test_context_uses_configured_max_title_length(self, storage_path: Path, monkeypatch):
        monkeypatch.setenv("PM_MAX_TITLE_LENGTH", "5")
        context = get_ticket_context(str(storage_path))
        assert context.usecases.max_title_length == 5

    def test_context_coerces_string_title_length_from_rc_file(self, storage_path: Path, tmp_path: Path):
        (tmp_path / ".pmrc.json").write_text(json.dumps({"maxTitleLength": "10"}))
        context = get_ticket_context(str(storage_path))

        result = create_ticket(context.usecases, context.config, "x" * 11)

        assert context.usecases.max_title_length == 10
        assert result["error"] == "validation_error"

    def test_integrity_check_runs_once_per_path(self, storage_path: Path):
        storage_path.write_text("{broken")

        first = get_ticket_context(str(storage_path)).warnings
        storage_path.write_text("{broken again")
        second = get_ticket_context(str(storage_path)).warnings

        assert any("corrupted" in w for w in first)
        assert second == []

    def test_ensure_storage_checked_reports_missing_directory(self, tmp_path: Path):
        warnings = ensure_storage_checked(tmp_path / "missing" / "tickets.json")
        assert warnings and "does not exist" in warnings[0]

    def test_config_info(self, storage_path: Path):
        info = resolve_config_info(str(storage_path))

        assert info["storage_path"] == str(storage_path)
        assert info["config"]["default_priority"] == "medium"
        assert info["development"] is False
