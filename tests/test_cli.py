"""Tests for the pm CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from project_manager.cli import app

runner = CliRunner()


@pytest.fixture
def pm(storage_path: Path):
    """Invoke the CLI against the test tickets file."""

    def invoke(*args: str, input: str = None):
        return runner.invoke(app, ["--storage", str(storage_path), *args], input=input)

    return invoke


def created_id(pm, title: str = "Fix login bug", *extra: str) -> str:
    result = pm("create", title, *extra, "--format", "json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)["ticket"]["id"]


class TestTicketCommands:
    """Tests for ticket commands."""

    def test_create_prints_confirmation(self, pm, storage_path: Path):
        result = pm("create", "Fix login bug", "-p", "high")

        assert result.exit_code == 0
        assert "Created" in result.stdout
        assert "Fix login bug" in result.stdout
        assert json.loads(storage_path.read_text())["tickets"][0]["priority"] == "high"

    def test_create_accepts_shortcuts(self, pm):
        ticket_id = created_id(pm, "Shortcut", "-p", "h", "-t", "b")

        ticket = json.loads(pm("show", ticket_id, "--format", "json").stdout)["ticket"]

        assert ticket["priority"] == "high"
        assert ticket["type"] == "bug"

    def test_update_accepts_shortcuts(self, pm):
        ticket_id = created_id(pm)

        pm("update", "priority", ticket_id, "l")
        pm("update", "type", ticket_id, "F")

        ticket = json.loads(pm("show", ticket_id, "--format", "json").stdout)["ticket"]
        assert ticket["priority"] == "low"
        assert ticket["type"] == "feature"

    def test_create_invalid_exits_with_error(self, pm):
        result = pm("create", "Title", "--type", "epic")

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_show_json(self, pm):
        ticket_id = created_id(pm, "Show me", "-d", "Details")
        result = pm("show", ticket_id, "--format", "json")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["ticket"]["description"] == "Details"

    def test_show_missing(self, pm):
        result = pm("show", "missing")
        assert result.exit_code == 1
        assert "Ticket not found" in result.output

    def test_list_table_and_compact(self, pm):
        ticket_id = created_id(pm, "Listed")

        table = pm("list")
        compact = pm("list", "--format", "compact")

        assert ticket_id in table.stdout
        assert compact.stdout.strip() == f"{ticket_id} [pending] medium task  Listed"

    def test_list_empty(self, pm):
        assert "No tickets found" in pm("list").stdout

    def test_list_limit_zero_rejected(self, pm):
        created_id(pm, "Anything")
        result = pm("list", "--limit", "0")

        assert result.exit_code == 1
        assert "limit must be at least 1" in result.output

    def test_search_filters(self, pm):
        created_id(pm, "Fix login bug")
        created_id(pm, "Login audit", "-s", "in_progress")
        created_id(pm, "Write docs")

        result = pm("search", "login", "--status", "pending", "--format", "json")

        payload = json.loads(result.stdout)
        assert payload["count"] == 1
        assert payload["tickets"][0]["title"] == "Fix login bug"

    def test_search_limit_zero(self, pm):
        created_id(pm, "Anything")
        payload = json.loads(pm("search", "--limit", "0", "--format", "json").stdout)
        assert payload["tickets"] == []

    def test_todo_and_wip(self, pm):
        pending = created_id(pm, "Waiting")
        started = created_id(pm, "Underway", "-s", "in_progress")
        pm("done", created_id(pm, "Finished"))

        todo = pm("todo", "--compact")
        wip = pm("wip", "-c")

        assert todo.exit_code == 0
        assert todo.stdout.strip() == f"{pending} [pending] medium task  Waiting"
        assert wip.stdout.strip() == f"{started} [in_progress] medium task  Underway"

    def test_todo_json(self, pm):
        ticket_id = created_id(pm, "Waiting")
        payload = json.loads(pm("todo", "--format", "json").stdout)
        assert [t["id"] for t in payload["tickets"]] == [ticket_id]

    def test_wip_empty(self, pm):
        created_id(pm, "Not started")
        assert "No in-progress tickets found." in pm("wip").stdout

    def test_lifecycle_verbs(self, pm):
        ticket_id = created_id(pm)

        assert pm("start", ticket_id).exit_code == 0
        assert pm("done", ticket_id).exit_code == 0

        rejected = pm("start", ticket_id)
        assert rejected.exit_code == 1
        assert "cannot transition from completed to in_progress" in rejected.output

        assert pm("archive", ticket_id).exit_code == 0

    def test_update_subcommands(self, pm):
        ticket_id = created_id(pm)

        pm("update", "title", ticket_id, "New title")
        pm("update", "description", ticket_id, "New description")
        pm("update", "priority", ticket_id, "low")
        pm("update", "type", ticket_id, "bug")
        result = pm("show", ticket_id, "--format", "json")

        ticket = json.loads(result.stdout)["ticket"]
        assert ticket["title"] == "New title"
        assert ticket["description"] == "New description"
        assert ticket["priority"] == "low"
        assert ticket["type"] == "bug"

    def test_update_status_goes_through_policy(self, pm):
        ticket_id = created_id(pm)
        pm("update", "status", ticket_id, "archived")

        result = pm("update", "status", ticket_id, "pending")

        assert result.exit_code == 1
        assert "cannot transition" in result.output

    def test_delete_asks_for_confirmation(self, pm):
        ticket_id = created_id(pm, "Keep me")

        declined = pm("delete", ticket_id, input="n\n")
        assert declined.exit_code == 0
        assert pm("show", ticket_id).exit_code == 0

        accepted = pm("delete", ticket_id, input="y\n")
        assert accepted.exit_code == 0
        assert pm("show", ticket_id).exit_code == 1

    def test_delete_force(self, pm):
        ticket_id = created_id(pm, "Bye")
        result = pm("delete", ticket_id, "--force")

        assert result.exit_code == 0
        assert "Deleted" in result.stdout

    def test_stats_json(self, pm):
        created_id(pm, "One")
        created_id(pm, "Two", "-t", "bug")

        stats = json.loads(pm("stats", "--format", "json").stdout)["stats"]

        assert stats["total"] == 2
        assert stats["by_type"]["bug"] == 1

    def test_unknown_format(self, pm):
        result = pm("list", "--format", "xml")
        assert result.exit_code == 1

    def test_corrupted_storage_warns_and_recovers(self, pm, storage_path: Path):
        storage_path.write_text("{not json")

        result = pm("list")

        assert result.exit_code == 0
        assert "corrupted" in result.output
        assert json.loads(storage_path.read_text()) == {"tickets": [], "epics": []}


class TestConfigCommands:
    """Tests for config commands."""

    def test_config_set_and_show(self, pm, storage_path: Path):
        result = pm("config", "set", "default_priority", "high")
        assert result.exit_code == 0

        info = json.loads(pm("config", "show").stdout)

        assert info["config"]["default_priority"] == "high"
        assert info["storage_path"] == str(storage_path)

    def test_config_set_invalid(self, pm):
        result = pm("config", "set", "default_priority", "urgent")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_configured_default_used_by_create(self, pm):
        pm("config", "set", "default_type", "feature")
        ticket_id = created_id(pm, "Feature by default")

        ticket = json.loads(pm("show", ticket_id, "--format", "json").stdout)["ticket"]
        assert ticket["type"] == "feature"
