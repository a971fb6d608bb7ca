"""Tests for the ticket use cases over the JSON store."""

import pytest

from project_manager.errors import TicketNotFoundError, TicketTransitionError, ValidationError
from project_manager.models import TicketPriority, TicketStatus, TicketType
from project_manager.storage import JsonTicketRepository
from project_manager.usecases import TicketUseCases

S = TicketStatus

# Every status pair the transition table refuses
REJECTED = [
    (S.PENDING, S.PENDING),
    (S.IN_PROGRESS, S.PENDING),
    (S.IN_PROGRESS, S.IN_PROGRESS),
    (S.COMPLETED, S.PENDING),
    (S.COMPLETED, S.IN_PROGRESS),
    (S.COMPLETED, S.COMPLETED),
    (S.ARCHIVED, S.PENDING),
    (S.ARCHIVED, S.IN_PROGRESS),
    (S.ARCHIVED, S.COMPLETED),
]


class TestCreateAndRead:
    """Tests for create and read use cases."""

    def test_create_with_defaults(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Fix login bug", "")

        assert ticket.id
        assert ticket.created_at == ticket.updated_at
        assert ticket.status == TicketStatus.PENDING
        assert ticket.priority == TicketPriority.MEDIUM
        assert ticket.type == TicketType.TASK

    def test_create_rejects_invalid_input(self, usecases: TicketUseCases):
        with pytest.raises(ValidationError):
            usecases.create_ticket("   ")
        with pytest.raises(ValidationError):
            usecases.create_ticket("Title", priority="urgent")
        assert usecases.get_all_tickets() == []

    def test_max_title_length_is_configurable(self, repo: JsonTicketRepository):
        usecases = TicketUseCases(repo, max_title_length=5)
        with pytest.raises(ValidationError):
            usecases.create_ticket("Too long")

    def test_get_by_id_trims_and_misses_quietly(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Find me")
        assert usecases.get_ticket_by_id(f"  {ticket.id} ") == ticket
        assert usecases.get_ticket_by_id("missing") is None

    def test_require_ticket_raises(self, usecases: TicketUseCases):
        with pytest.raises(TicketNotFoundError):
            usecases.require_ticket("missing")

    def test_reads_are_idempotent(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Stable")
        usecases.create_ticket("Other", description="stable too")

        assert usecases.get_ticket_by_id(ticket.id) == usecases.get_ticket_by_id(ticket.id)
        assert usecases.search_tickets(query="stable") == usecases.search_tickets(query="stable")

    def test_round_trip_through_file(self, usecases: TicketUseCases, repo: JsonTicketRepository):
        created = [
            usecases.create_ticket("One", "first", priority="high", type="bug", privacy="public"),
            usecases.create_ticket("Two", status="in_progress"),
            usecases.create_ticket("Três ✓", "unicode body"),
        ]
        assert JsonTicketRepository(repo.path).get_all() == created


class TestLifecycle:
    """The documented ticket lifecycle."""

    def test_fix_login_bug_lifecycle(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Fix login bug")
        assert ticket.status == TicketStatus.PENDING

        ticket = usecases.update_ticket_status(ticket.id, "in_progress")
        assert ticket.status == TicketStatus.IN_PROGRESS
        with pytest.raises(TicketTransitionError):
            usecases.update_ticket_status(ticket.id, "in_progress")

        ticket = usecases.update_ticket_status(ticket.id, "completed")
        assert ticket.status == TicketStatus.COMPLETED
        with pytest.raises(TicketTransitionError):
            usecases.update_ticket_status(ticket.id, "completed")

        ticket = usecases.update_ticket_status(ticket.id, "archived")
        assert ticket.status == TicketStatus.ARCHIVED
        for target in ("pending", "in_progress", "completed"):
            with pytest.raises(TicketTransitionError):
                usecases.update_ticket_status(ticket.id, target)

    def test_rearchive_is_noop(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Old")
        archived = usecases.archive_ticket(ticket.id)

        again = usecases.archive_ticket(ticket.id)

        assert again == archived

    @pytest.mark.parametrize("current,target", REJECTED)
    def test_rejected_transition_leaves_stored_ticket_unchanged(
        self, usecases: TicketUseCases, repo: JsonTicketRepository, current, target
    ):
        ticket = usecases.create_ticket("Shipped")
        if current != TicketStatus.PENDING:
            ticket = usecases.update_ticket_status(ticket.id, current)
        before = repo.path.read_bytes()

        with pytest.raises(TicketTransitionError):
            usecases.update_ticket_status(ticket.id, target)

        assert usecases.get_ticket_by_id(ticket.id) == ticket
        assert repo.path.read_bytes() == before

    def test_verbs_use_the_same_table(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Verbs")
        assert usecases.start_ticket(ticket.id).status == TicketStatus.IN_PROGRESS
        assert usecases.complete_ticket(ticket.id).status == TicketStatus.COMPLETED
        with pytest.raises(TicketTransitionError):
            usecases.start_ticket(ticket.id)

    def test_unknown_status_is_validation_error(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Status")
        with pytest.raises(ValidationError):
            usecases.update_ticket_status(ticket.id, "done")

    def test_status_change_on_missing_ticket(self, usecases: TicketUseCases):
        with pytest.raises(TicketNotFoundError):
            usecases.update_ticket_status("missing", "completed")

    def test_status_not_updatable_through_field_update(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Field path")
        with pytest.raises(TypeError):
            usecases.update_ticket(ticket.id, status="archived")


class TestUpdates:
    """Tests for field updates."""

    def test_update_field_keeps_other_fields(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Title", "Description", priority="low")
        updated = usecases.update_ticket_field(ticket.id, title="New title")

        assert updated.title == "New title"
        assert updated.description == "Description"
        assert updated.priority == TicketPriority.LOW
        assert updated.updated_at > ticket.updated_at

    def test_update_requires_a_field(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Nothing")
        with pytest.raises(ValidationError):
            usecases.update_ticket_field(ticket.id)

    def test_update_priority_and_type(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Retag")
        usecases.update_ticket_priority(ticket.id, "high")
        updated = usecases.update_ticket_type(ticket.id, "feature")

        assert updated.priority == TicketPriority.HIGH
        assert updated.type == TicketType.FEATURE

    def test_update_description_can_clear(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Clear", "something")
        assert usecases.update_ticket_description(ticket.id, "").description == ""

    def test_updated_at_strictly_increases(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Rapid")
        stamps = [ticket.updated_at]
        for n in range(5):
            stamps.append(usecases.update_ticket_title(ticket.id, f"Rapid {n}").updated_at)
        assert stamps == sorted(set(stamps))

    def test_update_missing_raises(self, usecases: TicketUseCases):
        with pytest.raises(TicketNotFoundError):
            usecases.update_ticket_priority("missing", "high")

    def test_delete(self, usecases: TicketUseCases):
        ticket = usecases.create_ticket("Delete me")
        usecases.delete_ticket(ticket.id)
        assert usecases.get_ticket_by_id(ticket.id) is None
        with pytest.raises(TicketNotFoundError):
            usecases.delete_ticket(ticket.id)


class TestSearchAndStats:
    """Search and statistics scenarios."""

    @pytest.fixture
    def seeded(self, usecases: TicketUseCases) -> TicketUseCases:
        usecases.create_ticket("Fix login bug", "Crash on submit", type="bug")
        usecases.create_ticket("Login audit", status="in_progress")
        usecases.create_ticket("Write docs", priority="low")
        return usecases

    def test_status_and_query_filters(self, seeded: TicketUseCases):
        result = seeded.search_tickets(status="pending", query="login")
        assert [t.title for t in result] == ["Fix login bug"]

    def test_limit_zero_returns_nothing(self, seeded: TicketUseCases):
        assert seeded.search_tickets(status="pending", query="login", limit=0) == []

    def test_invalid_filter_raises(self, seeded: TicketUseCases):
        with pytest.raises(ValidationError):
            seeded.search_tickets(priority="urgent")

    def test_stats_sums(self, seeded: TicketUseCases):
        stats = seeded.get_ticket_stats()

        assert stats.total == 3
        assert sum(stats.by_status.values()) == stats.total
        assert sum(stats.by_priority.values()) == stats.total
        assert sum(stats.by_type.values()) == stats.total
        assert stats.by_status == {"pending": 2, "in_progress": 1, "completed": 0, "archived": 0}

    def test_works_with_in_memory_repository(self, memory_usecases: TicketUseCases):
        memory_usecases.create_ticket("In memory")
        assert memory_usecases.get_ticket_stats().total == 1
