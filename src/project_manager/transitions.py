"""Status transition policy.

Decides whether a ticket may move from its current status to a requested one.
The table is the single source of truth for both the start/complete/archive
verbs and the generic status update path.

| From        | in_progress | completed | archived |
|-------------|:-----------:|:---------:|:--------:|
| pending     |     yes     |    yes    |   yes    |
| in_progress |      -      |    yes    |   yes    |
| completed   |      -      |     -     |   yes    |
| archived    |      -      |     -     |  no-op   |

Re-archiving an archived ticket is accepted as a no-op; every other pair not
marked "yes" is rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .errors import TicketTransitionError
from .models.ticket import Ticket, TicketStatus

ALLOWED_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.PENDING: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED, TicketStatus.ARCHIVED}
    ),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.COMPLETED, TicketStatus.ARCHIVED}),
    TicketStatus.COMPLETED: frozenset({TicketStatus.ARCHIVED}),
    TicketStatus.ARCHIVED: frozenset(),
}

# Self-transitions accepted without changing the ticket.
IDEMPOTENT_STATUSES = frozenset({TicketStatus.ARCHIVED})


class StatusAction(Enum):
    """Named lifecycle verbs and the status each one targets."""
    START = "start"
    COMPLETE = "complete"
    ARCHIVE = "archive"

    @property
    def target(self) -> TicketStatus:
        return _ACTION_TARGETS[self]


_ACTION_TARGETS = {
    StatusAction.START: TicketStatus.IN_PROGRESS,
    StatusAction.COMPLETE: TicketStatus.COMPLETED,
    StatusAction.ARCHIVE: TicketStatus.ARCHIVED,
}


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    """Check whether current -> target is allowed (no-op pairs included)."""
    if current == target:
        return current in IDEMPOTENT_STATUSES
    return target in ALLOWED_TRANSITIONS[current]


def is_noop(current: TicketStatus, target: TicketStatus) -> bool:
    """True when the transition is accepted but leaves the ticket untouched."""
    return current == target and current in IDEMPOTENT_STATUSES


def check_transition(current: Any, target: Any) -> TicketStatus:
    """Validate a requested status change and return the resulting status.

    Args:
        current: The ticket's current status
        target: The requested status (enum member or string)

    Returns:
        The status the ticket should have afterwards

    Raises:
        ValidationError: If target is not a known status
        TicketTransitionError: If the table does not allow current -> target
    """
    current = TicketStatus.parse(current)
    target = TicketStatus.parse(target)
    if not can_transition(current, target):
        raise TicketTransitionError(current, target)
    return target


def allowed_targets(current: TicketStatus) -> list[TicketStatus]:
    """Statuses reachable from current, in declaration order."""
    return [status for status in TicketStatus if can_transition(current, status)]


def apply_transition(ticket: Ticket, target: Any) -> bool:
    """Move ticket to target if the policy allows it.

    Returns:
        True if the ticket changed, False for an accepted no-op

    Raises:
        TicketTransitionError: If the pair is not allowed; ticket is left untouched
    """
    new_status = check_transition(ticket.status, target)
    if is_noop(ticket.status, new_status):
        return False
    ticket.change_status(new_status)
    return True
