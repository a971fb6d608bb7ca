"""Ticket data models for project-manager."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from ..errors import ValidationError

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 5000

# Stored timestamps have millisecond precision, so updated_at moves by at least this much.
TIMESTAMP_RESOLUTION = timedelta(milliseconds=1)


class TicketStatus(Enum):
    """Lifecycle states of a ticket."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, value: Any) -> "TicketStatus":
        return _parse_enum(cls, value, "status", {"in-progress": "in_progress"})


class TicketPriority(Enum):
    """Ticket priority levels."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, value: Any) -> "TicketPriority":
        return _parse_enum(cls, value, "priority")


class TicketType(Enum):
    """What kind of work a ticket describes."""
    FEATURE = "feature"
    BUG = "bug"
    TASK = "task"

    @classmethod
    def parse(cls, value: Any) -> "TicketType":
        return _parse_enum(cls, value, "type")


class TicketPrivacy(Enum):
    """Who a ticket may be shared with."""
    LOCAL_ONLY = "local-only"
    SHAREABLE = "shareable"
    PUBLIC = "public"

    @classmethod
    def parse(cls, value: Any) -> "TicketPrivacy":
        return _parse_enum(cls, value, "privacy", {"local_only": "local-only"})


def _parse_enum(enum_cls, value: Any, field: str, aliases: Optional[dict] = None):
    """Parse a boundary value into a member of enum_cls or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    allowed = ", ".join(member.value for member in enum_cls)
    if not isinstance(value, str):
        raise ValidationError(
            f"Invalid ticket {field}: {value!r}. Expected one of: {allowed}", field, value
        )
    key = value.strip().lower()
    key = (aliases or {}).get(key, key)
    try:
        return enum_cls(key)
    except ValueError:
        raise ValidationError(
            f"Invalid ticket {field}: {value!r}. Expected one of: {allowed}", field, value
        ) from None


# ============================================================================
# Timestamps
# ============================================================================


def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def format_timestamp(value: datetime) -> str:
    """Format as ISO-8601 with a trailing Z.

    Milliseconds are written unless the value carries sub-millisecond
    precision, which is kept as microseconds.
    """
    timespec = "milliseconds" if value.microsecond % 1000 == 0 else "microseconds"
    return value.astimezone(timezone.utc).isoformat(timespec=timespec).replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}", "timestamp", value) from None
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}", "timestamp", value)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ============================================================================
# Field validation
# ============================================================================


def validate_title(title: Any, max_length: Optional[int] = TITLE_MAX_LENGTH) -> str:
    """Return the trimmed title or raise ValidationError.

    Args:
        title: Raw title from the caller
        max_length: Upper bound on the trimmed length (None disables the check)
    """
    if not isinstance(title, str):
        raise ValidationError("Title must be a string", "title", title)
    cleaned = title.strip()
    if not cleaned:
        raise ValidationError("Title cannot be empty", "title", title)
    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(
            f"Title cannot exceed {max_length} characters (got {len(cleaned)})", "title", title
        )
    return cleaned


def validate_description(description: Any, max_length: Optional[int] = DESCRIPTION_MAX_LENGTH) -> str:
    """Return the trimmed description ("" for None) or raise ValidationError."""
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("Description must be a string", "description", description)
    cleaned = description.strip()
    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(
            f"Description cannot exceed {max_length} characters (got {len(cleaned)})",
            "description",
            description,
        )
    return cleaned


# ============================================================================
# Value objects
# ============================================================================


@dataclass(frozen=True)
class TicketDraft:
    """Validated input for creating a ticket."""

    title: str
    description: str = ""
    status: TicketStatus = TicketStatus.PENDING
    priority: TicketPriority = TicketPriority.MEDIUM
    type: TicketType = TicketType.TASK
    privacy: TicketPrivacy = TicketPrivacy.LOCAL_ONLY

    @classmethod
    def parse(
        cls,
        title: Any,
        description: Any = None,
        priority: Any = None,
        type: Any = None,
        privacy: Any = None,
        status: Any = None,
        max_title_length: int = TITLE_MAX_LENGTH,
    ) -> "TicketDraft":
        """Build a draft from raw boundary values, applying defaults for None."""
        return cls(
            title=validate_title(title, max_title_length),
            description=validate_description(description),
            status=TicketStatus.PENDING if status is None else TicketStatus.parse(status),
            priority=TicketPriority.MEDIUM if priority is None else TicketPriority.parse(priority),
            type=TicketType.TASK if type is None else TicketType.parse(type),
            privacy=TicketPrivacy.LOCAL_ONLY if privacy is None else TicketPrivacy.parse(privacy),
        )


@dataclass(frozen=True)
class TicketChanges:
    """Validated partial update. None means "leave unchanged"."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[TicketPriority] = None
    type: Optional[TicketType] = None

    @classmethod
    def parse(
        cls,
        title: Any = None,
        description: Any = None,
        priority: Any = None,
        type: Any = None,
        max_title_length: int = TITLE_MAX_LENGTH,
    ) -> "TicketChanges":
        changes = cls(
            title=None if title is None else validate_title(title, max_title_length),
            description=None if description is None else validate_description(description),
            priority=None if priority is None else TicketPriority.parse(priority),
            type=None if type is None else TicketType.parse(type),
        )
        if changes.is_empty():
            raise ValidationError("No fields to update")
        return changes

    def is_empty(self) -> bool:
        return all(
            value is None for value in (self.title, self.description, self.priority, self.type)
        )


# ============================================================================
# Ticket entity
# ============================================================================


@dataclass
class Ticket:
    """A single trackable work item."""

    id: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    type: TicketType
    privacy: TicketPrivacy
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(cls, ticket_id: str, draft: TicketDraft, now: Optional[datetime] = None) -> "Ticket":
        """Create a new ticket from a validated draft."""
        now = now or utc_now()
        return cls(
            id=ticket_id,
            title=draft.title,
            description=draft.description,
            status=draft.status,
            priority=draft.priority,
            type=draft.type,
            privacy=draft.privacy,
            created_at=now,
            updated_at=now,
        )

    def apply_changes(self, changes: TicketChanges, now: Optional[datetime] = None) -> None:
        """Merge the provided fields and refresh updated_at."""
        if changes.title is not None:
            self.title = changes.title
        if changes.description is not None:
            self.description = changes.description
        if changes.priority is not None:
            self.priority = changes.priority
        if changes.type is not None:
            self.type = changes.type
        self.touch(now)

    def change_status(self, status: TicketStatus, now: Optional[datetime] = None) -> None:
        """Set the status. Legality is decided by the transition policy, not here."""
        self.status = status
        self.touch(now)

    def touch(self, now: Optional[datetime] = None) -> None:
        """Refresh updated_at so it strictly increases."""
        now = now or utc_now()
        floor = self.updated_at + TIMESTAMP_RESOLUTION
        self.updated_at = now if now >= floor else floor

    def copy(self) -> "Ticket":
        return replace(self)

    def to_dict(self) -> dict:
        """Convert to the canonical persisted layout."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "type": self.type.value,
            "privacy": self.privacy.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Ticket":
        """Create Ticket from a persisted record.

        Raises:
            ValidationError: If the record does not fit the ticket schema
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Ticket record must be an object, got {type(data).__name__}")

        ticket_id = data.get("id")
        if not isinstance(ticket_id, str) or not ticket_id.strip():
            raise ValidationError("Ticket record has no id", "id", ticket_id)

        created_at = parse_timestamp(data.get("createdAt"))
        updated_at = parse_timestamp(data.get("updatedAt", data.get("createdAt")))
        if updated_at < created_at:
            raise ValidationError(
                f"Ticket {ticket_id} has updatedAt before createdAt", "updatedAt", data.get("updatedAt")
            )

        return cls(
            id=ticket_id,
            title=validate_title(data.get("title"), max_length=None),
            description=validate_description(data.get("description"), max_length=None),
            status=TicketStatus.parse(data.get("status")),
            priority=TicketPriority.parse(data.get("priority")),
            type=TicketType.parse(data.get("type", TicketType.TASK.value)),
            privacy=TicketPrivacy.parse(data.get("privacy", TicketPrivacy.LOCAL_ONLY.value)),
            created_at=created_at,
            updated_at=updated_at,
        )
