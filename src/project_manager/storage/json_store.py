"""JSON file storage for the ticket collection."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional, Union

from ..errors import StorageError, TicketNotFoundError, ValidationError
from ..models.ticket import Ticket, TicketChanges, TicketDraft, TicketStatus
from ..repository import SearchCriteria, TicketStats, compute_stats, filter_tickets, generate_ticket_id
from ..transitions import apply_transition

LOCK_SUFFIX = ".lock"
JSON_INDENT = 2


def empty_document() -> dict:
    """The canonical document for an empty collection."""
    return {"tickets": [], "epics": []}


def parse_document(content: str) -> dict:
    """Parse stored text into a document with ``tickets`` and ``epics`` lists.

    Empty or whitespace-only content is an empty collection. A bare JSON array
    is accepted as a list of ticket records (older layout).

    Raises:
        ValueError: If the text is not JSON or does not have the document shape
    """
    if not content.strip():
        return empty_document()

    data = json.loads(content)
    if isinstance(data, list):
        data = {"tickets": data, "epics": []}
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    if not isinstance(data.get("tickets", []), list):
        raise ValueError("'tickets' must be a list")
    if not isinstance(data.get("epics", []), list):
        raise ValueError("'epics' must be a list")
    data.setdefault("tickets", [])
    data.setdefault("epics", [])
    return data


def dump_document(document: dict) -> str:
    return json.dumps(document, indent=JSON_INDENT, ensure_ascii=False) + "\n"


def atomic_write_text(path: Path, content: str) -> None:
    """Write content to path via a temp file in the same directory and os.replace.

    Readers see either the old or the new file, never a partial write.
    """
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class JsonTicketRepository:
    """Ticket repository backed by a single JSON document on disk.

    Every call reads the file afresh; nothing is cached between calls, so a
    short-lived process always sees the latest state. Mutations run a full
    read-modify-write cycle under an exclusive lock on ``<file>.lock`` and
    replace the file atomically, so concurrent writers are serialized rather
    than overwriting each other.

    Usage:
        repo = JsonTicketRepository(Path("~/.config/project-manager/tickets.json"))

        ticket = repo.create(TicketDraft.parse("Fix login bug"))
        repo.update_status(ticket.id, TicketStatus.IN_PROGRESS)

        # Raw document access with write-back on success
        with repo.transaction() as document:
            document["epics"].append({...})
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize the repository.

        Args:
            path: Path to the JSON document (created on first write)
        """
        path_str = str(path).strip()
        if not path_str:
            raise ValueError("path is required for JsonTicketRepository")
        self.path = Path(path_str).expanduser()
        self.lock_path = self.path.with_name(self.path.name + LOCK_SUFFIX)

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def read_document(self) -> dict:
        """Load the document. A missing file is an empty collection.

        Raises:
            StorageError: If the file cannot be read or is malformed
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return empty_document()
        except OSError as e:
            raise StorageError(f"Failed to read tickets file ({e.strerror or e})", self.path) from e
        except UnicodeDecodeError as e:
            raise StorageError("Tickets file is not valid UTF-8", self.path) from e

        try:
            return parse_document(content)
        except ValueError as e:
            raise StorageError(f"Tickets file is malformed ({e})", self.path) from e
        except RecursionError as e:
            raise StorageError("Tickets file is nested too deeply to parse", self.path) from e

    def write_document(self, document: dict) -> None:
        """Serialize and atomically replace the document."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(self.path, dump_document(document))
        except OSError as e:
            raise StorageError(f"Failed to write tickets file ({e.strerror or e})", self.path) from e

    @contextmanager
    def _locked(self) -> Generator[None, None, None]:
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.lock_path, "a+", encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to open lock file ({e.strerror or e})", self.lock_path) from e

        with handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    @contextmanager
    def transaction(self) -> Generator[dict, None, None]:
        """Lock, load the document, and write it back if the block succeeds.

        If the block raises, nothing is written.

        Yields:
            The mutable document dict
        """
        with self._locked():
            document = self.read_document()
            yield document
            self.write_document(document)

    @contextmanager
    def _mutate(self) -> Generator[list[Ticket], None, None]:
        with self.transaction() as document:
            tickets = self._tickets_from(document)
            yield tickets
            document["tickets"] = [t.to_dict() for t in tickets]

    def _tickets_from(self, document: dict) -> list[Ticket]:
        """Convert raw records to tickets, rejecting records the schema cannot represent."""
        tickets = []
        seen: set[str] = set()
        for index, record in enumerate(document["tickets"]):
            try:
                ticket = Ticket.from_dict(record)
            except ValidationError as e:
                raise StorageError(f"Invalid ticket record at index {index} ({e.message})", self.path) from e
            if ticket.id in seen:
                raise StorageError(f"Duplicate ticket id {ticket.id!r}", self.path)
            seen.add(ticket.id)
            tickets.append(ticket)
        return tickets

    def _load(self) -> list[Ticket]:
        return self._tickets_from(self.read_document())

    @staticmethod
    def _find(tickets: list[Ticket], ticket_id: str) -> Ticket:
        for ticket in tickets:
            if ticket.id == ticket_id:
                return ticket
        raise TicketNotFoundError(ticket_id)

    # ------------------------------------------------------------------
    # Repository operations
    # ------------------------------------------------------------------

    def create(self, draft: TicketDraft) -> Ticket:
        with self._mutate() as tickets:
            ticket_id = generate_ticket_id({t.id for t in tickets})
            ticket = Ticket.create(ticket_id, draft)
            tickets.append(ticket)
        return ticket.copy()

    def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        for ticket in self._load():
            if ticket.id == ticket_id:
                return ticket
        return None

    def get_all(self) -> list[Ticket]:
        return self._load()

    def update(self, ticket_id: str, changes: TicketChanges) -> Ticket:
        with self._mutate() as tickets:
            ticket = self._find(tickets, ticket_id)
            ticket.apply_changes(changes)
        return ticket.copy()

    def update_status(self, ticket_id: str, target: Any) -> Ticket:
        with self._mutate() as tickets:
            ticket = self._find(tickets, ticket_id)
            apply_transition(ticket, TicketStatus.parse(target))
        return ticket.copy()

    def delete(self, ticket_id: str) -> None:
        with self._mutate() as tickets:
            ticket = self._find(tickets, ticket_id)
            tickets.remove(ticket)

    def search(self, criteria: Optional[SearchCriteria] = None) -> list[Ticket]:
        return filter_tickets(self._load(), criteria)

    def stats(self) -> TicketStats:
        return compute_stats(self._load())
