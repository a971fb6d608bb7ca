"""File storage for the ticket collection."""

from .integrity import check_storage_integrity
from .json_store import JsonTicketRepository, empty_document, parse_document

__all__ = ["JsonTicketRepository", "check_storage_integrity", "empty_document", "parse_document"]
