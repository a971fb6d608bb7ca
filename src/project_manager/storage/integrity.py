"""Storage integrity check run before the ticket file is trusted.

A corrupted tickets file is backed up next to the original and replaced
with an empty document. Problems are reported as warning strings and never
raised, so a damaged file cannot stop the CLI or the MCP server from starting.
"""

from __future__ import annotations

import shutil
import time
from pathlib import Path
from typing import Union

from .json_store import atomic_write_text, dump_document, empty_document, parse_document


def backup_path_for(storage_path: Path, timestamp_ms: int) -> Path:
    """Path for the backup copy: ``<file>.backup.<epoch-ms>``."""
    return storage_path.with_name(f"{storage_path.name}.backup.{timestamp_ms}")


def check_storage_integrity(storage_path: Union[str, Path]) -> list[str]:
    """Validate the tickets file and repair it if it cannot be parsed.

    Steps:
    1. Missing storage directory: warn and stop.
    2. Missing file, or empty/whitespace-only file: healthy, left untouched.
    3. Unparsable file: copy it to a timestamped backup (best effort) and
       overwrite the original with an empty document.

    Args:
        storage_path: Path to the tickets JSON file

    Returns:
        Warning messages, empty if the file is healthy
    """
    warnings: list[str] = []
    try:
        path = Path(storage_path).expanduser()
        storage_dir = path.parent

        if not storage_dir.exists():
            warnings.append(f"Storage directory does not exist: {storage_dir}")
            return warnings

        if not path.exists():
            return warnings

        raw = path.read_bytes()
        try:
            parse_document(raw.decode("utf-8"))
            return warnings
        except (ValueError, RecursionError):
            # RecursionError: nesting deeper than the JSON decoder allows
            pass

        warnings.append(f"Storage file is corrupted or invalid JSON: {path}")
        warnings.append("Creating backup and initializing fresh storage...")

        backup = backup_path_for(path, int(time.time() * 1000))
        try:
            shutil.copy2(path, backup)
            warnings.append(f"Backup created at: {backup}")
        except OSError as e:
            warnings.append(f"Failed to create backup of corrupted file: {e}")

        atomic_write_text(path, dump_document(empty_document()))
        warnings.append("Storage file has been reset to default structure")
    except OSError as e:
        warnings.append(f"Storage integrity check failed: {e}")
    except Exception as e:
        warnings.append(f"Storage integrity check failed unexpectedly: {type(e).__name__}: {e}")

    return warnings
