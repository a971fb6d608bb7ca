"""Context resolution helpers shared by CLI and MCP."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config import PMConfig, get_config_paths, is_development, load_config, resolve_storage_path
from ..storage import JsonTicketRepository, check_storage_integrity
from ..usecases import TicketUseCases

# Storage files already checked in this process
_checked_paths: set[Path] = set()


@dataclass
class TicketContext:
    """Everything an adapter needs to serve one request."""

    config: PMConfig
    storage_path: Path
    usecases: TicketUseCases
    warnings: list[str] = field(default_factory=list)


def ensure_storage_checked(storage_path: Path) -> list[str]:
    """Run the integrity check once per process for each storage file."""
    key = Path(storage_path).expanduser().resolve()
    if key in _checked_paths:
        return []
    _checked_paths.add(key)
    return check_storage_integrity(key)


def reset_checked_paths() -> None:
    _checked_paths.clear()


def get_ticket_context(storage_path: Optional[str] = None, cwd: Optional[Path] = None) -> TicketContext:
    """Resolve config and storage, check the file, and build the use cases.

    Args:
        storage_path: Explicit tickets file (overrides config)
        cwd: Directory to read ./.pmrc.json from (default: cwd)
    """
    config = load_config(cwd)
    path = resolve_storage_path(storage_path, config)
    warnings = ensure_storage_checked(path)
    repository = JsonTicketRepository(path)
    return TicketContext(
        config=config,
        storage_path=path,
        usecases=TicketUseCases(repository, max_title_length=config.max_title_length),
        warnings=warnings,
    )


def resolve_config_info(storage_path: Optional[str] = None, cwd: Optional[Path] = None) -> dict:
    """Return the effective configuration and where it came from."""
    config = load_config(cwd)
    return {
        "config": config.to_dict(),
        "storage_path": str(resolve_storage_path(storage_path, config)),
        "config_files": [str(p) for p in get_config_paths(cwd) if p.exists()],
        "development": is_development(),
    }


README_CANDIDATES = ("README.md", "readme.md", "README.txt", "readme.txt")
README_PREVIEW_LENGTH = 1000


def _read_readme(directory: Path) -> Optional[dict]:
    for name in README_CANDIDATES:
        path = directory / name
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        truncated = len(content) > README_PREVIEW_LENGTH
        if truncated:
            content = content[:README_PREVIEW_LENGTH] + "..."
        return {"file": name, "content": content, "truncated": truncated}
    return None


def _read_package_info(directory: Path) -> dict:
    path = directory / "package.json"
    if not path.is_file():
        return {"found": False}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {"found": True, "error": "package.json could not be parsed"}
    if not isinstance(data, dict):
        return {"found": True, "error": "package.json could not be parsed"}
    return {
        "found": True,
        "name": data.get("name"),
        "version": data.get("version"),
        "description": data.get("description"),
        "scripts": sorted(data.get("scripts") or {}),
        "dependency_count": len(data.get("dependencies") or {}),
        "dev_dependency_count": len(data.get("devDependencies") or {}),
    }


def get_project_info(cwd: Optional[Path] = None, include_package_info: bool = False) -> dict:
    """Describe the working directory: a README preview and, optionally, package.json.

    Args:
        cwd: Project directory (default: cwd)
        include_package_info: Also summarise package.json

    Returns:
        Dict with project_directory, readme (None when absent) and package
        when requested
    """
    directory = Path(cwd) if cwd else Path.cwd()
    info = {
        "project_directory": str(directory),
        "readme": _read_readme(directory),
    }
    if include_package_info:
        info["package"] = _read_package_info(directory)
    return info
