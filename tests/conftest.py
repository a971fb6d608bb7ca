"""Shared fixtures."""

from pathlib import Path

import pytest

from project_manager.config import ENV_MAPPINGS
from project_manager.repository import InMemoryTicketRepository
from project_manager.services import reset_checked_paths
from project_manager.storage import JsonTicketRepository
from project_manager.usecases import TicketUseCases


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep user config, rc files and PM_* variables out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    for name in list(ENV_MAPPINGS) + ["PM_ENV", "NODE_ENV"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_checked_paths()
    yield
    reset_checked_paths()


@pytest.fixture
def storage_path(tmp_path: Path) -> Path:
    """Path to a tickets file inside an existing directory."""
    path = tmp_path / "data" / "tickets.json"
    path.parent.mkdir()
    return path


@pytest.fixture
def repo(storage_path: Path) -> JsonTicketRepository:
    return JsonTicketRepository(storage_path)


@pytest.fixture
def usecases(repo: JsonTicketRepository) -> TicketUseCases:
    return TicketUseCases(repo)


@pytest.fixture
def memory_usecases() -> TicketUseCases:
    return TicketUseCases(InMemoryTicketRepository())
