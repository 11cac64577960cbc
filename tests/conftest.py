from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()


@pytest.fixture(autouse=True)
def _isolated_log_location(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep log files written during tests out of the real home directory."""

    log_dir = tmp_path_factory.mktemp("logs")
    monkeypatch.setenv("TODO_HIGHLIGHT_LOG_DIR", str(log_dir))
    monkeypatch.delenv("TODO_HIGHLIGHT_LOG_FILE", raising=False)
    yield


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Dedicated working directory the resolver is allowed to prune."""

    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def releases_dir(tmp_path: Path) -> Path:
    """Folder holding release archives, kept outside the working directory."""

    path = tmp_path / "releases"
    path.mkdir()
    return path
