"""Lookup of binaries already installed in the host's work environment."""

from __future__ import annotations

import logging
import shutil
from typing import Protocol

_LOGGER = logging.getLogger(__name__)


class EnvironmentLookup(Protocol):
    """Protocol describing the host's "is this on PATH" check."""

    def which(self, binary_name: str) -> str | None:
        """Return the path of ``binary_name`` or ``None`` when it is not installed."""


class PathEnvironment:
    """Resolve binaries through ``PATH``.

    ``search_path`` lets the host pass the worktree shell's ``PATH`` instead of
    the one this process inherited.
    """

    def __init__(self, search_path: str | None = None) -> None:
        self._search_path = search_path

    def which(self, binary_name: str) -> str | None:
        found = shutil.which(binary_name, path=self._search_path)
        if found:
            _LOGGER.debug("Found %s on the search path at %s", binary_name, found)
        return found


__all__ = ["EnvironmentLookup", "PathEnvironment"]
