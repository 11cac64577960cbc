"""Install-status reporting collaborators."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from todo_highlight.services.binary.models import InstallStatus, InstallStatusKind

_LOGGER = logging.getLogger(__name__)


class StatusReporter(Protocol):
    """Fire-and-forget sink for install state transitions."""

    def report(self, tool_id: str, status: InstallStatus) -> None:
        """Publish ``status`` for ``tool_id`` to the host."""


class LoggingStatusReporter:
    """Record status transitions in the log when the host supplies no sink."""

    def report(self, tool_id: str, status: InstallStatus) -> None:
        if status.kind is InstallStatusKind.FAILED:
            _LOGGER.error("%s installation failed: %s", tool_id, status.message)
        else:
            _LOGGER.info("%s installation status: %s", tool_id, status.kind.value)


class CallbackStatusReporter:
    """Forward status transitions to a plain callable."""

    def __init__(self, callback: Callable[[str, InstallStatus], None]) -> None:
        self._callback = callback

    def report(self, tool_id: str, status: InstallStatus) -> None:
        self._callback(tool_id, status)


__all__ = ["CallbackStatusReporter", "LoggingStatusReporter", "StatusReporter"]
