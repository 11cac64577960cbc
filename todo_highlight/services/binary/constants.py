"""Constants shared across the binary resolver modules."""

from __future__ import annotations

from todo_highlight.domain.platform import LSP_NAME_UNIX, LSP_NAME_WINDOWS

TOOL_NAME = LSP_NAME_UNIX
GITHUB_REPO = "placintaalexandru/zed-todo-highlighter"
API_BASE_URL = "https://api.github.com"
GITHUB_ACCEPT_HEADER = "application/vnd.github+json"
REQUEST_TIMEOUT_SECONDS = 30.0

MAX_ARCHIVE_TOTAL_BYTES = 500 * 1024 * 1024  # 500 MiB
MAX_ARCHIVE_FILE_SIZE = 250 * 1024 * 1024  # 250 MiB per file
MAX_ARCHIVE_ENTRIES = 2000
MAX_COMPRESSION_RATIO = 100  # Uncompressed vs compressed bytes

LOCAL_RELEASE_METADATA = "release.json"

__all__ = [
    "API_BASE_URL",
    "GITHUB_ACCEPT_HEADER",
    "GITHUB_REPO",
    "LOCAL_RELEASE_METADATA",
    "LSP_NAME_UNIX",
    "LSP_NAME_WINDOWS",
    "MAX_ARCHIVE_ENTRIES",
    "MAX_ARCHIVE_FILE_SIZE",
    "MAX_ARCHIVE_TOTAL_BYTES",
    "MAX_COMPRESSION_RATIO",
    "REQUEST_TIMEOUT_SECONDS",
    "TOOL_NAME",
]
