"""Public API for the language server binary resolver package."""

from __future__ import annotations

from todo_highlight.services.binary.archive import ArchiveLimits, Downloader, download_and_extract
from todo_highlight.services.binary.builder import (
    build_binary_resolver,
    build_downloader,
    build_release_provider,
)
from todo_highlight.services.binary.constants import (
    API_BASE_URL,
    GITHUB_REPO,
    LSP_NAME_UNIX,
    LSP_NAME_WINDOWS,
    MAX_ARCHIVE_ENTRIES,
    MAX_ARCHIVE_FILE_SIZE,
    MAX_ARCHIVE_TOTAL_BYTES,
    MAX_COMPRESSION_RATIO,
    TOOL_NAME,
)
from todo_highlight.services.binary.environment import EnvironmentLookup, PathEnvironment
from todo_highlight.services.binary.models import (
    DirectoryEntryFailed,
    DirectoryListFailed,
    DownloadOrExtractFailed,
    InstallStatus,
    InstallStatusKind,
    LanguageServerCommand,
    NoMatchingAsset,
    ReleaseAsset,
    ReleaseInfo,
    ReleaseOptions,
    ReleaseQueryFailed,
    ResolutionError,
)
from todo_highlight.services.binary.providers import (
    GitHubReleaseProvider,
    LocalFolderReleaseProvider,
    ReleaseProvider,
)
from todo_highlight.services.binary.resolver import BinaryResolver
from todo_highlight.services.binary.status import (
    CallbackStatusReporter,
    LoggingStatusReporter,
    StatusReporter,
)

__all__ = [
    "API_BASE_URL",
    "GITHUB_REPO",
    "LSP_NAME_UNIX",
    "LSP_NAME_WINDOWS",
    "MAX_ARCHIVE_ENTRIES",
    "MAX_ARCHIVE_FILE_SIZE",
    "MAX_ARCHIVE_TOTAL_BYTES",
    "MAX_COMPRESSION_RATIO",
    "TOOL_NAME",
    "ArchiveLimits",
    "BinaryResolver",
    "CallbackStatusReporter",
    "DirectoryEntryFailed",
    "DirectoryListFailed",
    "DownloadOrExtractFailed",
    "Downloader",
    "EnvironmentLookup",
    "GitHubReleaseProvider",
    "InstallStatus",
    "InstallStatusKind",
    "LanguageServerCommand",
    "LocalFolderReleaseProvider",
    "LoggingStatusReporter",
    "NoMatchingAsset",
    "PathEnvironment",
    "ReleaseAsset",
    "ReleaseInfo",
    "ReleaseOptions",
    "ReleaseProvider",
    "ReleaseQueryFailed",
    "ResolutionError",
    "StatusReporter",
    "build_binary_resolver",
    "build_downloader",
    "build_release_provider",
    "download_and_extract",
]
