"""Data models used by the binary resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


@dataclass(frozen=True)
class ReleaseAsset:
    """A single downloadable file attached to a release."""

    name: str
    download_url: str
    digest: str | None = None


@dataclass(frozen=True)
class ReleaseInfo:
    """Metadata describing the newest published release."""

    version: str
    assets: Tuple[ReleaseAsset, ...] = ()
    pre_release: bool = False

    def find_asset(self, name: str) -> ReleaseAsset | None:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


@dataclass(frozen=True)
class ReleaseOptions:
    """Filters applied when asking a provider for the latest release."""

    require_assets: bool = True
    pre_release: bool = False


class InstallStatusKind(str, Enum):
    NONE = "none"
    DOWNLOADING = "downloading"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallStatus:
    """Install state reported to the host; ``message`` is only set on failure."""

    kind: InstallStatusKind
    message: str | None = None

    @classmethod
    def none(cls) -> "InstallStatus":
        return cls(InstallStatusKind.NONE)

    @classmethod
    def downloading(cls) -> "InstallStatus":
        return cls(InstallStatusKind.DOWNLOADING)

    @classmethod
    def failed(cls, message: str) -> "InstallStatus":
        return cls(InstallStatusKind.FAILED, message)


@dataclass(frozen=True)
class LanguageServerCommand:
    """Process description handed back to the host to spawn the server."""

    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


class ResolutionError(RuntimeError):
    """Raised when the language server binary cannot be located or installed."""


class ReleaseQueryFailed(ResolutionError):
    """The release source could not be queried or had no usable release."""


class NoMatchingAsset(ResolutionError):
    """The release was published without a build for the current platform."""


class DownloadOrExtractFailed(ResolutionError):
    """The asset could not be downloaded, verified or unpacked."""


class DirectoryListFailed(ResolutionError):
    """The working directory could not be listed."""


class DirectoryEntryFailed(ResolutionError):
    """An entry of the working directory could not be inspected."""


__all__ = [
    "DirectoryEntryFailed",
    "DirectoryListFailed",
    "DownloadOrExtractFailed",
    "InstallStatus",
    "InstallStatusKind",
    "LanguageServerCommand",
    "NoMatchingAsset",
    "ReleaseAsset",
    "ReleaseInfo",
    "ReleaseOptions",
    "ReleaseQueryFailed",
    "ResolutionError",
]
