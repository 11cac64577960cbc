"""Host platform model and the naming conventions derived from it."""

from __future__ import annotations

import platform as _platform_module
from dataclasses import dataclass
from enum import Enum


class OperatingSystem(str, Enum):
    """Operating systems the language server is published for."""

    MAC = "mac"
    LINUX = "linux"
    WINDOWS = "windows"


class Architecture(str, Enum):
    """CPU architectures reported by the host."""

    AARCH64 = "aarch64"
    X86 = "x86"
    X86_64 = "x86_64"


class ArchiveFormat(str, Enum):
    """Archive formats used for release assets."""

    ZIP = "zip"
    GZIP_TAR = "gzip_tar"

    @property
    def extension(self) -> str:
        return "zip" if self is ArchiveFormat.ZIP else "tar.gz"


LSP_NAME_UNIX = "todo-highlight-lsp"
LSP_NAME_WINDOWS = "todo-highlight-lsp.ext"

_OS_TOKENS: dict[OperatingSystem, str] = {
    OperatingSystem.MAC: "darwin",
    OperatingSystem.LINUX: "linux",
    OperatingSystem.WINDOWS: "windows",
}

_ARCH_TOKENS: dict[Architecture, str] = {
    Architecture.AARCH64: "arm64",
    Architecture.X86: "amd64",
    Architecture.X86_64: "amd64",
}

_SYSTEM_NAMES: dict[str, OperatingSystem] = {
    "darwin": OperatingSystem.MAC,
    "linux": OperatingSystem.LINUX,
    "windows": OperatingSystem.WINDOWS,
}

_MACHINE_NAMES: dict[str, Architecture] = {
    "arm64": Architecture.AARCH64,
    "aarch64": Architecture.AARCH64,
    "x86_64": Architecture.X86_64,
    "amd64": Architecture.X86_64,
    "x86": Architecture.X86,
    "i386": Architecture.X86,
    "i686": Architecture.X86,
}


@dataclass(frozen=True)
class Platform:
    """``(OperatingSystem, Architecture)`` pair supplied by the host."""

    os: OperatingSystem
    arch: Architecture

    @property
    def is_windows(self) -> bool:
        return self.os is OperatingSystem.WINDOWS

    @property
    def os_token(self) -> str:
        return _OS_TOKENS[self.os]

    @property
    def arch_token(self) -> str:
        return _ARCH_TOKENS[self.arch]

    @property
    def archive_format(self) -> ArchiveFormat:
        return ArchiveFormat.ZIP if self.is_windows else ArchiveFormat.GZIP_TAR


def bin_name(platform: Platform) -> str:
    """Return the executable name the release archive ships for ``platform``.

    The Windows name carries a literal ``.ext`` suffix rather than a real
    executable extension.
    """

    if platform.is_windows:
        return LSP_NAME_WINDOWS
    return LSP_NAME_UNIX


def asset_name(tool_name: str, platform: Platform) -> str:
    """Return the release asset filename expected for ``platform``."""

    return f"{tool_name}-{platform.os_token}-{platform.arch_token}.{platform.archive_format.extension}"


def current_platform() -> Platform:
    """Describe the interpreter's own platform.

    Hosts normally supply the platform themselves; this is the fallback used
    when running outside an editor.
    """

    system = _platform_module.system().lower()
    machine = _platform_module.machine().lower()
    try:
        os_value = _SYSTEM_NAMES[system]
    except KeyError as exc:
        raise ValueError(f"Unsupported operating system: {system or 'unknown'}") from exc
    try:
        arch_value = _MACHINE_NAMES[machine]
    except KeyError as exc:
        raise ValueError(f"Unsupported architecture: {machine or 'unknown'}") from exc
    return Platform(os_value, arch_value)


__all__ = [
    "Architecture",
    "ArchiveFormat",
    "LSP_NAME_UNIX",
    "LSP_NAME_WINDOWS",
    "OperatingSystem",
    "Platform",
    "asset_name",
    "bin_name",
    "current_platform",
]
