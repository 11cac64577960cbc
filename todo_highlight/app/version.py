from __future__ import annotations

"""Plugin version helpers."""

from functools import lru_cache
from importlib import metadata, resources

_DISTRIBUTION_NAME = "todo-highlight-resolver"
_FALLBACK_VERSION = "0.0.0-dev"


def _version_from_metadata() -> str | None:
    try:
        version = metadata.version(_DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return None
    return _normalize(version) or None


def _read_version_file() -> str | None:
    try:
        text = resources.files(__package__).joinpath("VERSION").read_text(encoding="utf-8")
    except (FileNotFoundError, ModuleNotFoundError):
        return None
    return _normalize(text) or None


def _normalize(raw_version: str) -> str:
    version = raw_version.strip()
    if version.startswith("v"):
        version = version[1:]
    return version


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Return the plugin version.

    The order of precedence is:
    1. Installed distribution metadata.
    2. Embedded ``VERSION`` file shipped next to this module.
    3. A fallback development version string.
    """

    for resolver in (_version_from_metadata, _read_version_file):
        version = resolver()
        if version:
            return version
    return _FALLBACK_VERSION


def user_agent() -> str:
    """Return the ``User-Agent`` sent with release queries and downloads."""

    return f"todo-highlight/{get_app_version()}"


__all__ = ["get_app_version", "user_agent"]
