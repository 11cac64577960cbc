"""Resolver configuration loaded from JSON resources."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

from todo_highlight.services.binary import constants
from todo_highlight.services.binary.archive import ArchiveLimits

_CONFIG_RESOURCE = "resolver.json"
_APP_CONFIG_CACHE: ResolverConfig | None = None


@dataclass(frozen=True)
class ResolverConfig:
    """Structured defaults for locating and fetching the language server."""

    tool_name: str = constants.TOOL_NAME
    github_repo: str = constants.GITHUB_REPO
    api_base_url: str = constants.API_BASE_URL
    request_timeout_seconds: float = constants.REQUEST_TIMEOUT_SECONDS
    archive_limits: ArchiveLimits = field(default_factory=ArchiveLimits)


def get_app_config() -> ResolverConfig:
    """Return the cached resolver configuration."""

    global _APP_CONFIG_CACHE
    if _APP_CONFIG_CACHE is None:
        _APP_CONFIG_CACHE = load_app_config()
    return _APP_CONFIG_CACHE


def reset_app_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _APP_CONFIG_CACHE
    _APP_CONFIG_CACHE = None


def load_app_config(path: str | Path | None = None) -> ResolverConfig:
    """Load configuration from ``path`` or the bundled JSON resource."""

    data = _read_config_data(path)
    defaults = ResolverConfig()
    release_section = data.get("release")
    if not isinstance(release_section, Mapping):
        release_section = {}
    archive_section = data.get("archive")

    return ResolverConfig(
        tool_name=_coerce_name(data.get("tool_name"), default=defaults.tool_name),
        github_repo=_coerce_repo(release_section.get("github_repo"), default=defaults.github_repo),
        api_base_url=_coerce_url(release_section.get("api_base_url"), default=defaults.api_base_url),
        request_timeout_seconds=_coerce_positive_float(
            release_section.get("request_timeout_seconds"),
            default=defaults.request_timeout_seconds,
        ),
        archive_limits=_parse_archive_section(archive_section),
    )


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_archive_section(section: Any) -> ArchiveLimits:
    defaults = ArchiveLimits()
    if not isinstance(section, Mapping):
        return defaults
    return ArchiveLimits(
        max_entries=_coerce_positive_int(section.get("max_entries"), default=defaults.max_entries),
        max_file_size=_coerce_positive_int(section.get("max_file_size"), default=defaults.max_file_size),
        max_total_bytes=_coerce_positive_int(
            section.get("max_total_bytes"), default=defaults.max_total_bytes
        ),
        max_compression_ratio=_coerce_positive_int(
            section.get("max_compression_ratio"), default=defaults.max_compression_ratio
        ),
    )


def _coerce_name(value: Any, *, default: str) -> str:
    if not isinstance(value, str):
        return default
    cleaned = value.strip()
    if not cleaned or "/" in cleaned or "\\" in cleaned:
        return default
    return cleaned


def _coerce_repo(value: Any, *, default: str) -> str:
    if not isinstance(value, str):
        return default
    cleaned = value.strip().strip("/")
    owner, _, name = cleaned.partition("/")
    if not owner or not name or "/" in name:
        return default
    return cleaned


def _coerce_url(value: Any, *, default: str) -> str:
    if not isinstance(value, str):
        return default
    cleaned = value.strip().rstrip("/")
    if not cleaned.startswith(("https://", "http://")):
        return default
    return cleaned


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except ValueError:
            return default
    else:
        return default
    if candidate <= 0:
        return default
    return candidate


def _coerce_positive_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate <= 0:
        return default
    return candidate


__all__ = [
    "ArchiveLimits",
    "ResolverConfig",
    "get_app_config",
    "load_app_config",
    "reset_app_config_cache",
]
