"""Helpers for comparing and classifying release versions."""

from __future__ import annotations

import re

from packaging.version import InvalidVersion, Version


__all__ = [
    "compare_versions",
    "is_prerelease_version",
    "version_from_directory",
]


def compare_versions(current_version: str, candidate: str) -> int:
    """Compare ``candidate`` against ``current_version``.

    Returns ``1`` when ``candidate`` is newer, ``-1`` when it is older and ``0``
    when the versions are equivalent.  Release tags usually carry a leading
    ``v`` which is ignored.  Versions that :mod:`packaging` cannot parse are
    compared token by token.
    """

    if candidate == current_version:
        return 0

    try:
        candidate_version = Version(_strip_prefix(candidate))
        current_version_parsed = Version(_strip_prefix(current_version))
    except InvalidVersion:
        return _tokenized_compare(current_version, candidate)

    if candidate_version == current_version_parsed:
        return 0
    if candidate_version > current_version_parsed:
        return 1
    return -1


def is_prerelease_version(version: str) -> bool:
    """Return ``True`` when ``version`` represents a pre-release build."""

    try:
        parsed = Version(_strip_prefix(version))
    except InvalidVersion:
        return _looks_like_prerelease(version)

    return bool(parsed.is_prerelease or parsed.is_devrelease)


def version_from_directory(directory_name: str, tool_name: str) -> str | None:
    """Return the version encoded in a ``<tool>-<version>`` directory name."""

    prefix = f"{tool_name}-"
    if not directory_name.startswith(prefix):
        return None
    version = directory_name[len(prefix):]
    return version or None


def _strip_prefix(version: str) -> str:
    cleaned = version.strip()
    if cleaned[:1] in {"v", "V"}:
        cleaned = cleaned[1:]
    return cleaned


def _tokenized_compare(current_version: str, candidate: str) -> int:
    def tokenize(version: str) -> list[tuple[int, object]]:
        tokens: list[tuple[int, object]] = []
        for raw in _strip_prefix(version).replace("-", ".").replace("+", ".").split("."):
            if not raw:
                continue
            if raw.isdigit():
                tokens.append((0, int(raw)))
            else:
                tokens.append((1, raw.lower()))
        return tokens

    current_tokens = tokenize(current_version)
    candidate_tokens = tokenize(candidate)
    length = max(len(current_tokens), len(candidate_tokens))
    for index in range(length):
        current_token = current_tokens[index] if index < len(current_tokens) else (0, 0)
        candidate_token = candidate_tokens[index] if index < len(candidate_tokens) else (0, 0)
        if candidate_token != current_token:
            return 1 if candidate_token > current_token else -1
    return 0


def _looks_like_prerelease(version: str) -> bool:
    markers = ("dev", "alpha", "beta", "rc", "pre", "preview", "nightly")
    tokens = [token for token in re.split(r"[.\-+_]", version.lower()) if token]
    for token in tokens:
        if any(token.startswith(marker) for marker in markers):
            return True
    return False
