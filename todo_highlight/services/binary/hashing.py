"""Hashing helpers for downloaded asset verification."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

from todo_highlight.services.binary.models import DownloadOrExtractFailed

_SHA256_PATTERN = re.compile(r"[0-9a-f]{64}")


def calculate_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as source:
        for chunk in iter(lambda: source.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def parse_digest(raw: object) -> str | None:
    """Normalise a ``sha256:<hex>`` (or bare hex) digest, ``None`` if unusable."""

    if not isinstance(raw, str):
        return None
    digest = raw.strip()
    if not digest:
        return None
    algorithm: str | None = None
    value = digest
    if ":" in digest:
        algorithm, value = digest.split(":", 1)
    elif "=" in digest:
        algorithm, value = digest.split("=", 1)
    if algorithm is not None and algorithm.strip().lower() != "sha256":
        return None
    value = value.strip().lower()
    if not _SHA256_PATTERN.fullmatch(value):
        return None
    return value


def verify_sha256(path: Path, expected: str) -> None:
    actual = calculate_sha256(path)
    if actual.lower() != expected.lower():
        raise DownloadOrExtractFailed(
            f"failed to download file: hash mismatch, expected {expected} but received {actual}"
        )
