"""Download and archive handling helpers for the binary resolver."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.error import URLError
from urllib.request import Request, urlopen

from todo_highlight.domain.platform import ArchiveFormat
from todo_highlight.services.binary import constants
from todo_highlight.services.binary.hashing import verify_sha256
from todo_highlight.services.binary.models import DownloadOrExtractFailed


_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ArchiveLimits",
    "Downloader",
    "download_and_extract",
    "download_to_file",
    "extract_archive",
    "extract_tar_safely",
    "extract_zip_safely",
]


@dataclass(frozen=True)
class ArchiveLimits:
    """Upper bounds enforced while unpacking downloaded archives."""

    max_entries: int = constants.MAX_ARCHIVE_ENTRIES
    max_file_size: int = constants.MAX_ARCHIVE_FILE_SIZE
    max_total_bytes: int = constants.MAX_ARCHIVE_TOTAL_BYTES
    max_compression_ratio: int = constants.MAX_COMPRESSION_RATIO


class Downloader(Protocol):
    """Callable that fetches ``url`` and unpacks it into ``destination``."""

    def __call__(
        self,
        url: str,
        destination: Path,
        archive_format: ArchiveFormat,
        *,
        expected_sha256: str | None = None,
    ) -> None:
        ...


def download_and_extract(
    url: str,
    destination: Path,
    archive_format: ArchiveFormat,
    *,
    expected_sha256: str | None = None,
    timeout: float = constants.REQUEST_TIMEOUT_SECONDS,
    limits: ArchiveLimits | None = None,
    user_agent: str | None = None,
) -> None:
    """Fetch ``url`` and unpack it into ``destination``.

    ``destination`` is created when missing.  When extraction fails a
    directory created by this call is removed again so a half-written version
    directory is never mistaken for an installed one.
    """

    destination = Path(destination)
    with tempfile.TemporaryDirectory(prefix="todo-highlight-download-") as tmp:
        archive_path = Path(tmp) / f"asset.{archive_format.extension}"
        download_to_file(url, archive_path, timeout=timeout, user_agent=user_agent)
        if expected_sha256:
            verify_sha256(archive_path, expected_sha256)
            _LOGGER.debug("Verified SHA-256 of %s", url)

        created = not destination.exists()
        try:
            extract_archive(archive_path, destination, archive_format, limits=limits)
        except DownloadOrExtractFailed:
            if created:
                shutil.rmtree(destination, ignore_errors=True)
            raise


def download_to_file(
    url: str,
    target_path: Path,
    *,
    timeout: float = constants.REQUEST_TIMEOUT_SECONDS,
    user_agent: str | None = None,
) -> Path:
    _LOGGER.info("Downloading %s", url)
    headers = {"User-Agent": user_agent} if user_agent else {}
    try:
        request = Request(url, headers=headers)
        with urlopen(request, timeout=timeout) as response, target_path.open("wb") as target:  # nosec - HTTPS or local file
            shutil.copyfileobj(response, target)
    except (OSError, URLError, ValueError) as exc:
        raise DownloadOrExtractFailed(f"failed to download file: {exc}") from exc
    _LOGGER.debug("Downloaded %s to %s", url, target_path)
    return target_path


def extract_archive(
    archive_path: Path,
    destination: Path,
    archive_format: ArchiveFormat,
    *,
    limits: ArchiveLimits | None = None,
) -> Path:
    limits = limits or ArchiveLimits()
    _LOGGER.info("Extracting %s archive %s into %s", archive_format.value, archive_path, destination)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        if archive_format is ArchiveFormat.ZIP:
            with zipfile.ZipFile(archive_path) as archive:
                extract_zip_safely(archive, destination, limits)
        else:
            with tarfile.open(archive_path, "r:gz") as archive:
                extract_tar_safely(archive, destination, limits)
    except (OSError, zipfile.BadZipFile, tarfile.TarError, EOFError) as exc:
        raise DownloadOrExtractFailed(f"failed to extract archive: {exc}") from exc
    return destination


def extract_zip_safely(archive: zipfile.ZipFile, target_dir: Path, limits: ArchiveLimits) -> None:
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    for member in archive.infolist():
        name = member.filename
        if not name:
            continue
        processed_entries += 1
        _check_entry_count(processed_entries, limits)
        destination = _safe_destination(root, name)
        if member.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        _check_file_size(name, member.file_size, limits)
        if member.compress_size == 0 and member.file_size > 0:
            _LOGGER.error("Archive member %s reported zero compression size", name)
            raise DownloadOrExtractFailed("Archive contained a suspiciously compressed file")
        if (
            member.compress_size > 0
            and member.file_size > member.compress_size * limits.max_compression_ratio
        ):
            _LOGGER.error(
                "Archive member %s exceeded compression ratio limit (%s > %s)",
                name,
                member.file_size,
                member.compress_size * limits.max_compression_ratio,
            )
            raise DownloadOrExtractFailed("Archive exceeded safe compression ratio")
        total_bytes += member.file_size
        _check_total_bytes(total_bytes, limits)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(member) as source, destination.open("wb") as target:
            shutil.copyfileobj(source, target)
        mode = (member.external_attr >> 16) & 0o777
        if mode:
            os.chmod(destination, mode)
        _LOGGER.debug("Extracted archive member %s to %s", name, destination)

    _LOGGER.info("Extracted %s entries totalling %s bytes", processed_entries, total_bytes)


def extract_tar_safely(archive: tarfile.TarFile, target_dir: Path, limits: ArchiveLimits) -> None:
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    for member in archive.getmembers():
        name = member.name
        if not name or name in {".", "./"}:
            continue
        processed_entries += 1
        _check_entry_count(processed_entries, limits)
        destination = _safe_destination(root, name)
        if member.isdir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        if member.issym():
            link_target = (destination.parent / member.linkname).resolve()
            try:
                link_target.relative_to(root)
            except ValueError:
                raise DownloadOrExtractFailed("Archive contained a link pointing outside the archive")
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(member.linkname, destination)
            continue
        if member.islnk():
            # Hard link names are relative to the archive root, not the member.
            link_source = _safe_destination(root, member.linkname)
            if not link_source.is_file():
                raise DownloadOrExtractFailed(f"Archive member {name} links to a missing file")
            total_bytes += link_source.stat().st_size
            _check_total_bytes(total_bytes, limits)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(link_source, destination)
            os.chmod(destination, member.mode & 0o777 or stat.S_IRUSR | stat.S_IWUSR)
            _LOGGER.debug("Copied hard-linked member %s from %s", name, link_source)
            continue
        if not member.isfile():
            _LOGGER.error("Archive member %s has unsupported type %r", name, member.type)
            raise DownloadOrExtractFailed("Archive contained an unsupported entry type")
        _check_file_size(name, member.size, limits)
        total_bytes += member.size
        _check_total_bytes(total_bytes, limits)
        destination.parent.mkdir(parents=True, exist_ok=True)
        source = archive.extractfile(member)
        if source is None:
            raise DownloadOrExtractFailed(f"Archive member {name} could not be read")
        with source, destination.open("wb") as target:
            shutil.copyfileobj(source, target)
        os.chmod(destination, member.mode & 0o777 or stat.S_IRUSR | stat.S_IWUSR)
        _LOGGER.debug("Extracted archive member %s to %s", name, destination)

    _LOGGER.info("Extracted %s entries totalling %s bytes", processed_entries, total_bytes)


def _safe_destination(root: Path, name: str) -> Path:
    path = Path(name)
    if path.is_absolute() or name.startswith(("/", "\\")):
        raise DownloadOrExtractFailed("Archive contained an absolute path entry")
    destination = (root / path).resolve()
    try:
        destination.relative_to(root)
    except ValueError:
        raise DownloadOrExtractFailed("Archive contained an unsafe relative path")
    return destination


def _check_entry_count(processed_entries: int, limits: ArchiveLimits) -> None:
    if processed_entries > limits.max_entries:
        _LOGGER.error(
            "Archive entry count %s exceeded limit %s",
            processed_entries,
            limits.max_entries,
        )
        raise DownloadOrExtractFailed("Archive contained too many entries")


def _check_file_size(name: str, size: int, limits: ArchiveLimits) -> None:
    if size > limits.max_file_size:
        _LOGGER.error(
            "Archive member %s exceeded file size limit (%s > %s)",
            name,
            size,
            limits.max_file_size,
        )
        raise DownloadOrExtractFailed("Archive contained an oversized file")


def _check_total_bytes(total_bytes: int, limits: ArchiveLimits) -> None:
    if total_bytes > limits.max_total_bytes:
        _LOGGER.error(
            "Archive expanded to %s bytes which exceeds limit %s",
            total_bytes,
            limits.max_total_bytes,
        )
        raise DownloadOrExtractFailed("Archive expanded beyond safe limits")
