"""Locate, install and update the todo-highlight language server binary."""

from __future__ import annotations

import functools
import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Callable

from todo_highlight.domain.platform import Platform, asset_name, bin_name, current_platform
from todo_highlight.services.binary.archive import Downloader, download_and_extract
from todo_highlight.services.binary.constants import GITHUB_REPO, TOOL_NAME
from todo_highlight.services.binary.environment import EnvironmentLookup, PathEnvironment
from todo_highlight.services.binary.models import (
    DirectoryEntryFailed,
    DirectoryListFailed,
    DownloadOrExtractFailed,
    InstallStatus,
    LanguageServerCommand,
    NoMatchingAsset,
    ReleaseOptions,
    ResolutionError,
)
from todo_highlight.services.binary.providers import ReleaseProvider
from todo_highlight.services.binary.status import LoggingStatusReporter, StatusReporter
from todo_highlight.services.binary.versioning import compare_versions, version_from_directory


_LOGGER = logging.getLogger(__name__)

_RELEASE_OPTIONS = ReleaseOptions(require_assets=True, pre_release=False)


class BinaryResolver:
    """Return a usable language server executable, installing it on demand.

    Resolution order: the cached path, the host environment's search path,
    a previously extracted version directory inside ``working_dir`` and
    finally a fresh install from the latest release.

    The resolver is not thread-safe.  Hosts that may call it concurrently
    must serialise access to the instance and its working directory.
    """

    def __init__(
        self,
        provider: ReleaseProvider,
        *,
        working_dir: Path | str = Path("."),
        tool_name: str = TOOL_NAME,
        github_repo: str = GITHUB_REPO,
        tool_id: str | None = None,
        platform: Callable[[], Platform] = current_platform,
        environment: EnvironmentLookup | None = None,
        reporter: StatusReporter | None = None,
        downloader: Downloader | None = None,
    ) -> None:
        self._provider = provider
        self._working_dir = Path(working_dir)
        self._tool_name = tool_name
        self._github_repo = github_repo
        self._tool_id = tool_id or tool_name
        self._platform = platform
        self._environment = environment or PathEnvironment()
        self._reporter = reporter or LoggingStatusReporter()
        self._downloader = downloader or download_and_extract
        self.cached_binary_path: str | None = None

    @property
    def tool_id(self) -> str:
        return self._tool_id

    @property
    def working_dir(self) -> Path:
        return self._working_dir

    def resolve(self) -> str:
        """Return the path of a usable binary.

        Hard failures are reported to the host as a failed install status and
        re-raised as :class:`ResolutionError`.
        """

        try:
            return self._resolve()
        except ResolutionError as exc:
            _LOGGER.error("Unable to resolve %s: %s", self._tool_name, exc)
            self._report(InstallStatus.failed(str(exc)))
            raise

    def language_server_command(self) -> LanguageServerCommand:
        """Return the command the host should spawn to start the server."""

        return LanguageServerCommand(command=self.resolve())

    def check_for_update_or_install(self) -> str:
        """Make sure the latest release is extracted and return its binary path."""

        platform = self._platform()
        release = self._provider.latest_release(self._github_repo, _RELEASE_OPTIONS)

        version_dir = f"{self._tool_name}-{release.version}"
        binary_name = bin_name(platform)
        version_binary_path = self._working_dir / version_dir / binary_name

        if _is_file(version_binary_path):
            _LOGGER.debug(
                "%s %s is already installed at %s",
                self._tool_name,
                release.version,
                version_binary_path,
            )
            return str(version_binary_path)

        self._report(InstallStatus.downloading())

        expected_asset = asset_name(self._tool_name, platform)
        asset = release.find_asset(expected_asset)
        if asset is None:
            raise NoMatchingAsset(f"no asset found matching {expected_asset!r}")

        _LOGGER.info("Installing %s %s from %s", self._tool_name, release.version, asset.name)
        try:
            self._downloader(
                asset.download_url,
                self._working_dir / version_dir,
                platform.archive_format,
                expected_sha256=asset.digest,
            )
        except OSError as exc:
            raise DownloadOrExtractFailed(f"failed to download file: {exc}") from exc
        self._finalise_binary(version_binary_path, platform)
        self._prune_stale_entries(version_dir)

        self._report(InstallStatus.none())
        _LOGGER.info("Installed %s %s at %s", self._tool_name, release.version, version_binary_path)
        return str(version_binary_path)

    def find_installed(self) -> str | None:
        """Return the binary inside a previously extracted version directory.

        When several directories qualify the highest version wins.
        """

        binary_name = bin_name(self._platform())
        try:
            entries = list(os.scandir(self._working_dir))
        except OSError as exc:
            _LOGGER.debug("Could not scan %s for installed versions: %s", self._working_dir, exc)
            return None

        candidates: list[tuple[str, Path]] = []
        for entry in entries:
            try:
                if not entry.is_dir():
                    continue
            except OSError:
                continue
            binary_path = self._working_dir / entry.name / binary_name
            if _is_file(binary_path):
                version = version_from_directory(entry.name, self._tool_name) or "0"
                candidates.append((version, binary_path))

        if not candidates:
            return None

        candidates.sort(key=lambda candidate: str(candidate[1]))
        # Ascending: compare_versions(b, a) is positive when a is the newer one.
        candidates.sort(key=functools.cmp_to_key(lambda a, b: compare_versions(b[0], a[0])))
        return str(candidates[-1][1])

    def _resolve(self) -> str:
        cached = self._validated_cache()
        if cached is not None:
            self._report(InstallStatus.none())
            return cached

        found = self._environment.which(bin_name(self._platform()))
        if found:
            _LOGGER.info("Using %s from the environment at %s", self._tool_name, found)
            return found

        installed = self.find_installed()
        if installed is not None:
            path = self._probe_for_update(installed)
            self.cached_binary_path = path
            return path

        path = self.check_for_update_or_install()
        self.cached_binary_path = path
        return path

    def _validated_cache(self) -> str | None:
        cached = self.cached_binary_path
        if cached is None:
            return None
        if _is_file(Path(cached)):
            return cached
        _LOGGER.debug("Cached binary %s no longer exists; resolving again", cached)
        self.cached_binary_path = None
        return None

    def _probe_for_update(self, installed: str) -> str:
        try:
            updated = self.check_for_update_or_install()
        except ResolutionError as exc:
            _LOGGER.warning("Update check failed, keeping %s: %s", installed, exc)
        except Exception:  # pragma: no cover - unexpected collaborator failure
            _LOGGER.exception("Unexpected error while checking for %s updates", self._tool_name)
        else:
            if updated != installed:
                _LOGGER.info("Updated %s from %s to %s", self._tool_name, installed, updated)
            return updated

        self._report(InstallStatus.none())
        if not _is_file(Path(installed)):
            raise DownloadOrExtractFailed(
                f"installed binary {installed} disappeared during a failed update"
            )
        return installed

    def _finalise_binary(self, binary_path: Path, platform: Platform) -> None:
        if not _is_file(binary_path):
            shutil.rmtree(binary_path.parent, ignore_errors=True)
            raise DownloadOrExtractFailed(
                f"downloaded archive did not contain {binary_path.name}"
            )
        if platform.is_windows:
            return
        executable = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
        try:
            mode = binary_path.stat().st_mode
            if mode & executable != executable:
                binary_path.chmod(mode | executable)
        except OSError as exc:
            raise DownloadOrExtractFailed(
                f"failed to make {binary_path.name} executable: {exc}"
            ) from exc

    def _prune_stale_entries(self, version_dir: str) -> None:
        try:
            iterator = os.scandir(self._working_dir)
        except OSError as exc:
            raise DirectoryListFailed(f"failed to list working directory {exc}") from exc

        stale: list[tuple[str, bool]] = []
        with iterator:
            while True:
                try:
                    entry = next(iterator)
                except StopIteration:
                    break
                except OSError as exc:
                    raise DirectoryEntryFailed(f"failed to load directory entry {exc}") from exc
                if entry.name == version_dir:
                    continue
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError as exc:
                    raise DirectoryEntryFailed(f"failed to load directory entry {exc}") from exc
                stale.append((entry.path, is_dir))

        for path, is_dir in stale:
            try:
                if is_dir:
                    shutil.rmtree(path)
                else:
                    os.unlink(path)
            except OSError as exc:
                _LOGGER.debug("Could not remove stale entry %s: %s", path, exc)
            else:
                _LOGGER.debug("Removed stale entry %s", path)

    def _report(self, status: InstallStatus) -> None:
        self._reporter.report(self._tool_id, status)


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


__all__ = ["BinaryResolver"]
