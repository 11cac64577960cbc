from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path

import pytest

from todo_highlight.domain.platform import Architecture, ArchiveFormat, OperatingSystem, Platform
from todo_highlight.services.binary import (
    BinaryResolver,
    DirectoryEntryFailed,
    DirectoryListFailed,
    DownloadOrExtractFailed,
    InstallStatusKind,
    NoMatchingAsset,
    ReleaseAsset,
    ReleaseInfo,
    ReleaseOptions,
    ReleaseQueryFailed,
    ResolutionError,
)
from tests.unit.binary_resolver_test_utils import (
    CountingDownloader,
    FakeEnvironment,
    RecordingStatusReporter,
    StaticReleaseProvider,
    build_release,
    build_release_archive,
    install_version,
)

LINUX = Platform(OperatingSystem.LINUX, Architecture.X86_64)
MAC_ARM = Platform(OperatingSystem.MAC, Architecture.AARCH64)
WINDOWS_X86 = Platform(OperatingSystem.WINDOWS, Architecture.X86)


def _make_resolver(
    provider: StaticReleaseProvider,
    work_dir: Path,
    *,
    platform: Platform = LINUX,
    downloader: CountingDownloader | None = None,
    reporter: RecordingStatusReporter | None = None,
) -> BinaryResolver:
    return BinaryResolver(
        provider,
        working_dir=work_dir,
        platform=lambda: platform,
        environment=FakeEnvironment(),
        reporter=reporter or RecordingStatusReporter(),
        downloader=downloader or CountingDownloader(),
    )


def test_resolve_installs_latest_release_into_version_directory(
    work_dir: Path, releases_dir: Path
) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    provider = StaticReleaseProvider(release)
    reporter = RecordingStatusReporter()
    resolver = _make_resolver(provider, work_dir, reporter=reporter)

    path = resolver.resolve()

    expected = work_dir / "todo-highlight-lsp-v1.2.0" / "todo-highlight-lsp"
    assert path == str(expected)
    assert expected.is_file()
    assert reporter.kinds == [InstallStatusKind.DOWNLOADING, InstallStatusKind.NONE]
    assert resolver.cached_binary_path == path
    assert provider.calls == [
        ("placintaalexandru/zed-todo-highlighter", ReleaseOptions(require_assets=True, pre_release=False))
    ]


def test_resolve_returns_path_relative_to_default_working_directory(
    work_dir: Path, releases_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    monkeypatch.chdir(work_dir)
    resolver = BinaryResolver(
        StaticReleaseProvider(release),
        platform=lambda: LINUX,
        environment=FakeEnvironment(),
        reporter=RecordingStatusReporter(),
    )

    path = resolver.resolve()

    assert path == os.path.join("todo-highlight-lsp-v1.2.0", "todo-highlight-lsp")
    assert Path(path).is_file()


def test_second_check_reuses_installed_version_without_downloading(
    work_dir: Path, releases_dir: Path
) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    downloader = CountingDownloader()
    reporter = RecordingStatusReporter()
    resolver = _make_resolver(
        StaticReleaseProvider(release), work_dir, downloader=downloader, reporter=reporter
    )

    first = resolver.check_for_update_or_install()
    second = resolver.check_for_update_or_install()

    assert first == second
    assert len(downloader.calls) == 1
    assert reporter.kinds == [InstallStatusKind.DOWNLOADING, InstallStatusKind.NONE]


def test_install_prunes_every_other_working_directory_entry(
    work_dir: Path, releases_dir: Path
) -> None:
    install_version(work_dir, "todo-highlight-lsp-v1.0.0", "todo-highlight-lsp")
    (work_dir / "unrelated" / "nested").mkdir(parents=True)
    (work_dir / "stale.txt").write_text("left over", encoding="utf-8")
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    resolver = _make_resolver(StaticReleaseProvider(release), work_dir)

    resolver.check_for_update_or_install()

    assert [entry.name for entry in work_dir.iterdir()] == ["todo-highlight-lsp-v1.2.0"]


def test_prune_ignores_entries_that_cannot_be_removed(
    work_dir: Path, releases_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    install_version(work_dir, "todo-highlight-lsp-v1.0.0", "todo-highlight-lsp")
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    resolver = _make_resolver(StaticReleaseProvider(release), work_dir)
    real_rmtree = shutil.rmtree

    def refuse_rmtree(path, *args, **kwargs):
        if Path(path).name == "todo-highlight-lsp-v1.0.0":
            raise PermissionError(f"cannot remove {path}")
        return real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(shutil, "rmtree", refuse_rmtree)

    path = resolver.check_for_update_or_install()

    assert Path(path).is_file()
    assert (work_dir / "todo-highlight-lsp-v1.0.0").exists()


def test_asset_selection_matches_platform_tokens(work_dir: Path, releases_dir: Path) -> None:
    darwin = build_release_archive(
        releases_dir,
        "todo-highlight-lsp-darwin-arm64.tar.gz",
        ArchiveFormat.GZIP_TAR,
        {"todo-highlight-lsp": b"darwin build"},
    )
    linux = build_release_archive(
        releases_dir,
        "todo-highlight-lsp-linux-amd64.tar.gz",
        ArchiveFormat.GZIP_TAR,
        {"todo-highlight-lsp": b"linux build"},
    )
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(
            ReleaseAsset(darwin.name, darwin.as_uri()),
            ReleaseAsset(linux.name, linux.as_uri()),
        ),
    )
    downloader = CountingDownloader()
    resolver = _make_resolver(
        StaticReleaseProvider(release), work_dir, platform=MAC_ARM, downloader=downloader
    )

    path = resolver.check_for_update_or_install()

    assert [call[0] for call in downloader.calls] == [darwin.as_uri()]
    assert downloader.calls[0][2] is ArchiveFormat.GZIP_TAR
    assert Path(path).read_bytes() == b"darwin build"


def test_missing_platform_asset_fails_with_no_matching_asset(work_dir: Path) -> None:
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(
            ReleaseAsset("todo-highlight-lsp-darwin-arm64.tar.gz", "https://example.invalid/darwin"),
            ReleaseAsset("todo-highlight-lsp-linux-amd64.tar.gz", "https://example.invalid/linux"),
        ),
    )
    downloader = CountingDownloader()
    reporter = RecordingStatusReporter()
    resolver = _make_resolver(
        StaticReleaseProvider(release),
        work_dir,
        platform=WINDOWS_X86,
        downloader=downloader,
        reporter=reporter,
    )

    with pytest.raises(NoMatchingAsset, match="todo-highlight-lsp-windows-amd64.zip"):
        resolver.resolve()

    assert downloader.calls == []
    assert reporter.kinds == [InstallStatusKind.DOWNLOADING, InstallStatusKind.FAILED]
    failed = reporter.reports[-1][1]
    assert failed.message == "no asset found matching 'todo-highlight-lsp-windows-amd64.zip'"
    assert list(work_dir.iterdir()) == []


def test_windows_install_uses_zip_and_suffixed_binary(work_dir: Path, releases_dir: Path) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        WINDOWS_X86,
        "todo-highlight-lsp.ext",
        asset_name="todo-highlight-lsp-windows-amd64.zip",
    )
    downloader = CountingDownloader()
    resolver = _make_resolver(
        StaticReleaseProvider(release), work_dir, platform=WINDOWS_X86, downloader=downloader
    )

    path = resolver.check_for_update_or_install()

    assert path == str(work_dir / "todo-highlight-lsp-v1.2.0" / "todo-highlight-lsp.ext")
    assert downloader.calls[0][2] is ArchiveFormat.ZIP


def test_release_query_failure_is_reported_and_raised(work_dir: Path) -> None:
    reporter = RecordingStatusReporter()
    resolver = _make_resolver(
        StaticReleaseProvider(error=ReleaseQueryFailed("rate limited")), work_dir, reporter=reporter
    )

    with pytest.raises(ResolutionError, match="rate limited"):
        resolver.resolve()

    assert reporter.kinds == [InstallStatusKind.FAILED]
    assert reporter.reports[0][1].message == "rate limited"
    assert resolver.cached_binary_path is None


def test_download_failure_is_reported_and_not_cached(work_dir: Path) -> None:
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(ReleaseAsset("todo-highlight-lsp-linux-amd64.tar.gz", "https://example.invalid/a"),),
    )
    downloader = CountingDownloader(error=DownloadOrExtractFailed("failed to download file: offline"))
    reporter = RecordingStatusReporter()
    resolver = _make_resolver(
        StaticReleaseProvider(release), work_dir, downloader=downloader, reporter=reporter
    )

    with pytest.raises(DownloadOrExtractFailed):
        resolver.resolve()

    assert reporter.kinds == [InstallStatusKind.DOWNLOADING, InstallStatusKind.FAILED]
    assert reporter.reports[-1][1].message == "failed to download file: offline"
    assert resolver.cached_binary_path is None


def test_archive_without_expected_binary_is_rejected(work_dir: Path, releases_dir: Path) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "some-other-binary",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    resolver = _make_resolver(StaticReleaseProvider(release), work_dir)

    with pytest.raises(DownloadOrExtractFailed, match="did not contain todo-highlight-lsp"):
        resolver.check_for_update_or_install()

    assert not (work_dir / "todo-highlight-lsp-v1.2.0").exists()


def test_digest_mismatch_aborts_install(work_dir: Path, releases_dir: Path) -> None:
    archive = build_release_archive(
        releases_dir,
        "todo-highlight-lsp-linux-amd64.tar.gz",
        ArchiveFormat.GZIP_TAR,
        {"todo-highlight-lsp": b"payload"},
    )
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(ReleaseAsset(archive.name, archive.as_uri(), digest="0" * 64),),
    )
    resolver = _make_resolver(StaticReleaseProvider(release), work_dir)

    with pytest.raises(DownloadOrExtractFailed, match="hash mismatch"):
        resolver.check_for_update_or_install()

    assert not (work_dir / "todo-highlight-lsp-v1.2.0").exists()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_installed_binary_is_made_executable(work_dir: Path) -> None:
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(ReleaseAsset("todo-highlight-lsp-linux-amd64.tar.gz", "https://example.invalid/a"),),
    )

    def extract_without_modes(url, destination, archive_format, *, expected_sha256=None):
        destination.mkdir(parents=True)
        binary = destination / "todo-highlight-lsp"
        binary.write_bytes(b"payload")
        binary.chmod(0o644)

    resolver = BinaryResolver(
        StaticReleaseProvider(release),
        working_dir=work_dir,
        platform=lambda: LINUX,
        environment=FakeEnvironment(),
        reporter=RecordingStatusReporter(),
        downloader=extract_without_modes,
    )

    path = Path(resolver.check_for_update_or_install())

    assert path.stat().st_mode & stat.S_IXUSR


def test_unlistable_working_directory_fails_with_directory_list_failed(
    work_dir: Path, releases_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    resolver = _make_resolver(StaticReleaseProvider(release), work_dir)
    real_scandir = os.scandir

    def failing_scandir(path="."):
        if isinstance(path, (str, os.PathLike)) and Path(path) == work_dir:
            raise PermissionError("listing denied")
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", failing_scandir)

    with pytest.raises(DirectoryListFailed, match="failed to list working directory"):
        resolver.check_for_update_or_install()


def test_unreadable_directory_entry_fails_with_directory_entry_failed(
    work_dir: Path, releases_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    release = build_release(
        releases_dir,
        "v1.2.0",
        LINUX,
        "todo-highlight-lsp",
        asset_name="todo-highlight-lsp-linux-amd64.tar.gz",
    )
    resolver = _make_resolver(StaticReleaseProvider(release), work_dir)
    real_scandir = os.scandir

    class BrokenIterator:
        def __enter__(self) -> "BrokenIterator":
            return self

        def __exit__(self, *exc_info) -> None:
            return None

        def __iter__(self) -> "BrokenIterator":
            return self

        def __next__(self):
            raise OSError("entry vanished")

    def broken_scandir(path="."):
        if isinstance(path, (str, os.PathLike)) and Path(path) == work_dir:
            return BrokenIterator()
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", broken_scandir)

    with pytest.raises(DirectoryEntryFailed, match="failed to load directory entry"):
        resolver.check_for_update_or_install()


def test_downloader_os_error_is_reported_as_failed_install(work_dir: Path) -> None:
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(ReleaseAsset("todo-highlight-lsp-linux-amd64.tar.gz", "https://example.invalid/a"),),
    )
    reporter = RecordingStatusReporter()
    resolver = _make_resolver(
        StaticReleaseProvider(release),
        work_dir,
        downloader=CountingDownloader(error=ConnectionResetError("connection reset")),
        reporter=reporter,
    )

    with pytest.raises(DownloadOrExtractFailed, match="connection reset") as excinfo:
        resolver.resolve()

    assert isinstance(excinfo.value, ResolutionError)
    assert isinstance(excinfo.value.__cause__, ConnectionResetError)
    assert reporter.kinds == [InstallStatusKind.DOWNLOADING, InstallStatusKind.FAILED]
    assert "connection reset" in reporter.reports[-1][1].message


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_chmod_failure_is_reported_as_failed_install(
    work_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    release = ReleaseInfo(
        version="v1.2.0",
        assets=(ReleaseAsset("todo-highlight-lsp-linux-amd64.tar.gz", "https://example.invalid/a"),),
    )

    def extract_read_only(url, destination, archive_format, *, expected_sha256=None):
        destination.mkdir(parents=True)
        binary = destination / "todo-highlight-lsp"
        binary.write_bytes(b"payload")
        os.chmod(binary, 0o644)

    def refuse_chmod(self, mode, *args, **kwargs):
        raise PermissionError("read-only filesystem")

    reporter = RecordingStatusReporter()
    resolver = BinaryResolver(
        StaticReleaseProvider(release),
        working_dir=work_dir,
        platform=lambda: LINUX,
        environment=FakeEnvironment(),
        reporter=reporter,
        downloader=extract_read_only,
    )
    monkeypatch.setattr(Path, "chmod", refuse_chmod)

    with pytest.raises(DownloadOrExtractFailed, match="failed to make todo-highlight-lsp executable"):
        resolver.resolve()

    assert reporter.kinds == [InstallStatusKind.DOWNLOADING, InstallStatusKind.FAILED]
