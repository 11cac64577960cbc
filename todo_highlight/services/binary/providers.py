"""Release provider implementations."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol
from urllib.error import URLError
from urllib.request import Request, urlopen

from todo_highlight.services.binary.constants import (
    API_BASE_URL,
    GITHUB_ACCEPT_HEADER,
    LOCAL_RELEASE_METADATA,
    REQUEST_TIMEOUT_SECONDS,
)
from todo_highlight.services.binary.hashing import parse_digest
from todo_highlight.services.binary.models import (
    ReleaseAsset,
    ReleaseInfo,
    ReleaseOptions,
    ReleaseQueryFailed,
)
from todo_highlight.services.binary.versioning import is_prerelease_version


_LOGGER = logging.getLogger(__name__)


class ReleaseProvider(Protocol):
    """Protocol describing release metadata providers."""

    def latest_release(self, repo: str, options: ReleaseOptions) -> ReleaseInfo:
        """Return the newest release of ``repo`` matching ``options``.

        Raises :class:`ReleaseQueryFailed` when the source cannot be queried
        or holds no matching release.
        """


class GitHubReleaseProvider:
    """Fetch release metadata from the GitHub Releases API."""

    def __init__(
        self,
        api_base_url: str = API_BASE_URL,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        token: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout
        self._token = token
        self._user_agent = user_agent

    def latest_release(self, repo: str, options: ReleaseOptions) -> ReleaseInfo:
        url = f"{self._api_base_url}/repos/{repo}/releases"
        payload = self._request_json(url)
        if not isinstance(payload, list):
            raise ReleaseQueryFailed(f"unexpected response from GitHub releases endpoint {url}")

        for entry in payload:
            if not isinstance(entry, dict):
                continue
            if not self._is_compatible(entry, options):
                continue
            info = self._build_release_info(entry)
            if info is None:
                continue
            if options.require_assets and not info.assets:
                _LOGGER.debug("Skipping release %s without downloadable assets", info.version)
                continue
            _LOGGER.info(
                "GitHub release %s of %s includes %s asset(s)",
                info.version,
                repo,
                len(info.assets),
            )
            return info

        raise ReleaseQueryFailed(
            f"no release found for {repo} "
            f"(require_assets={options.require_assets}, pre_release={options.pre_release})"
        )

    def _request_json(self, url: str) -> Any:
        headers = {"Accept": GITHUB_ACCEPT_HEADER}
        if self._user_agent:
            headers["User-Agent"] = self._user_agent
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            request = Request(url, headers=headers)
            with urlopen(request, timeout=self._timeout) as response:  # nosec - GitHub API over HTTPS
                return json.load(response)
        except (OSError, URLError, ValueError) as exc:
            _LOGGER.debug("Failed to query GitHub releases endpoint %s: %s", url, exc)
            raise ReleaseQueryFailed(f"failed to fetch latest release from {url}: {exc}") from exc

    def _is_compatible(self, release: dict, options: ReleaseOptions) -> bool:
        if release.get("draft"):
            return False

        version = _release_version(release)
        if not version:
            return False

        if options.pre_release:
            return True
        if release.get("prerelease"):
            return False
        if is_prerelease_version(version):
            _LOGGER.debug("Skipping release %s whose tag looks like a pre-release", version)
            return False
        return True

    def _build_release_info(self, data: dict) -> ReleaseInfo | None:
        version = _release_version(data)
        if not version:
            return None
        return ReleaseInfo(
            version=version,
            assets=tuple(self._parse_assets(data.get("assets") or [])),
            pre_release=bool(data.get("prerelease")),
        )

    def _parse_assets(self, assets: Iterable[Any]) -> Iterable[ReleaseAsset]:
        for asset in assets:
            if not isinstance(asset, dict):
                continue
            name = str(asset.get("name") or "").strip()
            url = asset.get("browser_download_url")
            if not name or not isinstance(url, str) or not url.strip():
                _LOGGER.debug("Ignoring release asset without a name or download URL: %r", name)
                continue
            yield ReleaseAsset(name=name, download_url=url.strip(), digest=parse_digest(asset.get("digest")))


class LocalFolderReleaseProvider:
    """Serve release metadata from a local directory.

    The folder holds a ``release.json`` file and the asset archives it lists::

        {"version": "v1.2.0", "assets": ["todo-highlight-lsp-linux-amd64.tar.gz"],
         "sha256": {"todo-highlight-lsp-linux-amd64.tar.gz": "..."}}

    Assets are handed out as ``file://`` URLs so the regular download path
    can fetch them.
    """

    def __init__(self, folder: Path) -> None:
        self._folder = Path(folder)

    def latest_release(self, repo: str, options: ReleaseOptions) -> ReleaseInfo:
        metadata_path = self._folder / LOCAL_RELEASE_METADATA
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            _LOGGER.debug("Failed to read local release metadata: %s", exc)
            raise ReleaseQueryFailed(f"failed to read local release metadata {metadata_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ReleaseQueryFailed(f"local release metadata {metadata_path} is not an object")

        version = str(data.get("version", "")).strip()
        if not version:
            raise ReleaseQueryFailed(f"local release metadata {metadata_path} has no version")

        pre_release = bool(data.get("pre_release"))
        if pre_release and not options.pre_release:
            raise ReleaseQueryFailed(f"local release {version} is a pre-release")

        digests = data.get("sha256") if isinstance(data.get("sha256"), dict) else {}
        assets = tuple(self._collect_assets(data.get("assets") or [], digests))
        if options.require_assets and not assets:
            raise ReleaseQueryFailed(f"local release {version} has no assets")

        _LOGGER.info(
            "Local release %s will supply %s asset(s) for %s",
            version,
            len(assets),
            repo,
        )
        return ReleaseInfo(version=version, assets=assets, pre_release=pre_release)

    def _collect_assets(self, names: Iterable[Any], digests: dict) -> Iterable[ReleaseAsset]:
        for raw_name in names:
            name = str(raw_name).strip()
            if not name:
                continue
            asset_path = self._folder / name
            if not asset_path.is_file():
                _LOGGER.debug("Local release asset missing: %s", asset_path)
                continue
            yield ReleaseAsset(
                name=name,
                download_url=asset_path.resolve().as_uri(),
                digest=parse_digest(digests.get(name)),
            )


def _release_version(release: dict) -> str:
    return str(release.get("tag_name") or release.get("name") or "").strip()


__all__ = [
    "GitHubReleaseProvider",
    "LocalFolderReleaseProvider",
    "ReleaseProvider",
]
