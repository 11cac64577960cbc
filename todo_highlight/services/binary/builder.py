"""Helpers for constructing the binary resolver."""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Callable

from todo_highlight.app import config as app_config
from todo_highlight.app.version import user_agent
from todo_highlight.domain.platform import Platform, current_platform
from todo_highlight.services.binary.archive import Downloader, download_and_extract
from todo_highlight.services.binary.environment import EnvironmentLookup
from todo_highlight.services.binary.providers import GitHubReleaseProvider, ReleaseProvider
from todo_highlight.services.binary.resolver import BinaryResolver
from todo_highlight.services.binary.status import StatusReporter


_LOGGER = logging.getLogger(__name__)


def build_release_provider(
    config: app_config.ResolverConfig | None = None,
    *,
    token: str | None = None,
) -> ReleaseProvider:
    """Return the GitHub provider configured from ``config``."""

    config = config or app_config.get_app_config()
    return GitHubReleaseProvider(
        config.api_base_url,
        timeout=config.request_timeout_seconds,
        token=token,
        user_agent=user_agent(),
    )


def build_downloader(config: app_config.ResolverConfig | None = None) -> Downloader:
    """Return :func:`download_and_extract` bound to the configured limits."""

    config = config or app_config.get_app_config()
    return functools.partial(
        download_and_extract,
        timeout=config.request_timeout_seconds,
        limits=config.archive_limits,
        user_agent=user_agent(),
    )


def build_binary_resolver(
    working_dir: Path | str | None = None,
    *,
    provider: ReleaseProvider | None = None,
    environment: EnvironmentLookup | None = None,
    reporter: StatusReporter | None = None,
    platform: Callable[[], Platform] | None = None,
    downloader: Downloader | None = None,
    config: app_config.ResolverConfig | None = None,
    tool_id: str | None = None,
) -> BinaryResolver:
    """Construct a :class:`BinaryResolver` wired to the configured defaults.

    Hosts call this once per language server and keep the returned instance
    for the lifetime of the process so its cached path survives between
    launches.
    """

    config = config or app_config.get_app_config()
    resolved_dir = Path(working_dir) if working_dir is not None else Path(".")
    _LOGGER.debug(
        "Building resolver for %s (repo=%s, working_dir=%s)",
        config.tool_name,
        config.github_repo,
        resolved_dir,
    )
    return BinaryResolver(
        provider or build_release_provider(config),
        working_dir=resolved_dir,
        tool_name=config.tool_name,
        github_repo=config.github_repo,
        tool_id=tool_id,
        platform=platform or current_platform,
        environment=environment,
        reporter=reporter,
        downloader=downloader or build_downloader(config),
    )


__all__ = [
    "build_binary_resolver",
    "build_downloader",
    "build_release_provider",
]
