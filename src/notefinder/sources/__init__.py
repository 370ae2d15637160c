"""Tree sources: where mirrored folders and files come from."""

from __future__ import annotations

from notefinder.config import AppConfig
from notefinder.sources.base import SourceAdapter, SourceUnavailableError
from notefinder.sources.github import GitHubSource
from notefinder.sources.local import LocalSource

__all__ = [
    "GitHubSource",
    "LocalSource",
    "SourceAdapter",
    "SourceUnavailableError",
    "create_source",
]


def create_source(config: AppConfig) -> SourceAdapter:
    """Pick the source variant described by ``config``."""
    if config.use_local and config.local_path is not None:
        return LocalSource(config.local_path)
    return GitHubSource(
        config.github_owner or "",
        config.github_repo or "",
        branch=config.branch,
        token=config.github_token,
    )
