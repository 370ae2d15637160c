"""Application configuration defaults."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from notefinder.utils.files import INDEXABLE_EXTENSIONS

DEFAULT_MAX_INDEX_FILE_SIZE = 500 * 1024

_TRUTHY = re.compile(r"^(true|1|yes)$", re.IGNORECASE)


def _parse_extensions(raw: str | None) -> frozenset[str] | None:
    if not raw:
        return None
    extensions = {part.strip().lstrip(".").lower() for part in raw.split(",")}
    extensions.discard("")
    return frozenset(extensions) or None


@dataclass(slots=True)
class AppConfig:
    use_local: bool = False
    local_path: Path | None = None
    github_owner: str | None = None
    github_repo: str | None = None
    github_token: str | None = None
    branch: str = "main"
    host: str = "127.0.0.1"
    port: int = 5000
    max_index_file_size: int = DEFAULT_MAX_INDEX_FILE_SIZE
    index_extensions: frozenset[str] = field(default_factory=lambda: INDEXABLE_EXTENSIONS)
    tree_extensions: frozenset[str] | None = None
    result_limit: int = 50

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from environment variables.

        When ``environ`` is omitted the process environment is used, after
        loading any ``.env`` file found from the working directory.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        local_path = environ.get("LOCAL_PATH") or None
        return cls(
            use_local=bool(_TRUTHY.match(environ.get("USE_LOCAL", ""))),
            local_path=Path(local_path).expanduser() if local_path else None,
            github_owner=environ.get("GITHUB_OWNER") or None,
            github_repo=environ.get("GITHUB_REPO") or None,
            github_token=environ.get("GITHUB_TOKEN") or None,
            branch=environ.get("DEFAULT_BRANCH") or "main",
            host=environ.get("HOST") or "127.0.0.1",
            port=int(environ.get("PORT") or 5000),
            max_index_file_size=int(
                environ.get("MAX_INDEX_FILE_SIZE") or DEFAULT_MAX_INDEX_FILE_SIZE
            ),
            tree_extensions=_parse_extensions(environ.get("TREE_EXTENSIONS")),
        )

    def problems(self) -> list[str]:
        """Describe configuration errors that will make the source unusable."""
        if self.use_local:
            if self.local_path is None:
                return ["LOCAL_PATH must be set when USE_LOCAL is enabled"]
            if not self.local_path.is_dir():
                return [f"LOCAL_PATH must point to an existing folder. Current: {self.local_path}"]
            return []

        missing = [
            name
            for name, value in (
                ("GITHUB_OWNER", self.github_owner),
                ("GITHUB_REPO", self.github_repo),
                ("GITHUB_TOKEN", self.github_token),
            )
            if not value
        ]
        if missing:
            return [f"Missing required env vars: {', '.join(missing)}"]
        return []
