"""Source adapter over a local directory tree."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import List

from notefinder.models import SourceEntry
from notefinder.sources.base import SourceAdapter, SourceUnavailableError
from notefinder.utils.files import join_path

# Directories never worth mirroring; hidden directories are skipped as well.
SKIP_DIRS = frozenset(
    {".git", "node_modules", "__pycache__", ".next", "dist", "build", ".venv", "venv"}
)


def _skip_dir(name: str) -> bool:
    return name in SKIP_DIRS or name.startswith(".")


class LocalSource(SourceAdapter):
    """Serve a folder on disk with the same semantics as the remote source."""

    name = "local"

    def __init__(self, root: Path) -> None:
        self.root = Path(os.path.realpath(Path(root).expanduser()))

    def describe(self) -> str:
        return f"local:{self.root}"

    def _resolve(self, path: str) -> Path:
        parts = [part for part in path.split("/") if part]
        if any(part == ".." for part in parts):
            raise SourceUnavailableError(path, f"Invalid path: {path}")
        resolved = Path(os.path.realpath(self.root.joinpath(*parts)))
        # Symlinks may still point outside of the root.
        if resolved != self.root and self.root not in resolved.parents:
            raise SourceUnavailableError(path, f"Invalid path: {path}")
        return resolved

    def _list_sync(self, path: str) -> List[SourceEntry]:
        directory = self._resolve(path)
        if not directory.is_dir():
            raise SourceUnavailableError(path, f"Directory not found: {path}")
        try:
            children = sorted(directory.iterdir(), key=lambda child: child.name)
        except OSError as exc:
            raise SourceUnavailableError(path, f"Cannot list {path!r}: {exc}") from exc

        entries: List[SourceEntry] = []
        for child in children:
            is_dir = child.is_dir()
            if is_dir and _skip_dir(child.name):
                continue
            size = None
            if not is_dir:
                try:
                    size = child.stat().st_size
                except OSError:
                    size = None
            entries.append(
                SourceEntry(
                    name=child.name,
                    type="dir" if is_dir else "file",
                    path=join_path(path.strip("/"), child.name),
                    size=size,
                )
            )
        return entries

    def _read_sync(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise SourceUnavailableError(path, f"File not found: {path}")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise SourceUnavailableError(path, f"Cannot read {path!r}: {exc}") from exc

    async def list_children(self, path: str = "") -> List[SourceEntry]:
        return await asyncio.to_thread(self._list_sync, path)

    async def read_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(self._read_sync, path)
