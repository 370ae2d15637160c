"""Shared fixtures: an in-memory source adapter."""

from __future__ import annotations

from typing import Dict, Iterable, List

import pytest

from notefinder.models import Document, SourceEntry
from notefinder.sources.base import SourceAdapter, SourceUnavailableError


class FakeSource(SourceAdapter):
    """Source backed by a ``{path: content}`` mapping.

    Directories are implied by the file paths. Paths listed in
    ``broken_dirs`` / ``broken_files`` raise SourceUnavailableError.
    """

    name = "fake"

    def __init__(
        self,
        files: Dict[str, str | bytes],
        *,
        broken_dirs: Iterable[str] = (),
        broken_files: Iterable[str] = (),
    ) -> None:
        self.files = {
            path: content.encode("utf-8") if isinstance(content, str) else content
            for path, content in files.items()
        }
        self.broken_dirs = set(broken_dirs)
        self.broken_files = set(broken_files)
        self.listed: List[str] = []
        self.read: List[str] = []
        self.closed = False

    def _dirs(self) -> set[str]:
        dirs = {""}
        for path in self.files:
            parts = path.split("/")[:-1]
            for i in range(1, len(parts) + 1):
                dirs.add("/".join(parts[:i]))
        return dirs

    async def list_children(self, path: str = "") -> List[SourceEntry]:
        self.listed.append(path)
        if path in self.broken_dirs or path not in self._dirs():
            raise SourceUnavailableError(path, f"Directory not found: {path}")
        prefix = f"{path}/" if path else ""
        children: Dict[str, SourceEntry] = {}
        for file_path, data in self.files.items():
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            name, _, remainder = rest.partition("/")
            child_path = prefix + name
            if remainder:
                children.setdefault(name, SourceEntry(name=name, type="dir", path=child_path))
            else:
                children[name] = SourceEntry(
                    name=name, type="file", path=child_path, size=len(data)
                )
        return [children[name] for name in sorted(children)]

    async def read_bytes(self, path: str) -> bytes:
        self.read.append(path)
        if path in self.broken_files or path not in self.files:
            raise SourceUnavailableError(path, f"File not found: {path}")
        return self.files[path]

    async def aclose(self) -> None:
        self.closed = True


def make_document(path: str, content: str = "") -> Document:
    folder, _, filename = path.rpartition("/")
    return Document(id=path, filename=filename, content=content, folder=folder)


@pytest.fixture
def notes_source() -> FakeSource:
    return FakeSource(
        {
            "a.md": "hello",
            "sub/b.md": "world hello",
            "docs/guide.md": "Installation guide for the notes server",
            "docs/api/search.md": "The search endpoint accepts a q parameter",
            "docs/manual.pdf": b"%PDF-1.4 binary",
        }
    )
