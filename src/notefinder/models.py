"""Core NoteFinder data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Union

from notefinder.utils.files import join_path


@dataclass(slots=True, frozen=True)
class SourceEntry:
    """One child of a directory as reported by a source adapter."""

    name: str
    type: str  # "dir" or "file"
    path: str
    size: int | None = None

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


@dataclass(slots=True)
class FileEntry:
    """Leaf of a mirrored tree."""

    path: str
    size: int | None = None


@dataclass(slots=True)
class Directory:
    """Directory node of a mirrored tree, keyed by child name."""

    children: Dict[str, "TreeEntry"] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.children)


TreeEntry = Union[Directory, FileEntry]


@dataclass(slots=True, frozen=True)
class Document:
    """Text snapshot of a single indexed file."""

    id: str
    filename: str
    content: str
    folder: str = ""

    @property
    def full_path(self) -> str:
        return join_path(self.folder, self.filename)
