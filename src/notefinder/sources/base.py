"""Base interface shared by all tree sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from notefinder.models import SourceEntry


class SourceUnavailableError(Exception):
    """Raised when a source cannot list or read a path."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message


class SourceAdapter(ABC):
    """Lists directories and reads files below a source root.

    Paths are source-relative and ``/`` separated; the empty string is the
    root. Every failure is reported as :class:`SourceUnavailableError`.
    """

    name: str = "source"

    @abstractmethod
    async def list_children(self, path: str = "") -> List[SourceEntry]:
        """Return the immediate children of the directory at ``path``."""

    @abstractmethod
    async def read_bytes(self, path: str) -> bytes:
        """Return the raw content of the file at ``path``."""

    async def read_text(self, path: str) -> str:
        data = await self.read_bytes(path)
        return data.decode("utf-8", errors="replace")

    async def aclose(self) -> None:
        """Release any resources held by the adapter."""

    def describe(self) -> str:
        return self.name
