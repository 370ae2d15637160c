"""Utility helpers for working with file names."""

from __future__ import annotations

import posixpath
from typing import Iterable
from urllib.parse import quote

# Text-like formats that go into the search index. PDFs and images stay
# servable through /note but are never indexed.
INDEXABLE_EXTENSIONS = frozenset(
    {"md", "txt", "cpp", "c", "py", "java", "js", "ts", "json", "html", "css", "yaml", "yml"}
)

TEXT_EXTENSIONS = INDEXABLE_EXTENSIONS
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "bmp"})


def extension_of(name: str) -> str:
    """Return the lower-cased extension of ``name`` without the dot."""
    base = posixpath.basename(name)
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def has_extension(name: str, extensions: Iterable[str] | None) -> bool:
    """True when ``extensions`` is empty/None or contains the extension of ``name``."""
    if not extensions:
        return True
    return extension_of(name) in extensions


def content_type_for(name: str) -> str:
    ext = extension_of(name)
    if ext == "pdf":
        return "application/pdf"
    if ext in TEXT_EXTENSIONS:
        return "text/plain; charset=utf-8"
    if ext in IMAGE_EXTENSIONS:
        return f"image/{'jpeg' if ext == 'jpg' else ext}"
    return "application/octet-stream"


def content_disposition(name: str) -> str:
    """Build an inline Content-Disposition header value for ``name``."""
    filename = posixpath.basename(name)
    if filename.isascii() and '"' not in filename:
        return f'inline; filename="{filename}"'
    return f"inline; filename*=UTF-8''{quote(filename)}"


def join_path(folder: str, name: str) -> str:
    """Join a source-relative folder and child name with ``/``."""
    return f"{folder}/{name}" if folder else name
