"""Recursive, failure-tolerant mirroring of a source tree."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, Tuple

from notefinder.models import Directory, FileEntry, TreeEntry
from notefinder.sources.base import SourceAdapter, SourceUnavailableError
from notefinder.utils.files import has_extension, join_path

LOGGER = logging.getLogger(__name__)


async def build_tree(
    source: SourceAdapter,
    root_path: str = "",
    *,
    extensions: Iterable[str] | None = None,
) -> Directory:
    """Walk ``source`` depth-first starting at ``root_path``.

    A directory that cannot be listed becomes an empty node and a child that
    cannot be processed is skipped, so one broken subtree never aborts the
    walk. ``extensions`` optionally restricts which files become leaves.
    """
    try:
        items = await source.list_children(root_path)
    except SourceUnavailableError as exc:
        LOGGER.warning('build_tree: failed to list path "%s": %s', root_path, exc.message)
        return Directory()

    allowed = frozenset(extensions) if extensions else None
    tree = Directory()
    for item in items:
        try:
            if item.is_dir:
                tree.children[item.name] = await build_tree(source, item.path, extensions=allowed)
            elif item.type == "file" and has_extension(item.name, allowed):
                tree.children[item.name] = FileEntry(path=item.path, size=item.size)
        except Exception as exc:
            LOGGER.warning("Skipping item %s: %s", item.path, exc)
    return tree


def iter_files(tree: Directory, folder: str = "") -> Iterator[Tuple[str, str, FileEntry]]:
    """Yield ``(folder, name, entry)`` for every file, depth-first."""
    for name, entry in tree.children.items():
        if isinstance(entry, Directory):
            yield from iter_files(entry, join_path(folder, name))
        else:
            yield folder, name, entry


def tree_to_json(entry: TreeEntry) -> Dict[str, Any] | str:
    """Render a tree as nested objects with file paths as leaves."""
    if isinstance(entry, FileEntry):
        return entry.path
    return {name: tree_to_json(child) for name, child in entry.children.items()}


def count_files(tree: Directory) -> int:
    return sum(1 for _ in iter_files(tree))
