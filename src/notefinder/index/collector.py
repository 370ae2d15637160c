"""Turn a mirrored tree into indexable documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from notefinder.config import DEFAULT_MAX_INDEX_FILE_SIZE
from notefinder.models import Directory, Document
from notefinder.index.tree import iter_files
from notefinder.sources.base import SourceAdapter, SourceUnavailableError
from notefinder.utils.files import INDEXABLE_EXTENSIONS, extension_of

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CollectStats:
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    failed_paths: list[str] = field(default_factory=list)

    def to_json(self) -> dict:
        return {"indexed": self.indexed, "skipped": self.skipped, "failed": self.failed}


async def collect_documents(
    source: SourceAdapter,
    tree: Directory,
    *,
    extensions: Iterable[str] | None = INDEXABLE_EXTENSIONS,
    max_size: int = DEFAULT_MAX_INDEX_FILE_SIZE,
) -> Tuple[List[Document], CollectStats]:
    """Fetch the content of every indexable file in ``tree``.

    Files with a non-indexable extension or above ``max_size`` bytes are
    skipped; a file that cannot be fetched is logged and skipped.
    Documents come back in depth-first tree order.
    """
    allowed = frozenset(extensions) if extensions else None
    documents: List[Document] = []
    seen: set[str] = set()
    stats = CollectStats()

    for folder, name, entry in iter_files(tree):
        if allowed is not None and extension_of(name) not in allowed:
            stats.skipped += 1
            continue
        if entry.size is not None and entry.size > max_size:
            LOGGER.debug("Skipping %s: %d bytes exceeds index limit", entry.path, entry.size)
            stats.skipped += 1
            continue
        if entry.path in seen:
            LOGGER.warning("collect_documents: duplicate path %s ignored", entry.path)
            stats.skipped += 1
            continue

        try:
            content = await source.read_text(entry.path)
        except SourceUnavailableError as exc:
            LOGGER.warning("collect_documents: failed to fetch file %s: %s", entry.path, exc.message)
            stats.failed += 1
            stats.failed_paths.append(entry.path)
            continue

        if len(content.encode("utf-8")) > max_size:
            LOGGER.debug("Skipping %s: content exceeds index limit", entry.path)
            stats.skipped += 1
            continue

        seen.add(entry.path)
        documents.append(Document(id=entry.path, filename=name, content=content, folder=folder))
        stats.indexed += 1

    return documents, stats
