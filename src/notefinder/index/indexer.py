"""Index build pass and the process-wide snapshot holder."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Sequence, Tuple

from notefinder.config import AppConfig
from notefinder.index.collector import CollectStats, collect_documents
from notefinder.index.inverted import InvertedIndex
from notefinder.index.tree import build_tree, count_files
from notefinder.models import Document
from notefinder.sources.base import SourceAdapter

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexSnapshot:
    """An index together with the documents it was built from.

    ``index`` is None when index construction failed; such a snapshot is
    published so that searches report the failure instead of guessing.
    """

    index: InvertedIndex | None
    documents: Tuple[Document, ...]
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stats: CollectStats = field(default_factory=CollectStats)
    by_id: Dict[str, Document] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_id", {doc.id: doc for doc in self.documents})

    @property
    def available(self) -> bool:
        return self.index is not None

    @classmethod
    def from_documents(
        cls, documents: Sequence[Document], stats: CollectStats | None = None
    ) -> "IndexSnapshot":
        """Index ``documents``; construction errors yield an unavailable snapshot."""
        try:
            index: InvertedIndex | None = InvertedIndex.build(documents)
        except Exception:
            LOGGER.exception("Failed to build search index over %d documents", len(documents))
            index = None
        return cls(index=index, documents=tuple(documents), stats=stats or CollectStats())


async def build_snapshot(
    source: SourceAdapter,
    *,
    tree_extensions: Iterable[str] | None = None,
    index_extensions: Iterable[str] | None = None,
    max_size: int | None = None,
) -> IndexSnapshot:
    """Walk ``source``, collect its text documents and index them."""
    defaults = AppConfig()
    tree = await build_tree(source, extensions=tree_extensions)
    LOGGER.info("Scanned tree: %d files", count_files(tree))
    documents, stats = await collect_documents(
        source,
        tree,
        extensions=index_extensions if index_extensions is not None else defaults.index_extensions,
        max_size=max_size if max_size is not None else defaults.max_index_file_size,
    )
    snapshot = IndexSnapshot.from_documents(documents, stats)
    if snapshot.available:
        LOGGER.info(
            "In-memory search index built: %d documents (skipped %d, failed %d)",
            len(documents),
            stats.skipped,
            stats.failed,
        )
    return snapshot


class IndexHolder:
    """Publishes the current :class:`IndexSnapshot` behind one reference.

    Readers call :attr:`snapshot` once per request; a rebuild swaps the whole
    snapshot so index and documents can never disagree.
    """

    def __init__(self) -> None:
        self._snapshot: IndexSnapshot | None = None
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def snapshot(self) -> IndexSnapshot | None:
        return self._snapshot

    @property
    def building(self) -> bool:
        return self._task is not None and not self._task.done()

    def publish(self, snapshot: IndexSnapshot) -> None:
        self._snapshot = snapshot

    async def rebuild(self, source: SourceAdapter, config: AppConfig | None = None) -> IndexSnapshot:
        config = config or AppConfig()
        async with self._lock:
            LOGGER.info("Building in-memory search index from %s...", source.describe())
            snapshot = await build_snapshot(
                source,
                tree_extensions=config.tree_extensions,
                index_extensions=config.index_extensions,
                max_size=config.max_index_file_size,
            )
            self.publish(snapshot)
            return snapshot

    def schedule_rebuild(self, source: SourceAdapter, config: AppConfig | None = None) -> bool:
        """Start a background rebuild; returns False when one is already running."""
        if self.building:
            return False
        self._task = asyncio.create_task(self._run_rebuild(source, config))
        return True

    async def _run_rebuild(self, source: SourceAdapter, config: AppConfig | None) -> None:
        try:
            await self.rebuild(source, config)
        except Exception:
            LOGGER.exception("Index build failed")

    def status(self) -> dict:
        snapshot = self._snapshot
        return {
            "ready": snapshot is not None and snapshot.available,
            "building": self.building,
            "documents": len(snapshot.documents) if snapshot else 0,
            "built_at": snapshot.built_at.isoformat() if snapshot else None,
            "stats": snapshot.stats.to_json() if snapshot else None,
        }
