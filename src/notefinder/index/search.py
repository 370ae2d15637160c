"""Hybrid search: ranked index matches plus direct substring matches."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

from notefinder.index.indexer import IndexSnapshot
from notefinder.index.query import QueryParseError
from notefinder.models import Document
from notefinder.utils.text import make_snippet, tokenize

LOGGER = logging.getLogger(__name__)

# Direct substring matches compete with, but do not swamp, strong index hits.
DIRECT_MATCH_SCORE = 1.5
DEFAULT_LIMIT = 50


class EmptyQueryError(ValueError):
    """Raised when the query is missing or blank."""


class IndexNotReadyError(RuntimeError):
    """Raised when no usable index has been published yet."""


class SearchFailedError(RuntimeError):
    """Raised when no form of the query could be executed."""


@dataclass(slots=True, frozen=True)
class RankedHit:
    ref: str
    score: float


@dataclass(slots=True)
class SearchResult:
    id: str
    filename: str
    folder: str
    full_path: str
    snippet: str
    score: float

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "folder": self.folder,
            "fullPath": self.full_path,
            "snippet": self.snippet,
            "score": self.score,
        }


def add_wildcards(query: str) -> str:
    """Append ``*`` to every term that has no wildcard yet."""
    return " ".join(term if "*" in term else term + "*" for term in query.split())


def strip_query(query: str) -> str:
    return query.strip()


def join_terms(query: str) -> str:
    """Reduce the query to its plain word terms, dropping all query syntax."""
    return " ".join(tokenize(query))


QUERY_TRANSFORMS: Sequence[Callable[[str], str]] = (add_wildcards, strip_query, join_terms)


def run_with_fallbacks(
    execute: Callable[[str], Sequence[tuple]],
    query: str,
    transforms: Sequence[Callable[[str], str]] = QUERY_TRANSFORMS,
) -> List[RankedHit]:
    """Execute the first transformed query that parses.

    Each transform is tried in order; a :class:`QueryParseError` moves on to
    the next one. When every form is rejected :class:`SearchFailedError`
    is raised.
    """
    last_error: QueryParseError | None = None
    for transform in transforms:
        candidate = transform(query)
        try:
            rows = execute(candidate)
        except QueryParseError as exc:
            LOGGER.debug("Query %r rejected: %s", candidate, exc)
            last_error = exc
            continue
        return [RankedHit(ref=ref, score=float(score)) for ref, score in rows]
    raise SearchFailedError(f"Invalid query {query!r}: {last_error}") from last_error


def matches_folder(document: Document, folder: str) -> bool:
    """True when ``document`` lives in ``folder`` or one of its subfolders."""
    wanted = folder.lower()
    doc_folder = document.folder.lower()
    return (
        doc_folder == wanted
        or doc_folder.startswith(wanted + "/")
        or document.full_path.lower().startswith(wanted + "/")
    )


def primary_matches(snapshot: IndexSnapshot, query: str) -> List[RankedHit]:
    if snapshot.index is None:
        raise IndexNotReadyError("Index not ready")
    return run_with_fallbacks(snapshot.index.search, query)


def secondary_matches(
    documents: Iterable[Document], query: str, folder: str | None = None
) -> List[RankedHit]:
    """Documents whose name, path or content contains ``query`` verbatim."""
    needle = query.strip().lower()
    hits: List[RankedHit] = []
    for doc in documents:
        if folder and not matches_folder(doc, folder):
            continue
        if (
            needle in doc.filename.lower()
            or needle in doc.content.lower()
            or needle in doc.folder.lower()
            or needle in doc.full_path.lower()
        ):
            hits.append(RankedHit(ref=doc.id, score=DIRECT_MATCH_SCORE))
    return hits


def merge_by_id(primary: Sequence[RankedHit], secondary: Sequence[RankedHit]) -> List[RankedHit]:
    """Union of both hit lists; a primary hit wins over a secondary one."""
    merged = list(primary)
    seen = {hit.ref for hit in primary}
    for hit in secondary:
        if hit.ref not in seen:
            seen.add(hit.ref)
            merged.append(hit)
    return merged


def filter_by_folder(
    hits: Sequence[RankedHit], by_id: Mapping[str, Document], folder: str | None
) -> List[RankedHit]:
    if not folder:
        return list(hits)
    return [hit for hit in hits if hit.ref in by_id and matches_folder(by_id[hit.ref], folder)]


def enrich(hit: RankedHit, by_id: Mapping[str, Document], query: str) -> SearchResult:
    doc = by_id.get(hit.ref)
    if doc is None:
        # The index refers to a document the store no longer has.
        return SearchResult(
            id=hit.ref,
            filename=posixpath.basename(hit.ref) or hit.ref,
            folder="",
            full_path=hit.ref,
            snippet="",
            score=hit.score,
        )
    return SearchResult(
        id=hit.ref,
        filename=doc.filename,
        folder=doc.folder,
        full_path=doc.full_path,
        snippet=make_snippet(doc.content, query),
        score=hit.score,
    )


class Searcher:
    """Answer queries against one immutable index snapshot."""

    def __init__(self, snapshot: IndexSnapshot | None, *, limit: int = DEFAULT_LIMIT) -> None:
        self.snapshot = snapshot
        self.limit = limit

    def search(self, query: str | None, folder: str | None = None) -> List[SearchResult]:
        if query is None or not query.strip():
            raise EmptyQueryError("Missing search query")
        snapshot = self.snapshot
        if snapshot is None or not snapshot.available:
            raise IndexNotReadyError("Index not ready")

        folder = folder.strip().strip("/") if folder else None
        primary = primary_matches(snapshot, query.strip())
        secondary = secondary_matches(snapshot.documents, query, folder)
        hits = filter_by_folder(merge_by_id(primary, secondary), snapshot.by_id, folder)
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return [enrich(hit, snapshot.by_id, query) for hit in hits[: self.limit]]
