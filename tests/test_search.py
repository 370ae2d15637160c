"""Tests for the hybrid search pipeline."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import make_document

from notefinder.index.indexer import IndexSnapshot
from notefinder.index.inverted import InvertedIndex
from notefinder.index.query import QueryParseError
from notefinder.index.search import (
    DIRECT_MATCH_SCORE,
    EmptyQueryError,
    IndexNotReadyError,
    RankedHit,
    SearchFailedError,
    Searcher,
    SearchResult,
    add_wildcards,
    enrich,
    filter_by_folder,
    join_terms,
    matches_folder,
    merge_by_id,
    run_with_fallbacks,
    secondary_matches,
)


@pytest.fixture
def snapshot() -> IndexSnapshot:
    return IndexSnapshot.from_documents(
        [
            make_document("a.md", "hello"),
            make_document("sub/b.md", "world hello"),
            make_document("docs/guide.md", "Installation guide for the notes server"),
            make_document("docs/api/search.md", "The search endpoint accepts a q parameter"),
        ]
    )


def _ids(results):
    return [r.id for r in results]


class TestSearchResult:
    """Test SearchResult dataclass."""

    def test_to_json(self) -> None:
        result = SearchResult(
            id="sub/b.md",
            filename="b.md",
            folder="sub",
            full_path="sub/b.md",
            snippet="world hello",
            score=1.5,
        )

        assert result.to_json() == {
            "id": "sub/b.md",
            "filename": "b.md",
            "folder": "sub",
            "fullPath": "sub/b.md",
            "snippet": "world hello",
            "score": 1.5,
        }


class TestQueryTransforms:
    """Test the query rewriting helpers."""

    def test_add_wildcards(self) -> None:
        assert add_wildcards("foo ba* +x") == "foo* ba* +x*"
        assert add_wildcards("  spaced   out ") == "spaced* out*"

    def test_join_terms_drops_syntax(self) -> None:
        assert join_terms("http://x.y") == "http x y"
        assert join_terms("+title:guide^2") == "title guide 2"


class TestRunWithFallbacks:
    """Test run_with_fallbacks function."""

    def test_first_form_wins(self) -> None:
        execute = MagicMock(return_value=[("a.md", 2.0)])

        hits = run_with_fallbacks(execute, "foo")

        assert hits == [RankedHit("a.md", 2.0)]
        execute.assert_called_once_with("foo*")

    def test_moves_on_after_parse_error(self) -> None:
        execute = MagicMock(side_effect=[QueryParseError("bad"), [("a.md", 1.0)]])

        hits = run_with_fallbacks(execute, " foo ")

        assert hits == [RankedHit("a.md", 1.0)]
        assert [c.args[0] for c in execute.call_args_list] == ["foo*", "foo"]

    def test_all_forms_rejected(self) -> None:
        execute = MagicMock(side_effect=QueryParseError("bad"))

        with pytest.raises(SearchFailedError):
            run_with_fallbacks(execute, "foo")

        assert execute.call_count == 3

    def test_other_errors_propagate(self) -> None:
        """Only parse errors trigger the fallback chain."""
        execute = MagicMock(side_effect=RuntimeError("index broken"))

        with pytest.raises(RuntimeError):
            run_with_fallbacks(execute, "foo")

        assert execute.call_count == 1


class TestHelpers:
    """Test merge, filter and enrichment helpers."""

    def test_matches_folder(self) -> None:
        doc = make_document("docs/api/search.md")

        assert matches_folder(doc, "docs")
        assert matches_folder(doc, "DOCS/api")
        assert not matches_folder(doc, "doc")
        assert not matches_folder(doc, "api")

    def test_secondary_matches(self) -> None:
        docs = [make_document("a.md", "Hello there"), make_document("sub/b.md", "nothing")]

        assert secondary_matches(docs, " HELLO ") == [RankedHit("a.md", DIRECT_MATCH_SCORE)]
        assert secondary_matches(docs, "sub/b") == [RankedHit("sub/b.md", DIRECT_MATCH_SCORE)]
        assert secondary_matches(docs, "hello", folder="sub") == []

    def test_merge_by_id_prefers_primary(self) -> None:
        primary = [RankedHit("a.md", 3.0)]
        secondary = [RankedHit("a.md", 1.5), RankedHit("b.md", 1.5)]

        assert merge_by_id(primary, secondary) == [RankedHit("a.md", 3.0), RankedHit("b.md", 1.5)]

    def test_filter_by_folder(self) -> None:
        by_id = {"sub/b.md": make_document("sub/b.md")}
        hits = [RankedHit("sub/b.md", 1.0), RankedHit("gone.md", 2.0)]

        assert filter_by_folder(hits, by_id, None) == hits
        assert filter_by_folder(hits, by_id, "sub") == [RankedHit("sub/b.md", 1.0)]

    def test_enrich_stale_ref(self) -> None:
        """Should degrade gracefully when the document is missing."""
        result = enrich(RankedHit("gone/x.md", 2.0), {}, "q")

        assert result == SearchResult(
            id="gone/x.md", filename="x.md", folder="", full_path="gone/x.md", snippet="", score=2.0
        )


class TestSearcher:
    """Test Searcher class."""

    def test_basic_search(self, snapshot: IndexSnapshot) -> None:
        results = Searcher(snapshot).search("hello")

        assert _ids(results) == ["a.md", "sub/b.md"]
        assert results[0].snippet == "hello"
        assert results[1].snippet == "world hello"
        assert results[1].folder == "sub"
        assert results[1].full_path == "sub/b.md"

    def test_results_sorted_and_unique(self, snapshot: IndexSnapshot) -> None:
        results = Searcher(snapshot).search("the")

        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert len(_ids(results)) == len(set(_ids(results)))
        assert set(_ids(results)) == {"docs/guide.md", "docs/api/search.md"}

    def test_prefix_match(self, snapshot: IndexSnapshot) -> None:
        assert _ids(Searcher(snapshot).search("instal")) == ["docs/guide.md"]

    def test_direct_substring_match(self, snapshot: IndexSnapshot) -> None:
        """Should find text inside a word that the index cannot match."""
        results = Searcher(snapshot).search("stall")

        assert _ids(results) == ["docs/guide.md"]
        assert results[0].score == DIRECT_MATCH_SCORE

    def test_filename_match_ranks_first(self, snapshot: IndexSnapshot) -> None:
        results = Searcher(snapshot).search("guide")

        assert _ids(results)[0] == "docs/guide.md"

    def test_folder_filter(self, snapshot: IndexSnapshot) -> None:
        searcher = Searcher(snapshot)

        assert _ids(searcher.search("hello", folder="sub")) == ["sub/b.md"]
        assert _ids(searcher.search("hello", folder=" /sub/ ")) == ["sub/b.md"]
        assert _ids(searcher.search("search", folder="docs")) == ["docs/api/search.md"]
        assert searcher.search("hello", folder="docs") == []

    def test_folder_filter_boundaries(self) -> None:
        """Subfolders match the filter; sibling folders sharing a prefix do not."""
        snapshot = IndexSnapshot.from_documents(
            [
                make_document("docs/a.md", "needle"),
                make_document("docs/sub/b.md", "needle"),
                make_document("docs2/c.md", "needle"),
            ]
        )

        results = Searcher(snapshot).search("needle", folder="docs")

        assert sorted(_ids(results)) == ["docs/a.md", "docs/sub/b.md"]

    def test_match_found_both_ways_keeps_index_score(self, snapshot: IndexSnapshot) -> None:
        results = Searcher(snapshot).search("hello")

        assert len(results) == 2
        assert all(r.score != DIRECT_MATCH_SCORE for r in results)

    def test_folder_name_match(self, snapshot: IndexSnapshot) -> None:
        """A folder name surfaces its documents without content matches."""
        assert _ids(Searcher(snapshot).search("sub")) == ["sub/b.md"]

    def test_malformed_query_falls_back(self, snapshot: IndexSnapshot) -> None:
        """A query the index rejects is retried in simpler forms."""
        assert _ids(Searcher(snapshot).search("hello^")) == ["a.md", "sub/b.md"]

    def test_trailing_punctuation_does_not_match_everything(self) -> None:
        snapshot = IndexSnapshot.from_documents(
            [
                make_document("a.md", "hello"),
                make_document(
                    "recipes/pasta.md",
                    "Boil the water, salt it generously and cook the pasta until al dente. "
                    "Toss with olive oil, garlic and a handful of grated parmesan.",
                ),
                make_document(
                    "misc/notes.md",
                    "Water the tomatoes every morning and mulch the beds before summer.",
                ),
                make_document("code/tips.md", "c++ tips"),
            ]
        )
        searcher = Searcher(snapshot)

        assert _ids(searcher.search("hello!")) == ["a.md"]
        assert _ids(searcher.search("c++")) == ["code/tips.md"]
        assert _ids(searcher.search("(hello)")) == ["a.md"]

    def test_limit(self) -> None:
        """Returns the best 50 of 80 matches, ordered by score."""
        docs = [
            make_document(f"notes/note{i:02d}.md", "common " + "filler " * i)
            for i in range(80)
        ]
        snapshot = IndexSnapshot.from_documents(docs)

        results = Searcher(snapshot).search("common")

        assert len(results) == 50
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] > scores[-1]
        assert _ids(results)[0] == "notes/note00.md"
        assert len(Searcher(snapshot, limit=5).search("common")) == 5

    def test_stale_ref_is_degraded(self) -> None:
        index = InvertedIndex.build(
            [make_document("a.md", "hello"), make_document("old/gone.md", "hello")]
        )
        snapshot = IndexSnapshot(index=index, documents=(make_document("a.md", "hello"),))

        results = {r.id: r for r in Searcher(snapshot).search("hello")}

        assert results["a.md"].snippet == "hello"
        assert results["old/gone.md"].filename == "gone.md"
        assert results["old/gone.md"].full_path == "old/gone.md"
        assert results["old/gone.md"].snippet == ""

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_empty_query(self, snapshot: IndexSnapshot, query) -> None:
        with pytest.raises(EmptyQueryError):
            Searcher(snapshot).search(query)

    def test_index_not_ready(self) -> None:
        with pytest.raises(IndexNotReadyError):
            Searcher(None).search("hello")
        with pytest.raises(IndexNotReadyError):
            Searcher(IndexSnapshot(index=None, documents=())).search("hello")
