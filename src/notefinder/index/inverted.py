"""In-memory inverted index with per-field boosts."""

from __future__ import annotations

import bisect
import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from notefinder.index.query import Clause, Presence, parse_query
from notefinder.models import Document
from notefinder.utils.text import tokenize

# Matches in a file name count most, then its folder, then its path, then prose.
FIELD_BOOSTS: Mapping[str, float] = {
    "filename": 10.0,
    "folder": 5.0,
    "full_path": 3.0,
    "content": 1.0,
}

# BM25 parameters
K1 = 1.2
B = 0.75


@dataclass(slots=True)
class Posting:
    positions: np.ndarray  # document numbers
    frequencies: np.ndarray


class FieldIndex:
    """Postings and length statistics for one document field."""

    def __init__(self, tokenized: Sequence[List[str]]) -> None:
        self.lengths = np.array([len(tokens) for tokens in tokenized], dtype="float32")
        total = float(self.lengths.sum())
        self.avg_length = total / len(tokenized) if tokenized else 0.0

        buckets: Dict[str, Tuple[List[int], List[int]]] = {}
        for number, tokens in enumerate(tokenized):
            for term, count in Counter(tokens).items():
                positions, frequencies = buckets.setdefault(term, ([], []))
                positions.append(number)
                frequencies.append(count)

        self.postings: Dict[str, Posting] = {
            term: Posting(
                positions=np.array(positions, dtype="int64"),
                frequencies=np.array(frequencies, dtype="float32"),
            )
            for term, (positions, frequencies) in buckets.items()
        }

    def score(self, term: str, doc_count: int) -> Tuple[np.ndarray, np.ndarray] | None:
        """Return ``(positions, bm25 weights)`` for ``term`` or None if absent."""
        posting = self.postings.get(term)
        if posting is None or self.avg_length == 0:
            return None
        df = len(posting.positions)
        idf = math.log(1 + abs((doc_count - df + 0.5) / (df + 0.5)))
        tf = posting.frequencies
        norm = 1 - B + B * (self.lengths[posting.positions] / self.avg_length)
        return posting.positions, idf * (tf * (K1 + 1)) / (tf + K1 * norm)


class InvertedIndex:
    """Full-text index over :class:`Document` fields.

    Every field is scored with BM25 and multiplied by its boost; a
    document's score is the sum over matched fields and query terms.
    """

    def __init__(
        self,
        refs: Sequence[str],
        fields: Mapping[str, FieldIndex],
        boosts: Mapping[str, float],
    ) -> None:
        self.refs = list(refs)
        self.fields = dict(fields)
        self.boosts = dict(boosts)
        self.vocabulary = sorted({term for index in self.fields.values() for term in index.postings})
        self._known = frozenset(self.vocabulary)

    def __len__(self) -> int:
        return len(self.refs)

    @classmethod
    def build(
        cls,
        documents: Sequence[Document],
        boosts: Mapping[str, float] = FIELD_BOOSTS,
    ) -> "InvertedIndex":
        fields = {
            name: FieldIndex([tokenize(getattr(doc, name)) for doc in documents])
            for name in boosts
        }
        return cls([doc.id for doc in documents], fields, boosts)

    def expand(self, term: str) -> List[str]:
        """Return the vocabulary terms matched by a possibly wildcarded term."""
        if "*" not in term:
            return [term] if term in self._known else []

        prefix = term.split("*", 1)[0]
        if term == prefix + "*":
            start = bisect.bisect_left(self.vocabulary, prefix)
            matched = []
            for candidate in self.vocabulary[start:]:
                if not candidate.startswith(prefix):
                    break
                matched.append(candidate)
            return matched

        pattern = re.compile(".*".join(re.escape(part) for part in term.split("*")) + r"\Z")
        return [candidate for candidate in self.vocabulary if pattern.match(candidate)]

    def _clause_scores(self, clause: Clause) -> Tuple[np.ndarray, np.ndarray]:
        count = len(self.refs)
        scores = np.zeros(count, dtype="float32")
        hits = np.zeros(count, dtype=bool)
        names = [clause.field] if clause.field else list(self.fields)
        for term in self.expand(clause.term):
            for name in names:
                scored = self.fields[name].score(term, count)
                if scored is None:
                    continue
                positions, weights = scored
                scores[positions] += weights * self.boosts[name] * clause.boost
                hits[positions] = True
        return scores, hits

    def search(self, query: str) -> List[Tuple[str, float]]:
        """Run ``query`` and return ``(ref, score)`` pairs, best first.

        Raises :class:`~notefinder.index.query.QueryParseError` for invalid
        query syntax.
        """
        clauses = parse_query(query, self.fields)
        count = len(self.refs)
        scores = np.zeros(count, dtype="float32")
        matched = np.zeros(count, dtype=bool)
        required = np.ones(count, dtype=bool)
        prohibited = np.zeros(count, dtype=bool)

        for clause in clauses:
            clause_scores, hits = self._clause_scores(clause)
            if clause.presence is Presence.PROHIBITED:
                prohibited |= hits
                continue
            if clause.presence is Presence.REQUIRED:
                required &= hits
            scores += clause_scores
            matched |= hits

        selected = np.flatnonzero(matched & required & ~prohibited)
        order = selected[np.argsort(-scores[selected], kind="stable")]
        return [(self.refs[i], float(scores[i])) for i in order]
