"""Parser for the search query syntax.

A query is a whitespace separated list of clauses::

    [+|-][field:]term[^boost]

``term`` may contain ``*`` wildcards anywhere. ``+`` makes a clause
required and ``-`` excludes documents matching it. Terms are tokenized like
indexed text, so ``notes.md`` yields the two clauses ``notes`` and ``md``.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, List

_PIECE_RE = re.compile(r"[\w*]+")
_WORD_RE = re.compile(r"\w")
_BOOST_RE = re.compile(r"^\d+(\.\d+)?$")

FIELD_ALIASES = {"fullpath": "full_path", "path": "full_path"}


class QueryParseError(ValueError):
    """Raised when a query string is not valid query syntax."""


class Presence(enum.Enum):
    OPTIONAL = "optional"
    REQUIRED = "required"
    PROHIBITED = "prohibited"


@dataclass(slots=True, frozen=True)
class Clause:
    term: str
    field: str | None = None
    presence: Presence = Presence.OPTIONAL
    boost: float = 1.0


def _resolve_field(raw: str, fields: Iterable[str], token: str) -> str:
    name = raw.lower()
    name = FIELD_ALIASES.get(name, name)
    if name not in fields:
        raise QueryParseError(f"unknown field '{raw}' in '{token}'")
    return name


def parse_query(text: str, fields: Iterable[str]) -> List[Clause]:
    fields = frozenset(fields)
    clauses: List[Clause] = []

    for token in text.split():
        rest = token
        presence = Presence.OPTIONAL
        if rest[0] == "+":
            presence, rest = Presence.REQUIRED, rest[1:]
        elif rest[0] == "-":
            presence, rest = Presence.PROHIBITED, rest[1:]

        field = None
        if ":" in rest:
            raw_field, rest = rest.split(":", 1)
            if not raw_field:
                raise QueryParseError(f"missing field name in '{token}'")
            field = _resolve_field(raw_field, fields, token)

        boost = 1.0
        if "^" in rest:
            rest, raw_boost = rest.rsplit("^", 1)
            if not _BOOST_RE.match(raw_boost) or float(raw_boost) <= 0:
                raise QueryParseError(f"invalid boost '{raw_boost}' in '{token}'")
            boost = float(raw_boost)

        if not rest:
            raise QueryParseError(f"missing term in '{token}'")

        for piece in _PIECE_RE.findall(rest.lower()):
            # A wildcard cut loose by punctuation ("c++*") would match everything.
            if not _WORD_RE.search(piece):
                continue
            clauses.append(Clause(term=piece, field=field, presence=presence, boost=boost))

    return clauses
