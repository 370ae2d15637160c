"""Text helpers: tokenization and snippet extraction."""

from __future__ import annotations

import re
from typing import List

_TOKEN_RE = re.compile(r"\w+")

# Characters of context kept before a match in a snippet.
CONTEXT_BEFORE = 50
ELLIPSIS = "..."


def tokenize(text: str) -> List[str]:
    """Split text into lower-cased word tokens, dropping punctuation."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.lower())


def _window(content: str, index: int, match_length: int, reach: int, max_length: int) -> str:
    before = min(CONTEXT_BEFORE, max_length // 4)
    start = max(0, index - before)
    # The window never ends inside the match itself.
    end = min(len(content), index + max(reach + max_length - before, match_length))
    snippet = content[start:end]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(content):
        snippet = snippet + ELLIPSIS
    return snippet


def make_snippet(content: str, query: str, max_length: int = 200) -> str:
    """Extract a short excerpt of ``content`` around the first match of ``query``.

    The literal query is looked up first (case-insensitive); failing that,
    the first query word longer than two characters that occurs in the
    content is used. Without any match the head of the content is returned.
    """
    if not content or not query:
        return content[:max_length] + ELLIPSIS if content else ""

    content_lower = content.lower()
    query_lower = query.lower()

    index = content_lower.find(query_lower)
    if index != -1:
        return _window(content, index, len(query), len(query), max_length)

    for word in (w for w in query_lower.split() if len(w) > 2):
        index = content_lower.find(word)
        if index != -1:
            return _window(content, index, len(word), 0, max_length)

    return content[:max_length] + ELLIPSIS
