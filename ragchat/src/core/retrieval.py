"""
RagChat - Retrieval & Ranking Engine
=====================================
Keyword-overlap retrieval over the document store.

Algorithm
---------
1. Split the query on whitespace into keywords (no stemming, no
   stop-word removal).
2. Ask the store for candidates whose content contains at least one
   keyword as a **case-sensitive** substring.
3. Score every candidate client-side as
   ``matched / total`` where ``matched`` counts the query keywords found
   as a **case-insensitive** substring of the content, and ``total`` is
   the number of query keywords.
4. Drop zero-score candidates, sort descending by score (stable, so the
   store's order breaks ties) and cap at *limit*.

A query with no keywords yields no results and never reaches the store.
"""

from __future__ import annotations

from typing import Protocol

from ragchat.src.core.exceptions import InvalidLimit
from ragchat.src.core.models import Document, ScoredResult
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 5


class KeywordStore(Protocol):
    """The slice of ``DocumentStore`` the engine depends on."""

    def search_by_keywords(self, keywords: set[str], limit: int) -> list[Document]: ...


def tokenize(query: str) -> list[str]:
    """Whitespace-delimited keywords, duplicates kept."""
    return query.split()


def keyword_overlap_score(keywords: list[str], content: str) -> float:
    """Fraction of *keywords* found case-insensitively in *content*."""
    if not keywords:
        return 0.0
    haystack = content.lower()
    matched = sum(1 for kw in keywords if kw.lower() in haystack)
    return matched / len(keywords)


class RetrievalEngine:
    """
    Produces ranked ``ScoredResult`` lists for a query.

    Parameters
    ----------
    store
        Any object exposing ``search_by_keywords(keywords, limit)``.
    """

    __slots__ = ("_store",)

    def __init__(self, store: KeywordStore) -> None:
        self._store = store


    def search(self, query: str, limit: int | None = None) -> list[ScoredResult]:
        """
        Rank stored documents against *query*.

        Parameters
        ----------
        query
            Raw user text.
        limit
            Maximum results.  ``None`` selects ``DEFAULT_LIMIT``.

        Raises
        ------
        InvalidLimit
            *limit* was given explicitly and is not positive.
        StoreUnavailable
            Propagated from the store.
        """
        if limit is None:
            limit = DEFAULT_LIMIT
        elif limit <= 0:
            raise InvalidLimit(f"limit must be positive, got {limit}")

        keywords = tokenize(query)
        if not keywords:
            logger.debug("[RETRIEVE] Empty query — no keywords, no results.")
            return []

        candidates = self._store.search_by_keywords(set(keywords), limit)

        results = [ScoredResult(document=doc, score=keyword_overlap_score(keywords, doc.content)) for doc in candidates]
        results = [r for r in results if r.score > 0]
        results.sort(key=lambda r: r.score, reverse=True)

        logger.info("[RETRIEVE] %d keyword(s): %d candidate(s) → %d ranked.", len(keywords), len(candidates), min(len(results), limit))
        return results[:limit]
