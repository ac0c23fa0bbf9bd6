"""
RagChat - RAG Manager
======================
Facade over the retrieval pipeline.  Owns the enable/disable state, the
per-query context budget, and the adapters it is built with.

States
------
The state is fixed at construction and never changes afterwards.

``Disabled``
    ``enhance`` is the identity function; ``ingest`` raises ``NotEnabled``;
    ``aclose`` is a no-op.

``Enabled``
    ``enhance`` flow:
        1. Retrieve → keyword search capped at ``context_limit``.
        2. Any retrieval failure → log a warning, return the query as is.
        3. No results → return the query as is.
        4. Format context → numbered, truncated block.
        5. Augment → question + context + answering instructions.

    ``ingest`` flow:
        1. Validate → title and content must be non-empty.
        2. Embed → title + content (failure: ``EmbeddingFailed``, nothing stored).
        3. Upsert → store by id (failure: ``StoreWriteFailed``).

Concurrency
-----------
- No request-scoped state lives on the manager; concurrent calls are safe.
- Blocking adapter calls run via ``asyncio.to_thread``; a cancelled
  caller stops awaiting them immediately, and cancellation is never
  swallowed by the degradation path.

Usage:
    from ragchat.src.core.rag_engine import RAGManager
    async with RAGManager.from_settings(settings) as rag:
        prompt = await rag.enhance("Tell me about AI")
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Protocol

from ragchat.config.settings import Settings
from ragchat.src.core.context_builder import augment_prompt, format_context
from ragchat.src.core.embeddings import Embedder, EmbeddingAdapter, build_embedder
from ragchat.src.core.exceptions import ConfigurationError, EmbeddingFailed, InvalidDocument, NotEnabled, StoreWriteFailed
from ragchat.src.core.models import Document, ScoredResult
from ragchat.src.core.retrieval import DEFAULT_LIMIT, RetrievalEngine
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)


class DocumentBackend(Protocol):
    """What the manager needs from a document store."""

    def upsert(self, doc: Document) -> None: ...

    def search_by_keywords(self, keywords: set[str], limit: int) -> list[Document]: ...

    def close(self) -> None: ...


class RAGManager:
    """
    Retrieval-augmented prompt orchestrator.

    Parameters
    ----------
    store
        Document store adapter.  Required when *enabled*.
    embedder
        ``Embedder``-compatible object used at ingestion time.
    enabled
        Whether retrieval is active for the lifetime of this manager.
    context_limit
        Maximum documents considered per query.
    """

    __slots__ = ("_enabled", "_context_limit", "_store", "_engine", "_embeddings", "_closed")

    def __init__(self, store: DocumentBackend | None = None, embedder: Embedder | None = None, *, enabled: bool = True, context_limit: int = DEFAULT_LIMIT) -> None:
        self._enabled = enabled
        self._context_limit = context_limit
        self._closed = False

        if not enabled:
            self._store = None
            self._engine = None
            self._embeddings = None
            logger.info("[RAG] Manager created (disabled).")
            return

        if store is None or embedder is None:
            raise ConfigurationError("an enabled RAGManager needs both a document store and an embedder")
        if context_limit <= 0:
            raise ConfigurationError(f"context_limit must be positive, got {context_limit}")

        self._store = store
        self._engine = RetrievalEngine(store)
        self._embeddings = EmbeddingAdapter(embedder)
        logger.info("[RAG] Manager created (enabled, context_limit=%d).", context_limit)


    @classmethod
    def from_settings(cls, config: Settings) -> RAGManager:
        """
        Build a manager from a ``Settings`` object.

        Raises
        ------
        ConfigurationError
            RAG is enabled but the store location, a cloud API key, or the
            embedding credentials are missing.
        """
        if not config.RAG_ENABLED:
            return cls(enabled=False)

        from ragchat.src.database.document_store import DocumentStore

        store = DocumentStore.from_settings(config)
        embedder = build_embedder(config)
        return cls(store, embedder, enabled=True, context_limit=config.RAG_CONTEXT_LIMIT)


    @property
    def is_enabled(self) -> bool:
        return self._enabled


    @property
    def context_limit(self) -> int:
        return self._context_limit

    # ══════════════════════════════════════════════════════════════════
    #  QUERY PATH
    # ══════════════════════════════════════════════════════════════════

    async def retrieve(self, query: str) -> list[ScoredResult]:
        """
        Ranked results for *query*, capped at ``context_limit``.

        Unlike ``enhance``, failures propagate.

        Raises
        ------
        NotEnabled
            The manager is disabled.
        StoreUnavailable
            The store could not be queried.
        """
        if not self._enabled:
            raise NotEnabled("RAG is not enabled")
        return await asyncio.to_thread(self._engine.search, query, self._context_limit)  # type: ignore[union-attr]


    async def enhance(self, query: str) -> str:
        """
        Return *query* augmented with retrieved context.

        Never raises on retrieval failure: the original query is returned
        and a warning is logged, so chat keeps working while the store is
        down.
        """
        if not self._enabled:
            return query

        t_search = time.perf_counter()
        try:
            results = await self.retrieve(query)
        except Exception as exc:
            logger.warning("[RAG] Failed to enhance prompt, using original query: %s", exc)
            return query
        search_ms = (time.perf_counter() - t_search) * 1000

        if not results:
            logger.info("[RAG] No relevant documents (%.1fms) — query passed through.", search_ms)
            return query

        logger.info("[RAG] %d document(s) retrieved in %.1fms (top score %.2f).", len(results), search_ms, results[0].score)
        return augment_prompt(query, format_context(results))

    # ══════════════════════════════════════════════════════════════════
    #  WRITE PATH
    # ══════════════════════════════════════════════════════════════════

    async def ingest(self, doc: Document) -> str:
        """
        Embed and store *doc*; returns its id.

        Either both steps succeed or the document is not ingested.

        Raises
        ------
        NotEnabled
            The manager is disabled.
        InvalidDocument
            Title or content is empty.
        EmbeddingFailed
            The embedding backend failed; nothing was stored.
        StoreWriteFailed
            The upsert failed.
        """
        if not self._enabled:
            raise NotEnabled("RAG is not enabled")
        if not doc.title.strip() or not doc.content.strip():
            raise InvalidDocument("title and content are required")

        t_start = time.perf_counter()

        # The vector is not used by keyword retrieval yet, but a document
        # without one is never stored.
        try:
            await asyncio.to_thread(self._embeddings.embed_document, doc)  # type: ignore[union-attr]
        except EmbeddingFailed:
            logger.error("[RAG] Document '%s' not stored: embedding failed.", doc.id)
            raise
        except Exception as exc:
            logger.error("[RAG] Document '%s' not stored: embedding failed.", doc.id)
            raise EmbeddingFailed(f"failed to generate document embedding: {exc}") from exc

        try:
            await asyncio.to_thread(self._store.upsert, doc)  # type: ignore[union-attr]
        except StoreWriteFailed:
            raise
        except Exception as exc:
            raise StoreWriteFailed(f"failed to add document: {exc}") from exc

        logger.info("[RAG] Document '%s' ingested in %.1fms.", doc.id, (time.perf_counter() - t_start) * 1000)
        return doc.id


    async def add_document(self, title: str, content: str, url: str = "") -> str:
        """Ingest a new document under a fresh UUID4 id."""
        doc = Document(id=str(uuid.uuid4()), title=title, content=content, url=url)
        return await self.ingest(doc)

    # ══════════════════════════════════════════════════════════════════
    #  LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    async def aclose(self) -> None:
        """Release the store connection.  No-op when disabled or already closed."""
        if not self._enabled or self._closed:
            return
        self._closed = True
        await asyncio.to_thread(self._store.close)  # type: ignore[union-attr]
        logger.info("[RAG] Manager closed.")


    async def __aenter__(self) -> RAGManager:
        return self


    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


    def __repr__(self) -> str:
        state = "enabled" if self._enabled else "disabled"
        return f"RAGManager({state}, context_limit={self._context_limit})"
