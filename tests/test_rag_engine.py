"""Tests for the RAGManager orchestrator — enable/disable, degradation, ingestion."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from pydantic import SecretStr

from conftest import AI_DOC, FailingEmbedder, InMemoryStore
from ragchat.src.core.exceptions import ConfigurationError, EmbeddingFailed, InvalidDocument, NotEnabled, StoreWriteFailed
from ragchat.src.core.models import Document
from ragchat.src.core.rag_engine import RAGManager


def _config(**overrides):
    values = {
        "RAG_ENABLED": True,
        "RAG_CONTEXT_LIMIT": 5,
        "LANCEDB_URI": None,
        "LANCEDB_API_KEY": None,
        "LANCEDB_REGION": "us-east-1",
        "LANCEDB_TABLE_NAME": "documents",
        "STORE_SCAN_LIMIT": 100,
        "EMBEDDING_PROVIDER": "static",
        "EMBEDDING_MODEL": "models/gemini-embedding-001",
        "GOOGLE_API_KEY": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


# ── Disabled state ───────────────────────────────────────────────────────────


class TestDisabled:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "Tell me about AI", "  spaced  ", "{braces}"])
    async def test_enhance_is_identity(self, query):
        rag = RAGManager(enabled=False)
        assert await rag.enhance(query) == query

    @pytest.mark.asyncio
    async def test_ingest_raises_not_enabled(self):
        rag = RAGManager(enabled=False)
        with pytest.raises(NotEnabled):
            await rag.ingest(AI_DOC)

    @pytest.mark.asyncio
    async def test_aclose_is_noop(self):
        rag = RAGManager(enabled=False)
        await rag.aclose()
        await rag.aclose()
        assert not rag.is_enabled

    def test_from_settings_needs_no_store_credentials(self):
        rag = RAGManager.from_settings(_config(RAG_ENABLED=False))
        assert rag.is_enabled is False


# ── Construction ─────────────────────────────────────────────────────────────


class TestConstruction:
    def test_enabled_without_store_is_configuration_error(self, embedder):
        with pytest.raises(ConfigurationError):
            RAGManager(None, embedder)

    def test_missing_store_uri_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="LANCEDB_URI"):
            RAGManager.from_settings(_config())

    def test_cloud_uri_without_api_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="LANCEDB_API_KEY"):
            RAGManager.from_settings(_config(LANCEDB_URI="db://my-project"))

    def test_google_embeddings_without_key_is_configuration_error(self, tmp_path):
        with pytest.raises(ConfigurationError, match="GOOGLE_API_KEY"):
            RAGManager.from_settings(_config(LANCEDB_URI=str(tmp_path), EMBEDDING_PROVIDER="google", GOOGLE_API_KEY=SecretStr("")))

    def test_context_limit_exposed(self, store, embedder):
        rag = RAGManager(store, embedder, context_limit=3)
        assert rag.is_enabled
        assert rag.context_limit == 3


# ── Query path ───────────────────────────────────────────────────────────────


class TestEnhance:
    @pytest.mark.asyncio
    async def test_ai_scenario_prompt(self, ai_store, embedder):
        rag = RAGManager(ai_store, embedder, context_limit=5)
        prompt = await rag.enhance("Tell me about AI")
        assert "Tell me about AI" in prompt
        assert "[1] AI" in prompt
        assert "AI is transforming the world" in prompt

    @pytest.mark.asyncio
    async def test_empty_store_passes_query_through(self, store, embedder):
        rag = RAGManager(store, embedder, context_limit=5)
        assert await rag.enhance("anything") == "anything"

    @pytest.mark.asyncio
    async def test_no_overlap_passes_query_through(self, ai_store, embedder):
        rag = RAGManager(ai_store, embedder)
        assert await rag.enhance("gardening tips") == "gardening tips"

    @pytest.mark.asyncio
    async def test_retrieval_failure_returns_original_query(self, embedder):
        rag = RAGManager(InMemoryStore([AI_DOC], fail_reads=True), embedder)
        assert await rag.enhance("Tell me about AI") == "Tell me about AI"

    @pytest.mark.asyncio
    async def test_unexpected_store_error_also_degrades(self, embedder):
        class BrokenStore(InMemoryStore):
            def search_by_keywords(self, keywords, limit):
                raise RuntimeError("driver exploded")

        rag = RAGManager(BrokenStore(), embedder)
        assert await rag.enhance("AI") == "AI"

    @pytest.mark.asyncio
    async def test_context_limit_is_passed_to_store(self, ai_store, embedder):
        rag = RAGManager(ai_store, embedder, context_limit=2)
        await rag.enhance("AI")
        assert ai_store.search_calls[-1][1] == 2

    @pytest.mark.asyncio
    async def test_cancellation_is_not_absorbed(self, embedder):
        rag = RAGManager(InMemoryStore([AI_DOC], delay=0.5), embedder)
        task = asyncio.create_task(rag.enhance("AI"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_retrieve_returns_scored_results(self, ai_store, embedder):
        rag = RAGManager(ai_store, embedder)
        results = await rag.retrieve("Tell me about AI")
        assert [(r.document.id, r.score) for r in results] == [("1", 0.25)]


# ── Write path ───────────────────────────────────────────────────────────────


class TestIngest:
    @pytest.mark.asyncio
    async def test_round_trip(self, store, embedder):
        rag = RAGManager(store, embedder)
        doc = Document(id="doc-42", title="Graphs", content="Knowledge graphs link entities together")
        assert await rag.ingest(doc) == "doc-42"
        results = await rag.retrieve("entities")
        assert results[0].document.id == "doc-42"

    @pytest.mark.asyncio
    async def test_embeds_title_and_content(self, store, embedder):
        rag = RAGManager(store, embedder)
        await rag.ingest(Document(id="x", title="Title", content="Body"))
        assert embedder.texts == ["Title\nBody"]

    @pytest.mark.asyncio
    async def test_embedding_failure_stores_nothing(self, store):
        rag = RAGManager(store, FailingEmbedder())
        with pytest.raises(EmbeddingFailed):
            await rag.ingest(AI_DOC)
        assert store.docs == {}

    @pytest.mark.asyncio
    async def test_store_write_failure_surfaces(self, embedder):
        rag = RAGManager(InMemoryStore(fail_writes=True), embedder)
        with pytest.raises(StoreWriteFailed):
            await rag.ingest(AI_DOC)

    @pytest.mark.asyncio
    async def test_unexpected_write_error_is_wrapped(self, embedder):
        class BrokenStore(InMemoryStore):
            def upsert(self, doc):
                raise OSError("disk full")

        rag = RAGManager(BrokenStore(), embedder)
        with pytest.raises(StoreWriteFailed) as exc_info:
            await rag.ingest(AI_DOC)
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title,content", [("", "body"), ("title", ""), ("   ", "body")])
    async def test_empty_fields_rejected(self, store, embedder, title, content):
        rag = RAGManager(store, embedder)
        with pytest.raises(InvalidDocument):
            await rag.ingest(Document(id="bad", title=title, content=content))
        assert embedder.texts == []

    @pytest.mark.asyncio
    async def test_reingest_same_id_replaces(self, store, embedder):
        rag = RAGManager(store, embedder)
        await rag.ingest(Document(id="same", title="v1", content="old text"))
        await rag.ingest(Document(id="same", title="v2", content="new text"))
        assert len(store.docs) == 1
        assert store.docs["same"].title == "v2"

    @pytest.mark.asyncio
    async def test_add_document_generates_id(self, store, embedder):
        rag = RAGManager(store, embedder)
        doc_id = await rag.add_document("AI", "AI is transforming the world", "https://example.com/ai")
        assert doc_id in store.docs
        assert store.docs[doc_id].url == "https://example.com/ai"


# ── Lifecycle ────────────────────────────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_aclose_releases_store_once(self, store, embedder):
        rag = RAGManager(store, embedder)
        await rag.aclose()
        await rag.aclose()
        assert store.close_calls == 1

    @pytest.mark.asyncio
    async def test_async_context_manager_closes(self, store, embedder):
        async with RAGManager(store, embedder) as rag:
            assert rag.is_enabled
        assert store.close_calls == 1
