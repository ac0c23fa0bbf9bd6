"""
Shared test fixtures.

The settings singleton is built at import time and requires
``LLM_API_KEY``, so the environment is seeded before any ``ragchat``
module is imported.  Collaborators are replaced by in-memory fakes:

    InMemoryStore   — keyword store with the same filter/order contract
                      as the LanceDB adapter
    RecordingEmbedder / FailingEmbedder
    FakeChatModel   — ``astream`` replaying scripted fragments
"""

import os

os.environ.setdefault("LLM_API_KEY", "test-key")
os.environ.setdefault("ENV", "prod")

import asyncio
from typing import Optional

import pytest

from ragchat.src.core.exceptions import StoreUnavailable, StoreWriteFailed
from ragchat.src.core.models import Document


class InMemoryStore:
    """Dict-backed store honouring upsert-by-id and keyword search order."""

    def __init__(self, docs=None, fail_reads: bool = False, fail_writes: bool = False, delay: float = 0.0):
        self.docs: dict[str, Document] = {}
        for doc in docs or []:
            self.docs[doc.id] = doc
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.delay = delay
        self.search_calls: list[tuple[set, int]] = []
        self.close_calls = 0

    def upsert(self, doc: Document) -> None:
        if self.fail_writes:
            raise StoreWriteFailed("store is read-only")
        self.docs[doc.id] = doc

    def search_by_keywords(self, keywords: set, limit: int) -> list:
        self.search_calls.append((set(keywords), limit))
        if self.delay:
            import time

            time.sleep(self.delay)
        if self.fail_reads:
            raise StoreUnavailable("connection refused")
        hits = [d for d in self.docs.values() if any(kw in d.content for kw in keywords)]
        hits.sort(key=lambda d: sum(1 for kw in keywords if kw in d.content), reverse=True)
        return hits[:limit]

    def close(self) -> None:
        self.close_calls += 1


class RecordingEmbedder:
    def __init__(self):
        self.texts: list[str] = []

    def embed_documents(self, texts):
        self.texts.extend(texts)
        return [[0.1, 0.2, 0.3] for _ in texts]


class FailingEmbedder:
    def embed_documents(self, texts):
        raise RuntimeError("embedding service returned 503")


class FakeChatModel:
    """Replays *fragments*, then raises *error* if given."""

    def __init__(self, fragments, error: Optional[Exception] = None):
        self.fragments = list(fragments)
        self.error = error
        self.calls: list[list] = []
        self.closed = False

    async def astream(self, messages):
        self.calls.append(list(messages))
        try:
            for fragment in self.fragments:
                await asyncio.sleep(0)
                yield fragment
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


AI_DOC = Document(id="1", title="AI", content="AI is transforming the world")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def ai_store():
    return InMemoryStore([AI_DOC])


@pytest.fixture
def embedder():
    return RecordingEmbedder()
