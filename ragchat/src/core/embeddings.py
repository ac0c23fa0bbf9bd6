"""
RagChat - Embedding Adapter
============================
Turns text into a fixed-length vector.  The model behind it is opaque to
the pipeline: any LangChain-compatible embedder (anything with
``embed_documents``) can be injected, and ``StaticEmbedder`` stands in when
no embedding backend is configured.

Usage:
    adapter = EmbeddingAdapter(build_embedder(settings))
    vector = adapter.embed_document(doc)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ragchat.config.settings import Settings
from ragchat.src.core.exceptions import ConfigurationError, EmbeddingFailed
from ragchat.src.core.models import Document
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)

_STUB_VECTOR: tuple[float, ...] = (0.1, 0.2, 0.3, 0.4, 0.5)


@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...


class StaticEmbedder:
    """Deterministic stub: every text maps to the same short vector."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [list(_STUB_VECTOR) for _ in texts]


def build_embedder(config: Settings) -> Embedder:
    """
    Create the embedder selected by ``EMBEDDING_PROVIDER``.

    Raises
    ------
    ConfigurationError
        ``google`` was selected without a ``GOOGLE_API_KEY``.
    """
    provider = config.EMBEDDING_PROVIDER
    if provider == "static":
        logger.info("[EMBED] Using static stub embedder.")
        return StaticEmbedder()

    api_key = config.GOOGLE_API_KEY
    if api_key is None or not api_key.get_secret_value():
        raise ConfigurationError("GOOGLE_API_KEY must be set when EMBEDDING_PROVIDER=google")

    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    logger.info("[EMBED] Using Google embeddings: %s", config.EMBEDDING_MODEL)
    return GoogleGenerativeAIEmbeddings(model=config.EMBEDDING_MODEL, google_api_key=api_key.get_secret_value())


class EmbeddingAdapter:
    """Wraps an ``Embedder`` and maps every backend failure to ``EmbeddingFailed``."""

    __slots__ = ("_embedder",)

    def __init__(self, embedder: Embedder) -> None:
        self._embedder = embedder


    def embed(self, text: str) -> list[float]:
        try:
            vector = self._embedder.embed_documents([text])[0]
        except Exception as exc:
            logger.error("[EMBED] Embedding backend failed: %s", exc)
            raise EmbeddingFailed(f"failed to generate embedding: {exc}") from exc
        return list(vector)


    def embed_document(self, doc: Document) -> list[float]:
        """Embed the title and content of *doc* as one text."""
        return self.embed(f"{doc.title}\n{doc.content}")
