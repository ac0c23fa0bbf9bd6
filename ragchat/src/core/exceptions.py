"""
RagChat - Error Taxonomy
=========================
Every failure the retrieval pipeline reports derives from ``RAGError``.

Read-path failures (``StoreUnavailable``) are absorbed by ``RAGManager``
and degraded to the unmodified query.  Write-path failures
(``EmbeddingFailed``, ``StoreWriteFailed``) always reach the caller.
``StreamTerminated`` is raised by the relay *after* any fragments it
already forwarded.
"""


class RAGError(Exception):
    """Base class for all RagChat errors."""


class ConfigurationError(RAGError):
    """Required store or embedding credentials are missing."""


class NotEnabled(RAGError):
    """Operation requires retrieval, but RAG is disabled."""


class InvalidLimit(RAGError, ValueError):
    """A non-positive result limit was supplied explicitly."""


class InvalidDocument(RAGError, ValueError):
    """A document is missing its title or content."""


class StoreUnavailable(RAGError):
    """The document store could not be queried."""


class StoreWriteFailed(RAGError):
    """The document store rejected or failed an upsert."""


class EmbeddingFailed(RAGError):
    """The embedding backend failed to produce a vector."""


class StreamTerminated(RAGError):
    """The generation backend stream ended with an error."""
