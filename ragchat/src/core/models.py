"""
RagChat - Domain Records
=========================
Plain dataclasses shared by the store adapter, the retrieval engine and
the orchestrator.  ``ScoredResult`` values are created per query and never
shared between concurrent exchanges.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Document:
    """A unit of knowledge.  ``id`` is unique across the store."""

    id: str
    title: str
    content: str
    url: str = ""
    embedding_ref: str = ""


@dataclass(frozen=True, slots=True)
class ScoredResult:
    """A document paired with its keyword-overlap score in ``[0, 1]``."""

    document: Document
    score: float


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One history entry as delivered by the transport layer."""

    role: str
    content: str
