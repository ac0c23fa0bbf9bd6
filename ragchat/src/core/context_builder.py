"""
RagChat - Context Assembly & Prompt Augmentation
=================================================
Pure text composition: ranked results become a bounded context block,
and the block is spliced with the user's question into the final prompt.
"""

from __future__ import annotations

from collections.abc import Sequence

from ragchat.config.prompt_templates import CONTEXT_ENTRY_TEMPLATE, CONTEXT_HEADER, MAX_CONTENT_CHARS, RAG_PROMPT_TEMPLATE, TRUNCATION_MARKER
from ragchat.src.core.models import ScoredResult


def truncate_content(content: str, limit: int = MAX_CONTENT_CHARS) -> str:
    """Cut *content* to at most *limit* characters, marker included."""
    if len(content) <= limit:
        return content
    return content[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def format_context(results: Sequence[ScoredResult]) -> str:
    """
    Render ranked results as a numbered context block.

    Each entry carries ``[n] <title>`` and the document body truncated to
    ``MAX_CONTENT_CHARS``.  An empty sequence yields the header alone,
    which callers treat as "no usable context".
    """
    entries = [
        CONTEXT_ENTRY_TEMPLATE.format(index=i, title=result.document.title, content=truncate_content(result.document.content))
        for i, result in enumerate(results, 1)
    ]
    return CONTEXT_HEADER + "\n\n".join(entries)


def augment_prompt(query: str, context: str) -> str:
    """Combine the question and the context block into the outgoing prompt."""
    return RAG_PROMPT_TEMPLATE.format(question=query, context=context)
