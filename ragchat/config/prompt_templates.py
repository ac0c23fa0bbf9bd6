"""
RagChat - Prompt Templates
===========================
Centralised prompt text for the retrieval pipeline.  All prompts live
here so they can be versioned and reviewed independently of application
logic.

Exports
-------
CONTEXT_HEADER, CONTEXT_ENTRY_TEMPLATE, MAX_CONTENT_CHARS,
TRUNCATION_MARKER, RAG_PROMPT_TEMPLATE.
"""

# ══════════════════════════════════════════════════════════════════════
#  CONTEXT BLOCK
# ══════════════════════════════════════════════════════════════════════

CONTEXT_HEADER: str = "\nRelevant context:\n"

# One numbered entry per ranked document; entries are joined by a blank line.
CONTEXT_ENTRY_TEMPLATE: str = "[{index}] {title}\n{content}"

# Ceiling on each document body, marker included.
MAX_CONTENT_CHARS: int = 500
TRUNCATION_MARKER: str = "..."


# ══════════════════════════════════════════════════════════════════════
#  RAG PROMPT TEMPLATE
# ══════════════════════════════════════════════════════════════════════

RAG_PROMPT_TEMPLATE: str = """I'll provide you with some relevant context to help answer the following question.

Question: {question}

{context}

Please provide an answer based on the context provided. If the context doesn't contain relevant information, say so and try to provide a general answer."""
