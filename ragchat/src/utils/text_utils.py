"""
RagChat - Text Utilities
=========================
Helpers for text cleaning and filename-derived titles.

These utilities are consumed by the ``IngestionPipeline`` and should
remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path

# Control characters (C0/C1) except \n, \r, \t, plus BOM, zero-width
# characters, soft hyphens and directional marks.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")
_HORIZONTAL_SPACE_RE = re.compile(r"[^\S\n]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_TITLE_SEPARATORS_RE = re.compile(r"[_\-.]+")


def clean_text(text: str) -> str:
    """
    Normalise raw file text for ingestion.

    NFC-normalises, drops invisible characters, squeezes horizontal
    whitespace, trims each line and keeps at most one blank line between
    paragraphs.
    """
    normalised = _NON_PRINTABLE_RE.sub("", unicodedata.normalize("NFC", text))
    lines = [_HORIZONTAL_SPACE_RE.sub(" ", line).strip() for line in normalised.splitlines()]
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()


def title_from_filename(filename: str) -> str:
    """
    Derive a human-readable title from a file name.

    Examples::

        "artificial_intelligence.txt" → "artificial intelligence"
        "Neo4j-Intro.v2.md"           → "Neo4j Intro v2"
        "___.txt"                     → "___"
    """
    stem = Path(filename).stem
    title = _TITLE_SEPARATORS_RE.sub(" ", stem).strip()
    return title or stem
