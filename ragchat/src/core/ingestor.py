"""
RagChat - IngestionPipeline
============================
Reads a directory of plain-text documents, cleans each file and ingests
it as a single ``Document`` through the ``RAGManager``.

Key design decisions:
    • **One file, one document** – no chunking; the context assembler
      bounds each body at query time.
    • **Stable ids** – the id is a ``uuid5`` of the file name, so
      re-running the pipeline replaces documents instead of duplicating
      them (upsert-by-id).
    • **Concurrency** – files are ingested concurrently, bounded by an
      ``asyncio.Semaphore`` of ``max_workers``.
    • **Failure isolation** – a file that fails to embed or store is
      logged and counted; the rest of the run continues.

Usage:
    from ragchat.src.core.ingestor import IngestionPipeline
    pipeline = IngestionPipeline(rag_manager, source_dir)
    summary  = await pipeline.run()
"""

from __future__ import annotations

import asyncio
import time
import uuid
from pathlib import Path
from typing import Any

from ragchat.src.core.exceptions import InvalidDocument, NotEnabled, RAGError
from ragchat.src.core.models import Document
from ragchat.src.core.rag_engine import RAGManager
from ragchat.src.utils.logger import get_logger
from ragchat.src.utils.text_utils import clean_text, title_from_filename

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = {".txt", ".md"}

# Namespace for file-derived document ids.
_DOCUMENT_NAMESPACE = uuid.UUID("6f1c3d2a-8e4b-5a7c-9d0e-1f2a3b4c5d6e")

_MAX_WORKERS = 4

# Per-file outcomes.
_INGESTED, _SKIPPED, _FAILED = "ingested", "skipped", "failed"


def document_id_for(filename: str) -> str:
    """Deterministic document id for a source file name."""
    return str(uuid.uuid5(_DOCUMENT_NAMESPACE, filename))


class IngestionPipeline:
    """
    Bulk ingestion: read → clean → embed → store.

    Parameters
    ----------
    rag_manager
        An *enabled* ``RAGManager``.
    source_dir
        Directory scanned (non-recursively) for ``.txt`` / ``.md`` files.
    max_workers
        Maximum files in flight at once.
    """

    def __init__(self, rag_manager: RAGManager, source_dir: Path, max_workers: int = _MAX_WORKERS) -> None:
        if not rag_manager.is_enabled:
            raise NotEnabled("bulk ingestion requires RAG to be enabled")
        self._rag = rag_manager
        self._source_dir = Path(source_dir)
        self._max_workers = max_workers


    async def run(self) -> dict[str, Any]:
        """
        Ingest every supported file in the source directory.

        Returns
        -------
        dict
            ``total_files``, ``files_ingested``, ``files_skipped``,
            ``files_failed``, ``elapsed_seconds``.
        """
        t_start = time.perf_counter()

        if not self._source_dir.exists():
            logger.warning("[INGEST] Source directory does not exist: %s", self._source_dir)
            return self._summary([], time.perf_counter() - t_start)

        files = sorted(f for f in self._source_dir.iterdir() if f.is_file() and f.suffix.lower() in _SUPPORTED_EXTENSIONS)
        if not files:
            logger.warning("[INGEST] No supported files found in %s", self._source_dir)
            return self._summary([], time.perf_counter() - t_start)

        logger.info("[INGEST] Starting — %d file(s) found in %s", len(files), self._source_dir)

        semaphore = asyncio.Semaphore(self._max_workers)

        async def _bounded(path: Path) -> str:
            async with semaphore:
                return await self._ingest_file(path)

        outcomes = await asyncio.gather(*(_bounded(path) for path in files))

        elapsed = time.perf_counter() - t_start
        summary = self._summary(outcomes, elapsed)
        logger.info("[INGEST] Complete — %d ingested, %d skipped, %d failed in %.2fs.", summary["files_ingested"], summary["files_skipped"], summary["files_failed"], elapsed)
        return summary


    async def _ingest_file(self, filepath: Path) -> str:
        """Ingest one file and report its outcome."""
        try:
            raw_text = await asyncio.to_thread(self._read_file, filepath)
        except OSError as exc:
            logger.error("[INGEST] Cannot read %s: %s", filepath.name, exc)
            return _FAILED

        content = clean_text(raw_text)
        if not content:
            logger.warning("[INGEST] Skipping empty file: %s", filepath.name)
            return _SKIPPED

        doc = Document(id=document_id_for(filepath.name), title=title_from_filename(filepath.name), content=content, url=filepath.resolve().as_uri())

        try:
            await self._rag.ingest(doc)
        except InvalidDocument:
            logger.warning("[INGEST] Skipping %s: no usable title or content.", filepath.name)
            return _SKIPPED
        except RAGError as exc:
            logger.error("[INGEST] Failed to ingest %s: %s", filepath.name, exc)
            return _FAILED

        logger.debug("[INGEST] %s → document %s (%d chars).", filepath.name, doc.id, len(content))
        return _INGESTED


    @staticmethod
    def _read_file(filepath: Path) -> str:
        """Read UTF-8 text, falling back to Latin-1 for legacy files."""
        try:
            return filepath.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return filepath.read_text(encoding="latin-1")


    @staticmethod
    def _summary(outcomes: list[str], elapsed: float) -> dict[str, Any]:
        return {
            "total_files": len(outcomes),
            "files_ingested": outcomes.count(_INGESTED),
            "files_skipped": outcomes.count(_SKIPPED),
            "files_failed": outcomes.count(_FAILED),
            "elapsed_seconds": round(elapsed, 2),
        }
