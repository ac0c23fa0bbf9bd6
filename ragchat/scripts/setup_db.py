"""
RagChat - Document Store Setup & Ingestion Script
==================================================
CLI entry point that orchestrates:
    1. Load settings (fail-fast on a bad ``.env``).
    2. Optionally drop the existing document table.  This needs only the
       store settings, so ``--drop-only`` works without embedding keys.
    3. Build the ``RAGManager`` and run the ``IngestionPipeline`` over a source directory.
    4. Print a structured execution summary.

Flags:
    --source DIR  Directory to ingest (default: ``settings.DATA_RAW_DIR``).
    --drop        Drop the document table before ingesting.
    --drop-only   Drop the document table and exit.

Usage:
    python -m ragchat.scripts.setup_db
    python -m ragchat.scripts.setup_db --source ./docs --drop
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ragchat.config.settings import Settings
    from ragchat.src.database.document_store import DocumentStore


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="setup_db", description="RagChat — initialise the document store and ingest a directory of documents.")
    parser.add_argument("--source", type=Path, default=None, help="Directory of .txt/.md files to ingest.")
    parser.add_argument("--drop", action="store_true", default=False, help="Drop the document table before ingesting.")
    parser.add_argument("--drop-only", action="store_true", default=False, help="Drop the document table and exit (no ingestion).")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    try:
        from ragchat.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}\n")
        return 1

    from ragchat.src.core.exceptions import ConfigurationError
    from ragchat.src.core.ingestor import IngestionPipeline
    from ragchat.src.core.rag_engine import RAGManager
    from ragchat.src.database.document_store import DocumentStore
    from ragchat.src.utils.logger import get_logger

    logger = get_logger(__name__)

    if not settings.RAG_ENABLED:
        logger.error("RAG_ENABLED is false — nothing to ingest into.")
        return 1

    source = args.source or settings.DATA_RAW_DIR
    _print_header(settings, source)

    try:
        if args.drop or args.drop_only:
            _drop_table(DocumentStore.from_settings(settings))
            if args.drop_only:
                logger.info("--drop-only: Table dropped. Exiting.")
                return 0
        rag = RAGManager.from_settings(settings)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    async with rag:
        pipeline = IngestionPipeline(rag, source, max_workers=settings.MAX_WORKERS)
        summary = await pipeline.run()

    _print_footer(summary)
    return 1 if summary["files_failed"] else 0


def _drop_table(store: DocumentStore) -> None:
    """Drop the document table through *store*, then release it."""
    try:
        store.drop_table()
    finally:
        store.close()


def _print_header(settings: Settings, source: Path) -> None:
    print()
    print("=" * 60)
    print("  RAGCHAT — Document Store Setup & Ingestion")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")
    print(f"  LanceDB URI  : {settings.LANCEDB_URI}")
    print(f"  Table        : {settings.LANCEDB_TABLE_NAME}")
    print(f"  Embeddings   : {settings.EMBEDDING_PROVIDER}")
    print(f"  Source dir   : {source}")
    print(f"  Workers      : {settings.MAX_WORKERS}")
    print("=" * 60)
    print()


def _print_footer(summary: dict) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Total files scanned  : {summary['total_files']}")
    print(f"  Files ingested       : {summary['files_ingested']}")
    print(f"  Files skipped        : {summary['files_skipped']}")
    print(f"  Files failed         : {summary['files_failed']}")
    print(f"  Elapsed              : {summary['elapsed_seconds']:>8.2f}s")
    print("=" * 60)
    print()


def main(argv: list[str] | None = None) -> None:
    t_start = time.perf_counter()
    code = asyncio.run(_run(_parse_args(argv)))
    print(f"Done in {time.perf_counter() - t_start:.2f}s.")
    sys.exit(code)


if __name__ == "__main__":
    main()
