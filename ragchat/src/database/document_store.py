"""
RagChat - DocumentStore
========================
OOP wrapper around LanceDB providing a clean interface for:
  • Table creation with a strict PyArrow schema
  • Upsert-by-id of whole documents
  • Keyword candidate search (case-sensitive substring filter)

Design decisions:
  • **Singleton DB connection** — ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per URI to avoid file-lock issues.
  • **Scoped table handles** — every operation opens its own table
    handle and drops it on return; nothing is held across a request.
  • **Typed decoding** — rows are turned into ``Document`` records by
    one decode function per field, each with an explicit default.
  • **Store-defined order** — the whole filtered set is read in pages
    of ``scan_limit`` rows, then ordered by how many keywords each row
    contains (case-sensitive); ties keep scan order.

Usage:
    store = DocumentStore("/var/lib/ragchat/lancedb")
    store.upsert(Document(id="1", title="AI", content="..."))
    docs = store.search_by_keywords({"AI"}, limit=5)
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

import lancedb
import pyarrow as pa

from ragchat.config.settings import Settings
from ragchat.src.core.exceptions import ConfigurationError, StoreUnavailable, StoreWriteFailed
from ragchat.src.core.models import Document
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
DocumentRow = dict[str, object]

# ── LanceDB Table Schema ──────────────────────────────────────────────
DOCUMENT_SCHEMA = pa.schema([
    pa.field("id", pa.utf8(), nullable=False),
    pa.field("title", pa.utf8()),
    pa.field("content", pa.utf8()),
    pa.field("url", pa.utf8()),
    pa.field("embedding_ref", pa.utf8()),
])

# ── Constants ──────────────────────────────────────────────────────────
_DEFAULT_TABLE_NAME = "documents"
_DEFAULT_SCAN_LIMIT = 1000
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def _get_connection(uri: str, api_key: str | None = None, region: str | None = None) -> lancedb.DBConnection:
    """
    Return a **singleton** ``lancedb.DBConnection`` for *uri*.

    Thread-safe via ``_DB_LOCK``.  Cloud URIs (``db://``) are opened with
    the API key and region; local paths ignore both.
    """
    if uri not in _db_connection_cache:
        with _DB_LOCK:
            if uri not in _db_connection_cache:
                logger.info("[STORE] Opening new LanceDB connection: %s", uri)
                if uri.startswith("db://"):
                    _db_connection_cache[uri] = lancedb.connect(uri, api_key=api_key, region=region)
                else:
                    _db_connection_cache[uri] = lancedb.connect(uri)
    return _db_connection_cache[uri]


def _release_connection(uri: str) -> None:
    with _DB_LOCK:
        if _db_connection_cache.pop(uri, None) is not None:
            logger.info("[STORE] Released LanceDB connection: %s", uri)


# ── Row decoding ──────────────────────────────────────────────────────

def _str_field(row: DocumentRow, name: str, default: str = "") -> str:
    value = row.get(name)
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def decode_document(row: DocumentRow) -> Document:
    """Build a ``Document`` from a raw LanceDB row."""
    return Document(
        id=_str_field(row, "id"),
        title=_str_field(row, "title"),
        content=_str_field(row, "content"),
        url=_str_field(row, "url"),
        embedding_ref=_str_field(row, "embedding_ref"),
    )


def encode_document(doc: Document) -> DocumentRow:
    return {"id": doc.id, "title": doc.title, "content": doc.content, "url": doc.url, "embedding_ref": doc.embedding_ref}


# ── Filter building ───────────────────────────────────────────────────

def _sql_like_literal(keyword: str) -> str:
    """Quote *keyword* for a ``LIKE '%…%'`` pattern, escaping wildcards."""
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    escaped = escaped.replace("'", "''")
    return f"'%{escaped}%'"


def build_keyword_filter(keywords: Iterable[str]) -> str:
    """Return a WHERE clause matching rows whose content contains any keyword."""
    clauses = [f"content LIKE {_sql_like_literal(kw)}" for kw in sorted(set(keywords)) if kw]
    return " OR ".join(clauses)


class DocumentStore:
    """
    High-level abstraction over a LanceDB document table.

    Parameters
    ----------
    uri
        Local database directory or ``db://`` LanceDB Cloud URI.
    table_name
        Table holding the documents.
    api_key
        LanceDB Cloud key (ignored for local paths).
    region
        LanceDB Cloud region (ignored for local paths).
    scan_limit
        Rows fetched per page while reading a keyword filter's matches.
    """

    __slots__ = ("_uri", "_table_name", "_api_key", "_region", "_scan_limit", "_closed")

    def __init__(self, uri: str, table_name: str = _DEFAULT_TABLE_NAME, api_key: str | None = None, region: str | None = None, scan_limit: int = _DEFAULT_SCAN_LIMIT) -> None:
        self._uri = uri
        self._table_name = table_name
        self._api_key = api_key
        self._region = region
        self._scan_limit = scan_limit
        self._closed = False


    @classmethod
    def from_settings(cls, config: Settings) -> DocumentStore:
        """
        Build the store described by ``LANCEDB_*`` and ``STORE_SCAN_LIMIT``.

        Raises
        ------
        ConfigurationError
            ``LANCEDB_URI`` is unset, or a ``db://`` URI has no API key.
        """
        uri = config.LANCEDB_URI
        if not uri:
            raise ConfigurationError("LANCEDB_URI must be set when RAG_ENABLED is true")

        api_key: str | None = None
        if uri.startswith("db://"):
            if config.LANCEDB_API_KEY is None or not config.LANCEDB_API_KEY.get_secret_value():
                raise ConfigurationError("LANCEDB_API_KEY must be set for a db:// LANCEDB_URI")
            api_key = config.LANCEDB_API_KEY.get_secret_value()

        return cls(uri, table_name=config.LANCEDB_TABLE_NAME, api_key=api_key, region=config.LANCEDB_REGION, scan_limit=config.STORE_SCAN_LIMIT)


    def _open_table(self, create: bool = False) -> lancedb.table.Table | None:
        """
        Open the document table for a single operation.

        Returns ``None`` when the table does not exist and *create* is false.
        """
        if self._closed:
            raise ConnectionError(f"store at {self._uri} has been closed")
        db = _get_connection(self._uri, self._api_key, self._region)
        if self._table_name in db.table_names():
            return db.open_table(self._table_name)
        if not create:
            return None
        logger.info("[STORE] Created new table '%s'.", self._table_name)
        return db.create_table(self._table_name, schema=DOCUMENT_SCHEMA)


    def upsert(self, doc: Document) -> None:
        """
        Insert *doc*, or replace every field of the row with the same id.

        Raises
        ------
        StoreWriteFailed
            The connection or the write failed.
        """
        try:
            table = self._open_table(create=True)
            data = pa.Table.from_pylist([encode_document(doc)], schema=DOCUMENT_SCHEMA)
            table.merge_insert("id").when_matched_update_all().when_not_matched_insert_all().execute(data)
        except Exception as exc:
            logger.error("[STORE] Upsert of document '%s' failed: %s", doc.id, exc)
            raise StoreWriteFailed(f"failed to add document: {exc}") from exc
        logger.info("[STORE] Upserted document '%s' into '%s'.", doc.id, self._table_name)


    def search_by_keywords(self, keywords: set[str], limit: int) -> list[Document]:
        """
        Return up to *limit* documents whose content contains at least one
        keyword as a case-sensitive substring.

        Ordered by the number of distinct keywords contained (descending);
        ties keep the table's scan order.

        Raises
        ------
        StoreUnavailable
            The store could not be reached or the query failed.
        """
        where = build_keyword_filter(keywords)
        if not where or limit <= 0:
            return []

        try:
            table = self._open_table()
            if table is None:
                return []
            rows = self._scan_filtered(table, where)
        except Exception as exc:
            logger.error("[STORE] Keyword search failed: %s", exc)
            raise StoreUnavailable(f"failed to execute query: {exc}") from exc

        documents = [decode_document(row) for row in rows]
        documents.sort(key=lambda d: sum(1 for kw in keywords if kw and kw in d.content), reverse=True)
        logger.debug("[STORE] Keyword filter matched %d row(s), returning %d.", len(documents), min(limit, len(documents)))
        return documents[:limit]


    def _scan_filtered(self, table: lancedb.table.Table, where: str) -> list[DocumentRow]:
        """Read every row matching *where*, one page of ``scan_limit`` rows at a time."""
        rows: list[DocumentRow] = []
        while True:
            page = table.search().where(where).offset(len(rows)).limit(self._scan_limit).to_list()
            rows.extend(page)
            if len(page) < self._scan_limit:
                return rows


    def get(self, doc_id: str) -> Document | None:
        """Fetch one document by id, or ``None``."""
        try:
            table = self._open_table()
            if table is None:
                return None
            literal = doc_id.replace("'", "''")
            rows = table.search().where(f"id = '{literal}'").limit(1).to_list()
        except Exception as exc:
            raise StoreUnavailable(f"failed to fetch document {doc_id!r}: {exc}") from exc
        return decode_document(rows[0]) if rows else None


    def count(self) -> int:
        """Return the total number of documents in the table."""
        try:
            table = self._open_table()
            if table is None:
                return 0
            return table.count_rows()
        except Exception as exc:
            raise StoreUnavailable(f"failed to count documents: {exc}") from exc


    def drop_table(self) -> None:
        """Drop the document table (used for re-ingestion)."""
        db = _get_connection(self._uri, self._api_key, self._region)
        try:
            db.drop_table(self._table_name)
            logger.info("[STORE] Dropped table '%s'.", self._table_name)
        except (ValueError, FileNotFoundError):
            logger.warning("[STORE] Table '%s' does not exist — nothing to drop.", self._table_name)


    def close(self) -> None:
        """Release the underlying connection.  Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        _release_connection(self._uri)


    def __repr__(self) -> str:
        return f"DocumentStore(uri='{self._uri}', table='{self._table_name}')"
