"""
RagChat - Centralized Configuration
====================================
One ``BaseSettings`` model reads every option from the process
environment, falling back to the ``.env`` file at the project root.

Secrets
-------
- ``LLM_API_KEY`` is a ``SecretStr`` without a default: importing this
  module fails with a ``ValidationError`` until it is set, and the value
  is masked in every repr.
- ``LANCEDB_API_KEY`` and ``GOOGLE_API_KEY`` are optional ``SecretStr``
  fields.  They are only demanded when the feature that needs them is
  switched on, and that check happens when the ``RAGManager`` is built
  (see ``RAGManager.from_settings``), not here.

Leniency
--------
``RAG_ENABLED`` and ``RAG_CONTEXT_LIMIT`` never abort startup.  A value
that cannot be parsed is logged and replaced by its default.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# The project logger factory reads ``settings`` itself, so validators
# report through the plain stdlib logger.
_log = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "n", "no", "off"}

DEFAULT_CONTEXT_LIMIT = 5


class Settings(BaseSettings):
    """
    Runtime configuration for the chat relay and the ingestion CLI.

    Field names match the environment variables one to one.  The only
    field without a default is ``LLM_API_KEY``.

    Attributes
    ----------
    ENV : Literal["dev", "prod"]
        ``dev`` logs at DEBUG, ``prod`` at WARNING.
    RAG_ENABLED : bool
        Whether prompts are augmented with retrieved documents.
    RAG_CONTEXT_LIMIT : int
        Maximum documents considered per query.
    LANCEDB_URI : str | None
        Local directory or ``db://`` LanceDB Cloud URI of the document
        store.  Required when RAG is enabled.
    LANCEDB_API_KEY : SecretStr | None
        LanceDB Cloud key.  Required for ``db://`` URIs.
    LANCEDB_TABLE_NAME : str
        Table holding the documents.
    STORE_SCAN_LIMIT : int
        Page size used while reading a keyword filter's matches.
    EMBEDDING_PROVIDER : Literal["static", "google"]
        ``static`` returns a fixed stub vector; ``google`` calls Gemini.
    LLM_BASE_URL : str | None
        OpenAI-compatible endpoint of the generation backend.
    LLM_MODEL : str
        Model identifier forwarded with every chat request.
    LLM_API_KEY : SecretStr
        Generation backend credential.  **Required.**
    MAX_WORKERS : int
        Concurrent files during bulk ingestion.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_RAW_DIR: Path = BASE_DIR / "data" / "raw"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── Retrieval ──────────────────────────────────────────────────────
    RAG_ENABLED: bool = True
    RAG_CONTEXT_LIMIT: int = DEFAULT_CONTEXT_LIMIT

    # ── LanceDB (credentials checked only when RAG is enabled) ─────────
    LANCEDB_URI: str | None = None
    LANCEDB_API_KEY: SecretStr | None = None
    LANCEDB_REGION: str = "us-east-1"
    LANCEDB_TABLE_NAME: str = "documents"
    STORE_SCAN_LIMIT: int = 1000

    # ── Embeddings ─────────────────────────────────────────────────────
    EMBEDDING_PROVIDER: Literal["static", "google"] = "static"
    EMBEDDING_MODEL: str = "models/gemini-embedding-001"
    GOOGLE_API_KEY: SecretStr | None = None

    # ── Generation Backend (REQUIRED key — no default) ─────────────────
    LLM_BASE_URL: str | None = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_API_KEY: SecretStr
    LLM_TEMPERATURE: float = 0.7

    # ── HTTP ───────────────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    CORS_ORIGINS: list[str] = ["*"]

    # ── Concurrency ────────────────────────────────────────────────────
    MAX_WORKERS: int = 4

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("RAG_ENABLED", mode="before")
    @classmethod
    def _lenient_enabled(cls, v: object) -> object:
        if isinstance(v, bool) or v is None:
            return True if v is None else v
        text = str(v).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        _log.warning("Invalid RAG_ENABLED value %r, defaulting to true.", v)
        return True


    @field_validator("RAG_CONTEXT_LIMIT", mode="before")
    @classmethod
    def _lenient_context_limit(cls, v: object) -> int:
        try:
            limit = int(str(v).strip())
        except (TypeError, ValueError):
            _log.warning("Invalid RAG_CONTEXT_LIMIT value %r, defaulting to %d.", v, DEFAULT_CONTEXT_LIMIT)
            return DEFAULT_CONTEXT_LIMIT
        if limit <= 0:
            _log.warning("RAG_CONTEXT_LIMIT must be positive, got %d; defaulting to %d.", limit, DEFAULT_CONTEXT_LIMIT)
            return DEFAULT_CONTEXT_LIMIT
        return limit


    @field_validator("STORE_SCAN_LIMIT")
    @classmethod
    def _scan_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"STORE_SCAN_LIMIT must be ≥ 1, got {v}")
        return v


    @field_validator("MAX_WORKERS")
    @classmethod
    def _workers_range(cls, v: int) -> int:
        if not 1 <= v <= 16:
            raise ValueError(f"MAX_WORKERS must be 1–16, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Shared by every module:
#     from ragchat.config.settings import settings
settings = Settings()
