"""
RagChat - Application Entry Point
==================================
FastAPI application factory.  Registers the routes from
``ragchat.src.api.routes``, configures CORS, and owns the lifetime of
the shared resources.

Resource ownership
------------------
The lifespan handler builds the ``RAGManager`` and ``StreamingRelay``
and registers their teardown on an ``AsyncExitStack``.  Shutdown
unwinds the stack whether it was triggered by a normal exit, a failed
startup, or a signal translated by uvicorn, so the store connection is
always released.

Usage:
    uvicorn --factory ragchat.src.main:create_app
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ragchat.config.settings import settings
from ragchat.src.api.routes import router
from ragchat.src.core.rag_engine import RAGManager
from ragchat.src.core.streaming import StreamingRelay
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)

RAGFactory = Callable[[], RAGManager]
RelayFactory = Callable[[], StreamingRelay]


def create_app(rag_factory: RAGFactory | None = None, relay_factory: RelayFactory | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    rag_factory
        Builds the ``RAGManager`` at startup.  Defaults to
        ``RAGManager.from_settings(settings)``.
    relay_factory
        Builds the ``StreamingRelay`` at startup.  Defaults to
        ``StreamingRelay.from_settings(settings)``.
    """
    make_rag = rag_factory or (lambda: RAGManager.from_settings(settings))
    make_relay = relay_factory or (lambda: StreamingRelay.from_settings(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as resources:
            rag = await resources.enter_async_context(make_rag())
            app.state.rag = rag
            app.state.relay = make_relay()
            logger.info("[APP] Started — RAG enabled: %s", rag.is_enabled)
            yield
            logger.info("[APP] Shutting down — releasing resources.")

    app = FastAPI(title="RagChat", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["POST", "OPTIONS", "GET"],
        allow_headers=["Content-Type"],
    )
    app.include_router(router)
    return app
