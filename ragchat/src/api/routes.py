"""
RagChat - API Routes
=====================
Thin controllers: validate the request, delegate to the ``RAGManager`` /
``StreamingRelay`` held on ``app.state``, and format the response.

    GET  /health     → liveness probe
    POST /documents  → ingest a document, returns its id
    POST /chat       → server-sent events; one ``token`` frame per text
                       delta, then exactly one ``done`` or ``error`` frame
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import BaseModel, Field

from ragchat.src.core.exceptions import EmbeddingFailed, InvalidDocument, NotEnabled, StoreWriteFailed, StreamTerminated
from ragchat.src.core.models import ChatMessage
from ragchat.src.core.rag_engine import RAGManager
from ragchat.src.core.streaming import StreamingRelay
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# ── Request / response schemas ────────────────────────────────────────

class MessageIn(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    messages: list[MessageIn] = Field(default_factory=list)
    message: str


class DocumentRequest(BaseModel):
    title: str = ""
    content: str = ""
    url: str = ""


class DocumentResponse(BaseModel):
    id: str


# ── Helpers ───────────────────────────────────────────────────────────

def _sse(event: dict[str, str]) -> str:
    return "data: " + json.dumps(event, ensure_ascii=False) + "\n\n"


async def _chat_events(relay: StreamingRelay, history: list[ChatMessage], message: str) -> AsyncIterator[str]:
    try:
        async for delta in relay.stream_chat(history, message):
            yield _sse({"type": "token", "text": delta})
    except StreamTerminated as exc:
        logger.error("[API] Chat stream terminated: %s", exc)
        yield _sse({"type": "error", "message": str(exc)})
        return
    yield _sse({"type": "done"})


# ── Routes ────────────────────────────────────────────────────────────

@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "OK"


@router.post("/documents", status_code=status.HTTP_201_CREATED, response_model=DocumentResponse)
async def add_document(req: DocumentRequest, request: Request) -> DocumentResponse:
    if not req.title.strip() or not req.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and content are required")

    rag: RAGManager = request.app.state.rag
    try:
        doc_id = await rag.add_document(req.title, req.content, req.url)
    except NotEnabled:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="RAG is not enabled")
    except InvalidDocument as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except (EmbeddingFailed, StoreWriteFailed) as exc:
        logger.error("[API] Error adding document: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add document")

    return DocumentResponse(id=doc_id)


@router.post("/chat")
async def chat(req: ChatRequest, request: Request) -> StreamingResponse:
    rag: RAGManager = request.app.state.rag
    relay: StreamingRelay = request.app.state.relay

    history = [ChatMessage(role=m.role, content=m.content) for m in req.messages]
    user_message = await rag.enhance(req.message)

    return StreamingResponse(
        _chat_events(relay, history, user_message),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
