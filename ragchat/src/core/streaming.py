"""
RagChat - Streaming Relay
==========================
Forwards a chat exchange to an OpenAI-compatible generation backend and
relays the reply fragment by fragment.

Contract
--------
``stream_chat(history, final_message)`` is an async generator of text
deltas:

- each non-empty fragment is yielded as soon as it arrives, in order;
- normal exhaustion means the backend ended the stream cleanly;
- ``StreamTerminated`` is raised if the backend fails mid-stream.
  Fragments already yielded are not retracted.

History entries tagged ``user`` or ``assistant`` are forwarded with the
matching role; anything else is dropped.  No retries, no internal
timeout.  Closing the generator early (client gone, request cancelled)
closes the backend stream as well.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from ragchat.config.settings import Settings
from ragchat.src.core.exceptions import StreamTerminated
from ragchat.src.core.models import ChatMessage
from ragchat.src.utils.logger import get_logger

logger = get_logger(__name__)

_ROLE_MAP: dict[str, type[BaseMessage]] = {
    "user": HumanMessage,
    "assistant": AIMessage,
}


def build_messages(history: Iterable[ChatMessage], final_message: str) -> list[BaseMessage]:
    """Map the history onto LangChain messages and append the final user turn."""
    messages: list[BaseMessage] = []
    for entry in history:
        message_cls = _ROLE_MAP.get(entry.role)
        if message_cls is None:
            logger.debug("[RELAY] Dropping history entry with role %r.", entry.role)
            continue
        messages.append(message_cls(content=entry.content))
    messages.append(HumanMessage(content=final_message))
    return messages


def _chunk_text(chunk: object) -> str:
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content-block form: keep the text parts only.
        return "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
    return ""


class StreamingRelay:
    """
    Streams completions from a LangChain chat model.

    Parameters
    ----------
    llm
        Any chat model exposing ``astream(messages)`` (e.g. ``ChatOpenAI``).
    """

    __slots__ = ("_llm",)

    def __init__(self, llm: object) -> None:
        self._llm = llm


    @classmethod
    def from_settings(cls, config: Settings) -> StreamingRelay:
        """Build a relay over ``ChatOpenAI`` pointed at ``LLM_BASE_URL``."""
        from langchain_openai import ChatOpenAI

        llm = ChatOpenAI(
            model=config.LLM_MODEL,
            api_key=config.LLM_API_KEY,
            base_url=config.LLM_BASE_URL,
            temperature=config.LLM_TEMPERATURE,
            streaming=True,
        )
        logger.info("[RELAY] Generation backend: %s (base_url=%s)", config.LLM_MODEL, config.LLM_BASE_URL or "default")
        return cls(llm)


    async def stream_chat(self, history: Iterable[ChatMessage], final_message: str) -> AsyncIterator[str]:
        """
        Yield text deltas for the exchange.

        Raises
        ------
        StreamTerminated
            The backend stream failed; earlier deltas were already yielded.
        """
        messages = build_messages(history, final_message)
        t_start = time.perf_counter()
        fragments = 0

        try:
            async with aclosing(self._llm.astream(messages)) as stream:  # type: ignore[attr-defined]
                async for chunk in stream:
                    text = _chunk_text(chunk)
                    if not text:
                        continue
                    fragments += 1
                    yield text
        except StreamTerminated:
            raise
        except Exception as exc:
            logger.error("[RELAY] Stream failed after %d fragment(s): %s", fragments, exc)
            raise StreamTerminated(f"generation stream failed: {exc}") from exc

        logger.info("[RELAY] Stream complete: %d fragment(s) in %.1fms.", fragments, (time.perf_counter() - t_start) * 1000)
