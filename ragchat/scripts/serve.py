"""
RagChat - HTTP Server
======================
Runs the FastAPI app under uvicorn.  SIGINT/SIGTERM trigger the app's
lifespan shutdown, which releases the document store connection.

Usage:
    python -m ragchat.scripts.serve
"""

from __future__ import annotations

import uvicorn

from ragchat.config.settings import settings


def main() -> None:
    uvicorn.run("ragchat.src.main:create_app", factory=True, host=settings.HOST, port=settings.PORT, log_level="debug" if settings.ENV == "dev" else "warning")


if __name__ == "__main__":
    main()
