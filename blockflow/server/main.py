"""
FastAPI + Socket.IO server for the block editor.

Start with:
    blockflow-server

Or via uvicorn directly:
    uvicorn blockflow.server.main:socket_app --port 3001 --reload
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, load_settings
from .routes.flow_routes import router
from .trace.socket_server import create_socket_app

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="BlockFlow API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


settings = load_settings()
app = create_app(settings)

# socket_app is the top-level ASGI app passed to uvicorn.
# Socket.IO connections are handled at the root; all other requests are
# forwarded to the inner FastAPI app.
socket_app = create_socket_app(app, settings.cors_origins)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting BlockFlow server on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "blockflow.server.main:socket_app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
