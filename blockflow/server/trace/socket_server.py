"""
Socket.IO server.

Uses python-socketio in ASGI mode so it can wrap FastAPI.
`create_socket_app(fastapi_app)` returns the composite ASGI application to
pass to uvicorn.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import socketio

from .trace_emitter import global_tracer

logger = logging.getLogger(__name__)


def create_socket_server(cors_origins: List[str]) -> socketio.AsyncServer:
    server = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins="*" if cors_origins == ["*"] else cors_origins,
        logger=False,
        engineio_logger=False,
    )

    # Loop the server runs on; recorded when a client connects
    server_loop: Dict[str, asyncio.AbstractEventLoop] = {}

    @server.event
    async def connect(sid: str, environ: dict) -> None:
        server_loop["loop"] = asyncio.get_running_loop()
        logger.debug("Trace client connected: %s", sid)

    @server.event
    async def disconnect(sid: str) -> None:
        logger.debug("Trace client disconnected: %s", sid)

    def _on_trace(event: Dict[str, Any]) -> None:
        """
        Called synchronously by TraceEmitter.fire(), either on the event loop
        or from a threadpool worker running a sync route.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.create_task(server.emit("trace", event))
            return
        target = server_loop.get("loop")
        if target is not None and target.is_running():
            asyncio.run_coroutine_threadsafe(server.emit("trace", event), target)

    global_tracer.on_trace(_on_trace)
    return server


def create_socket_app(fastapi_app: Any, cors_origins: List[str]) -> socketio.ASGIApp:
    """Wrap *fastapi_app* inside a Socket.IO ASGI application."""
    return socketio.ASGIApp(create_socket_server(cors_origins), other_asgi_app=fastapi_app)
