# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Base HTTP Server
FastAPI app with CORS, /health and /ping, and a catch-all route that hands
every other request to a transport request handler. Served by uvicorn with
process-wide SIGINT/SIGTERM handling.
"""

import asyncio
import contextlib
import logging
import signal
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from mcp_runtime.transport import LAST_EVENT_ID_HEADER, MCP_SESSION_ID_HEADER

logger = logging.getLogger(__name__)

ShutdownCallback = Callable[[], Awaitable[None]]


@dataclass
class RequestHandlers:
    """What a transport server plugs into the base HTTP app"""
    handle_request: Callable[[Request], Awaitable[Response]]
    server_type: str
    startup: Optional[Callable[[], Awaitable[None]]] = None
    cleanup: Optional[Callable[[], Awaitable[None]]] = None


def create_base_app(handlers: RequestHandlers, title: str = "MCP Server") -> FastAPI:
    """Build the FastAPI app hosting a transport request handler"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if handlers.startup is not None:
            await handlers.startup()
        yield
        if handlers.cleanup is not None:
            try:
                await handlers.cleanup()
            except Exception:
                logger.exception("Error during transport cleanup")

    app = FastAPI(title=title, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    # Reflect the caller's Origin; a literal "*" cannot be combined with credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[MCP_SESSION_ID_HEADER, LAST_EVENT_ID_HEADER],
    )

    @app.get("/health")
    async def health():
        return PlainTextResponse("OK")

    @app.get("/ping")
    async def ping():
        return PlainTextResponse("pong")

    @app.api_route(
        "/{full_path:path}",
        methods=["GET", "POST", "DELETE", "PUT", "PATCH", "OPTIONS", "HEAD"],
        include_in_schema=False,
    )
    async def dispatch(request: Request):
        try:
            return await handlers.handle_request(request)
        except Exception:
            logger.exception(f"Error handling {request.method} {request.url.path}")
            return JSONResponse({"error": "Internal server error"}, status_code=500)

    return app


# ===== SIGNAL HANDLING =====

_signal_handlers_installed = False
_shutdown_callbacks: List[ShutdownCallback] = []
_shutdown_tasks: Set[asyncio.Task] = set()


def _shutdown_task_done(task: asyncio.Task) -> None:
    _shutdown_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Shutdown callback failed", exc_info=task.exception())


def _on_signal(signum: int) -> None:
    logger.info(f"Received {signal.Signals(signum).name}, shutting down")
    for callback in list(_shutdown_callbacks):
        task = asyncio.ensure_future(callback())
        _shutdown_tasks.add(task)
        task.add_done_callback(_shutdown_task_done)


def install_signal_handlers(callback: ShutdownCallback) -> Callable[[], None]:
    """
    Register a shutdown callback, installing SIGINT/SIGTERM handlers on the
    running loop the first time only.

    Returns:
        A function that unregisters the callback
    """
    global _signal_handlers_installed
    _shutdown_callbacks.append(callback)

    if not _signal_handlers_installed:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, _on_signal, signum)
            except NotImplementedError:
                signal.signal(signum, lambda s, f: loop.call_soon_threadsafe(_on_signal, s))
        _signal_handlers_installed = True
        logger.debug("Installed SIGINT/SIGTERM handlers")

    def remove() -> None:
        if callback in _shutdown_callbacks:
            _shutdown_callbacks.remove(callback)

    return remove


def remove_signal_handlers() -> None:
    """Drop every registered callback and uninstall the handlers"""
    global _signal_handlers_installed
    _shutdown_callbacks.clear()
    if not _signal_handlers_installed:
        return
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    for signum in (signal.SIGINT, signal.SIGTERM):
        if loop is not None:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signum)
        signal.signal(signum, signal.SIG_DFL)
    _signal_handlers_installed = False


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to install_signal_handlers()"""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class HTTPServer:
    """Serves a transport's request handlers with uvicorn"""

    def __init__(
        self,
        handlers: RequestHandlers,
        host: str = "0.0.0.0",
        port: int = 3322,
        endpoint: str = "/mcp",
        log_level: str = "info",
        title: str = "MCP Server"
    ):
        self.handlers = handlers
        self.host = host
        self.port = port
        self.endpoint = endpoint
        self.log_level = log_level
        self.app = create_base_app(handlers, title=title)
        self._server: Optional[_Server] = None
        self._shutting_down = False

    async def serve(self) -> None:
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self.log_level.lower(),
            access_log=False,
        )
        self._server = _Server(config)
        remove = install_signal_handlers(self.shutdown)

        logger.info(
            f"{self.handlers.server_type} MCP server listening on "
            f"http://{self.host}:{self.port}{self.endpoint}"
        )
        try:
            await self._server.serve()
        finally:
            remove()
            logger.info("Server closed")

    async def shutdown(self) -> None:
        """Run the transport cleanup hook, then stop accepting connections"""
        if self._shutting_down:
            logger.warning("Shutdown already in progress, forcing exit")
            if self._server is not None:
                self._server.force_exit = True
            return
        self._shutting_down = True

        if self.handlers.cleanup is not None:
            try:
                await self.handlers.cleanup()
            except Exception:
                logger.exception("Error during transport cleanup")

        if self._server is not None:
            self._server.should_exit = True
