# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Streamable HTTP Server
Maps POST/GET/DELETE on the MCP endpoint onto SessionManager operations.
"""

import asyncio
import json
import logging
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from mcp_runtime.core.errors import INVALID_REQUEST, PARSE_ERROR
from mcp_runtime.event_store import EventStore
from mcp_runtime.http_server import RequestHandlers
from mcp_runtime.jsonrpc import (
    build_bad_request_error,
    build_error_response,
    build_internal_error,
    is_initialize_request,
)
from mcp_runtime.session_manager import EndpointFactory, SessionManager, generate_session_id
from mcp_runtime.transport import MCP_SESSION_ID_HEADER

logger = logging.getLogger(__name__)


class StreamableHTTPServer:
    """Request handler for the streamable HTTP transport, mounted on the base HTTP app"""

    server_type = "streamable"

    def __init__(
        self,
        endpoint_factory: EndpointFactory,
        endpoint_path: str = "/mcp",
        event_store: Optional[EventStore] = None,
        session_timeout_seconds: int = 3600,
        session_reap_interval: float = 60.0,
        session_id_generator: Callable[[], str] = generate_session_id
    ):
        self.endpoint_path = endpoint_path
        self.session_reap_interval = session_reap_interval
        self.sessions = SessionManager(
            endpoint_factory=endpoint_factory,
            event_store=event_store,
            session_id_generator=session_id_generator,
            session_timeout_seconds=session_timeout_seconds,
        )
        self._reaper_task: Optional[asyncio.Task] = None

    async def handle_request(self, request: Request) -> Response:
        """Route one HTTP request by method; other paths and methods are 404"""
        if request.url.path.rstrip("/") != self.endpoint_path.rstrip("/"):
            return PlainTextResponse("Not found", status_code=404)

        if request.method == "POST":
            return await self.handle_post(request)
        if request.method == "GET":
            return await self.handle_get(request)
        if request.method == "DELETE":
            return await self.handle_delete(request)
        return PlainTextResponse("Not found", status_code=404)

    # ===== POST =====

    async def handle_post(self, request: Request) -> Response:
        try:
            content_type = request.headers.get("content-type", "")
            if "application/json" not in content_type:
                return JSONResponse(
                    build_error_response(
                        None, INVALID_REQUEST,
                        "Unsupported Media Type: Content-Type must be application/json"
                    ),
                    status_code=415,
                )

            raw = await request.body()
            try:
                body = json.loads(raw)
            except ValueError:
                return JSONResponse(
                    build_error_response(None, PARSE_ERROR, "Parse error: Invalid JSON"),
                    status_code=400,
                )

            session_id = request.headers.get(MCP_SESSION_ID_HEADER)
            session = self.sessions.get(session_id)
            if session is not None:
                return await session.transport.handle_post(request, body)

            if not session_id and is_initialize_request(body):
                return await self._initialize_session(request, body)

            logger.warning(f"Rejected POST without a valid session (mcp-session-id={session_id!r})")
            return JSONResponse(build_bad_request_error(), status_code=400)
        except Exception:
            logger.exception("Error handling MCP POST request")
            return JSONResponse(build_internal_error(), status_code=500)

    async def _initialize_session(self, request: Request, body) -> Response:
        session = self.sessions.create_session()
        logger.info(f"New session created: {session.session_id}")
        try:
            response = await session.transport.handle_post(request, body)
        except Exception:
            await self.sessions.close_session(session.session_id)
            raise

        if not session.endpoint.initialized:
            logger.warning(f"Initialize handshake failed, discarding session {session.session_id}")
            await self.sessions.close_session(session.session_id)
            del response.headers[MCP_SESSION_ID_HEADER]
        return response

    # ===== GET =====

    async def handle_get(self, request: Request) -> Response:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if not session_id:
            return PlainTextResponse("Bad Request: No sessionId", status_code=400)

        session = self.sessions.get(session_id)
        if session is None:
            return PlainTextResponse("Bad Request: No active transport", status_code=400)

        try:
            return await session.transport.handle_get(request)
        except Exception:
            logger.exception(f"Error opening event stream for session {session_id}")
            return JSONResponse(build_internal_error(), status_code=500)

    # ===== DELETE =====

    async def handle_delete(self, request: Request) -> Response:
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        if not session_id:
            return PlainTextResponse("Bad Request: Invalid or missing sessionId", status_code=400)

        session = self.sessions.begin_close(session_id)
        if session is None:
            return PlainTextResponse("Bad Request: No active transport", status_code=400)

        try:
            response = await session.transport.handle_delete(request)
        except Exception:
            logger.exception(f"Error handling DELETE for session {session_id}")
            response = JSONResponse(build_internal_error(), status_code=500)
        finally:
            await self.sessions.finish_close(session)
        return response

    # ===== LIFECYCLE =====

    async def startup(self) -> None:
        """Start the idle session reaper when a timeout is configured"""
        if self.sessions.session_timeout_seconds > 0 and self._reaper_task is None:
            self._reaper_task = asyncio.ensure_future(
                self.sessions.run_reaper(self.session_reap_interval)
            )
            logger.info(
                f"Session reaper started (timeout={self.sessions.session_timeout_seconds}s, "
                f"interval={self.session_reap_interval}s)"
            )

    async def cleanup(self) -> None:
        """Shutdown hook: stop the reaper and close every session"""
        if self._reaper_task is not None:
            self._reaper_task.cancel()
            try:
                await self._reaper_task
            except asyncio.CancelledError:
                pass
            self._reaper_task = None

        active = len(self.sessions)
        if active:
            logger.info(f"Closing {active} active session(s)")
        await self.sessions.close_all()

    def request_handlers(self) -> RequestHandlers:
        return RequestHandlers(
            handle_request=self.handle_request,
            server_type=self.server_type,
            startup=self.startup,
            cleanup=self.cleanup,
        )
