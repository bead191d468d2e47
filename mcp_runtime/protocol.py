# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Protocol Endpoint
Per-session protocol state machine: capability negotiation, request
routing to the Dispatcher and tracking of in-flight tool calls.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from mcp_runtime.core.errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    InvalidParamsError,
    InvalidRequestError,
    MCPRuntimeError,
    MethodNotFoundError,
    RequestCancelledError,
)
from mcp_runtime.dispatcher import Dispatcher
from mcp_runtime.jsonrpc import (
    JSONRPC_VERSION,
    build_error_response,
    build_notification,
    build_response,
    is_notification,
    is_request,
    is_response,
)
from mcp_runtime.models import ExecutionContext

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2025-03-26", "2024-11-05"]
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

# Requests accepted before the initialize handshake
PRE_INIT_METHODS = {"initialize", "ping"}

RequestHandler = Callable[[Any, Dict[str, Any]], Awaitable[Dict[str, Any]]]


class ProtocolEndpoint:
    """
    Server side of one MCP session.

    The Registry behind the dispatcher is shared by all sessions; everything
    else here belongs to this session only. A connected transport receives
    server-to-client notifications and is closed with the endpoint.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        server_info: Dict[str, Any],
        capabilities: Dict[str, Any],
        session_id: Optional[str] = None,
        instructions: Optional[str] = None
    ):
        self.dispatcher = dispatcher
        self.server_info = server_info
        self.capabilities = capabilities
        self.session_id = session_id
        self.instructions = instructions

        self.initialized = False
        self.client_ready = False
        self.closed = False
        self.protocol_version: Optional[str] = None
        self.client_info: Dict[str, Any] = {}
        self.client_capabilities: Dict[str, Any] = {}

        self._transport: Any = None
        self._in_flight: Dict[Any, Tuple[asyncio.Task, ExecutionContext]] = {}
        self._request_handlers: Dict[str, RequestHandler] = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
            "resources/list": self._handle_resources_list,
            "resources/read": self._handle_resources_read,
            "prompts/list": self._handle_prompts_list,
            "prompts/get": self._handle_prompts_get,
        }

    def connect(self, transport: Any) -> None:
        """Bind the transport that carries server-to-client messages"""
        self._transport = transport

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ===== MESSAGE ENTRY POINT =====

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one incoming JSON-RPC message.

        Returns:
            The response for requests, None for notifications and responses
        """
        if not isinstance(message, dict) or message.get("jsonrpc") != JSONRPC_VERSION:
            request_id = message.get("id") if isinstance(message, dict) else None
            return build_error_response(request_id, INVALID_REQUEST, "Invalid JSON-RPC message")

        if is_request(message):
            return await self._handle_request(message)
        if is_notification(message):
            await self._handle_notification(message)
            return None
        if is_response(message):
            logger.debug(f"Ignoring client response for id {message.get('id')}")
            return None
        return build_error_response(message.get("id"), INVALID_REQUEST, "Invalid JSON-RPC message")

    async def _handle_request(self, message: Dict[str, Any]) -> Dict[str, Any]:
        request_id = message["id"]
        method = message["method"]
        params = message.get("params")
        if params is None:
            params = {}

        try:
            if self.closed:
                raise InvalidRequestError("Session is closed")
            if not isinstance(params, dict):
                raise InvalidParamsError("Request params must be an object")

            handler = self._request_handlers.get(method)
            if handler is None:
                raise MethodNotFoundError(method)
            if not self.initialized and method not in PRE_INIT_METHODS:
                raise InvalidRequestError("Session not initialized")

            result = await handler(request_id, params)
            return build_response(request_id, result)
        except MCPRuntimeError as e:
            return build_error_response(request_id, e.code, e.message, e.data)
        except Exception:
            logger.exception(f"Unhandled error in {method} (session {self.session_id})")
            return build_error_response(request_id, INTERNAL_ERROR, "Internal error")

    async def _handle_notification(self, message: Dict[str, Any]) -> None:
        method = message["method"]
        params = message.get("params") or {}

        if method == "notifications/initialized":
            self.client_ready = True
        elif method == "notifications/cancelled":
            request_id = params.get("requestId")
            reason = params.get("reason", "No reason provided")
            logger.info(f"Client cancelled request {request_id}: {reason}")
            self.cancel_request(request_id, reason)
        else:
            logger.debug(f"Ignoring notification: {method}")

    # ===== LIFECYCLE =====

    async def _handle_initialize(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.initialized:
            raise InvalidRequestError("Session already initialized")

        requested = params.get("protocolVersion")
        self.protocol_version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        )
        self.client_info = params.get("clientInfo") or {}
        self.client_capabilities = params.get("capabilities") or {}
        self.initialized = True

        logger.info(
            f"Session {self.session_id} initialized by "
            f"{self.client_info.get('name', 'unknown client')} ({self.protocol_version})"
        )

        result = {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info,
        }
        if self.instructions:
            result["instructions"] = self.instructions
        return result

    async def _handle_ping(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def close(self) -> None:
        """Cancel in-flight calls and close the transport. Idempotent."""
        if self.closed:
            return
        self.closed = True

        for request_id in list(self._in_flight):
            self.cancel_request(request_id, "session closed")

        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()

    # ===== TOOLS =====

    async def _handle_tools_list(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": self.dispatcher.list_tools()}

    async def _handle_tools_call(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Missing tool name")
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise InvalidParamsError("Tool arguments must be an object")
        if request_id in self._in_flight:
            raise InvalidRequestError(f"Request id already in flight: {request_id}")

        context = ExecutionContext(
            session_id=self.session_id,
            send_notification=self.send_notification,
        )
        task = asyncio.ensure_future(self.dispatcher.call_tool(name, arguments, context))
        self._in_flight[request_id] = (task, context)
        try:
            return await task
        except asyncio.CancelledError:
            if not context.cancel.is_set():
                raise
            raise RequestCancelledError(request_id, context.cancel_reason)
        finally:
            self._in_flight.pop(request_id, None)

    def cancel_request(self, request_id: Any, reason: Optional[str] = None) -> bool:
        """
        Signal cancellation to an in-flight tool call.

        Returns:
            True if a matching call was found
        """
        entry = self._in_flight.get(request_id)
        if entry is None:
            return False
        task, context = entry
        context.cancel_reason = reason
        context.cancel.set()
        task.cancel()
        return True

    # ===== RESOURCES =====

    async def _handle_resources_list(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"resources": self.dispatcher.list_resources()}

    async def _handle_resources_read(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise InvalidParamsError("Missing resource uri")
        return await self.dispatcher.read_resource(uri)

    # ===== PROMPTS =====

    async def _handle_prompts_list(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompts": self.dispatcher.list_prompts()}

    async def _handle_prompts_get(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Missing prompt name")
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise InvalidParamsError("Prompt arguments must be an object")
        return await self.dispatcher.get_prompt(name, arguments)

    # ===== OUTBOUND =====

    async def send_notification(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a notification to the client; dropped once the session is closed"""
        if self.closed or self._transport is None:
            logger.debug(f"Dropping {method} notification for closed session {self.session_id}")
            return
        await self._transport.send(build_notification(method, params))
