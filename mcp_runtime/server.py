# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Server facade
Owns the Registry and Dispatcher shared by every session, and wires them to
the stdio or streamable HTTP transport.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI

from mcp_runtime.core.config import Config, get_config
from mcp_runtime.decorators import collect_registrations
from mcp_runtime.dispatcher import Dispatcher
from mcp_runtime.event_store import EventStore
from mcp_runtime.http_server import HTTPServer, create_base_app
from mcp_runtime.models import ToolSchema
from mcp_runtime.protocol import ProtocolEndpoint
from mcp_runtime.registry import PromptArguments, Registry
from mcp_runtime.stdio import StdioTransport
from mcp_runtime.streamable import StreamableHTTPServer

logger = logging.getLogger(__name__)


class MCPServer:
    """
    Registration surface plus transport wiring for one MCP server.

    Example:
        server = MCPServer("calculator")
        server.register(CalculatorServer())
        server.run(config)
    """

    def __init__(
        self,
        name: str,
        version: str = "1.0.0",
        capabilities: Optional[Dict[str, Any]] = None,
        allow_overwrite: bool = True,
        instructions: Optional[str] = None
    ):
        self.name = name
        self.version = version
        self.instructions = instructions
        self.registry = Registry(allow_overwrite=allow_overwrite)
        self.dispatcher = Dispatcher(self.registry)
        self.capabilities: Dict[str, Any] = {
            "tools": {"listChanged": False},
            "resources": {"subscribe": False, "listChanged": False},
            "prompts": {"listChanged": False},
        }
        self.capabilities.update(capabilities or {})

    @property
    def server_info(self) -> Dict[str, str]:
        return {"name": self.name, "version": self.version}

    # ===== REGISTRATION =====

    def register_tool(self, name: str, handler: Callable, schema: ToolSchema) -> None:
        self.registry.register_tool(name, handler, schema)

    def register_resource(
        self,
        uri: str,
        handler: Callable,
        name: Optional[str] = None,
        description: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> None:
        self.registry.register_resource(uri, handler, name=name, description=description, mime_type=mime_type)

    def register_prompt(
        self,
        name: str,
        handler: Callable,
        description: Optional[str] = None,
        arguments: PromptArguments = None
    ) -> None:
        self.registry.register_prompt(name, handler, description=description, arguments=arguments)

    def register(self, instance: Any) -> None:
        """Register every tool, resource and prompt decorated on an instance"""
        found = collect_registrations(instance)
        for entry in found.tools:
            self.register_tool(entry["name"], entry["handler"], entry["schema"])
        for entry in found.resources:
            self.register_resource(
                entry["uri"],
                entry["handler"],
                name=entry["name"],
                description=entry["description"],
                mime_type=entry["mime_type"],
            )
        for entry in found.prompts:
            self.register_prompt(
                entry["name"],
                entry["handler"],
                description=entry["description"],
                arguments=entry["arguments"],
            )
        logger.info(
            f"Registered {type(instance).__name__}: {len(found.tools)} tools, "
            f"{len(found.resources)} resources, {len(found.prompts)} prompts"
        )

    # ===== TRANSPORTS =====

    def create_endpoint(self, session_id: Optional[str] = None) -> ProtocolEndpoint:
        return ProtocolEndpoint(
            dispatcher=self.dispatcher,
            server_info=self.server_info,
            capabilities=self.capabilities,
            session_id=session_id,
            instructions=self.instructions,
        )

    def streamable_server(
        self,
        endpoint: str = "/mcp",
        event_store: Optional[EventStore] = None,
        session_timeout_seconds: int = 3600,
        session_reap_interval: float = 60.0
    ) -> StreamableHTTPServer:
        return StreamableHTTPServer(
            endpoint_factory=self.create_endpoint,
            endpoint_path=endpoint,
            event_store=event_store,
            session_timeout_seconds=session_timeout_seconds,
            session_reap_interval=session_reap_interval,
        )

    def streamable_app(self, **kwargs: Any) -> FastAPI:
        """FastAPI app serving this server over streamable HTTP (for ASGI hosts and tests)"""
        transport_server = self.streamable_server(**kwargs)
        app = create_base_app(transport_server.request_handlers(), title=self.name)
        app.state.transport_server = transport_server
        return app

    async def run_async(self, config: Config) -> None:
        if config.transport == "stdio":
            await StdioTransport(self.create_endpoint()).serve()
            return

        if config.transport != "streamable":
            raise ValueError(f"Unsupported transport: {config.transport}")

        transport_server = self.streamable_server(
            endpoint=config.endpoint,
            session_timeout_seconds=config.session_timeout_seconds,
            session_reap_interval=config.session_reap_interval,
        )
        http_server = HTTPServer(
            transport_server.request_handlers(),
            host=config.host,
            port=config.port,
            endpoint=config.endpoint,
            log_level=config.log_level,
            title=self.name,
        )
        await http_server.serve()

    def run(self, config: Optional[Config] = None) -> None:
        """Blocking entry point"""
        asyncio.run(self.run_async(config or get_config()))
