# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP server runtime: registry, dispatcher, session-multiplexed streamable
HTTP transport and stdio transport.
"""

from mcp_runtime.decorators import prompt, resource, tool
from mcp_runtime.dispatcher import Dispatcher
from mcp_runtime.event_store import EventStore, InMemoryEventStore
from mcp_runtime.models import ExecutionContext, ToolResult, ToolSchema
from mcp_runtime.registry import Registry
from mcp_runtime.server import MCPServer
from mcp_runtime.utils import error_result, image_result, text_result

__version__ = "1.0.0"

__all__ = [
    "Dispatcher",
    "EventStore",
    "ExecutionContext",
    "InMemoryEventStore",
    "MCPServer",
    "Registry",
    "ToolResult",
    "ToolSchema",
    "error_result",
    "image_result",
    "prompt",
    "resource",
    "text_result",
    "tool",
]
