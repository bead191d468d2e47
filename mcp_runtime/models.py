# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registration and wire models for tools, resources and prompts.

Internal fields follow Python snake_case; wire output uses the MCP
camelCase names through aliases (dump with by_alias=True).
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class ToolSchema(BaseModel):
    """Tool description plus the pydantic model its arguments must satisfy"""
    description: str = ""
    input_schema: Type[BaseModel]


class ToolDefinition(BaseModel):
    """MCP Tool Definition"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(alias="inputSchema")


class ResourceDefinition(BaseModel):
    """MCP Resource Definition"""
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    name: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class PromptArgument(BaseModel):
    """Single named prompt argument"""
    name: str
    description: Optional[str] = None
    required: bool = False


class PromptDefinition(BaseModel):
    """MCP Prompt Definition"""
    name: str
    description: Optional[str] = None
    arguments: Optional[List[PromptArgument]] = None


class ToolResult(BaseModel):
    """Result of a tool call"""
    model_config = ConfigDict(populate_by_name=True)

    content: List[Dict[str, Any]]
    is_error: bool = Field(default=False, alias="isError")


def _new_request_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _discard(method: str, params: Optional[Dict[str, Any]] = None) -> None:
    return None


@dataclass
class ExecutionContext:
    """
    Per-call context handed to tool handlers.

    `cancel` is set when the client cancels the request, disconnects, or
    the session is torn down. Long-running handlers should check it.
    """
    request_id: str = field(default_factory=_new_request_id)
    timestamp: datetime = field(default_factory=_utcnow)
    cancel: asyncio.Event = field(default_factory=asyncio.Event)
    session_id: Optional[str] = None
    cancel_reason: Optional[str] = None
    send_notification: Callable[[str, Optional[Dict[str, Any]]], Awaitable[None]] = _discard

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a server-to-client notification on the session's event stream"""
        await self.send_notification(method, params)


class NoArguments(BaseModel):
    """Input model for tools that take no arguments"""
    pass
