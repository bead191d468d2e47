# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Metadata decorators for server classes.

The decorators only attach metadata to methods. MCPServer.register(instance)
collects it with collect_registrations() and calls the registry primitives.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from mcp_runtime.models import NoArguments, ToolSchema

TOOL_ATTR = "__mcp_tool__"
RESOURCE_ATTR = "__mcp_resource__"
PROMPT_ATTR = "__mcp_prompt__"


@dataclass
class Registrations:
    """Registrations pulled off one instance, handlers already bound"""
    tools: List[Dict[str, Any]] = field(default_factory=list)
    resources: List[Dict[str, Any]] = field(default_factory=list)
    prompts: List[Dict[str, Any]] = field(default_factory=list)


def tool(
    name: Optional[str] = None,
    description: str = "",
    input_schema: Optional[Type[BaseModel]] = None
) -> Callable:
    """Mark a method as a tool; the method name is used when name is omitted"""
    def decorator(func: Callable) -> Callable:
        setattr(func, TOOL_ATTR, {
            "name": name or func.__name__,
            "schema": ToolSchema(
                description=description or (func.__doc__ or "").strip(),
                input_schema=input_schema or NoArguments,
            ),
        })
        return func
    return decorator


def resource(
    uri: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    mime_type: Optional[str] = None
) -> Callable:
    """Mark a method as the reader for a resource URI"""
    def decorator(func: Callable) -> Callable:
        setattr(func, RESOURCE_ATTR, {
            "uri": uri,
            "name": name,
            "description": description,
            "mime_type": mime_type,
        })
        return func
    return decorator


def prompt(
    name: Optional[str] = None,
    description: Optional[str] = None,
    arguments: Any = None
) -> Callable:
    """Mark a method as a prompt renderer"""
    def decorator(func: Callable) -> Callable:
        setattr(func, PROMPT_ATTR, {
            "name": name or func.__name__,
            "description": description,
            "arguments": arguments,
        })
        return func
    return decorator


def collect_registrations(instance: Any) -> Registrations:
    """
    Pull decorator metadata off an instance, in definition order.

    Methods overridden in a subclass replace the base class entry.
    """
    members: Dict[str, Any] = {}
    for cls in reversed(type(instance).__mro__):
        for attr, value in vars(cls).items():
            members[attr] = value

    found = Registrations()
    for attr, value in members.items():
        func = getattr(value, "__func__", value)
        if not any(hasattr(func, marker) for marker in (TOOL_ATTR, RESOURCE_ATTR, PROMPT_ATTR)):
            continue
        bound = getattr(instance, attr)
        if hasattr(func, TOOL_ATTR):
            found.tools.append({**getattr(func, TOOL_ATTR), "handler": bound})
        if hasattr(func, RESOURCE_ATTR):
            found.resources.append({**getattr(func, RESOURCE_ATTR), "handler": bound})
        if hasattr(func, PROMPT_ATTR):
            found.prompts.append({**getattr(func, PROMPT_ATTR), "handler": bound})
    return found
