# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Request Dispatcher
Validates input, invokes registered handlers and shapes their results.

Error policy:
- Unknown tool/resource/prompt -> NotFoundError (JSON-RPC fault)
- Tool argument validation failure or handler failure -> tool result with
  isError=True (soft error, the session keeps working)
- Prompt argument validation failure -> InvalidParamsError
- Resource/prompt handler failure -> InternalError
"""

import inspect
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

import pydantic

from mcp_runtime.core.errors import (
    InternalError,
    InvalidParamsError,
    MCPRuntimeError,
    NotFoundError,
    ToolExecutionError,
    ValidationError,
    sanitize_error_for_user,
)
from mcp_runtime.models import ExecutionContext, ToolResult
from mcp_runtime.registry import PromptRegistration, Registry, ToolRegistration
from mcp_runtime.utils import error_result

logger = logging.getLogger(__name__)


def _format_validation_errors(error: pydantic.ValidationError) -> List[Dict[str, str]]:
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in error.errors()
    ]


def _accepts_context(handler: Callable) -> bool:
    """True if the handler takes a second positional argument for the context"""
    try:
        params = list(inspect.signature(handler).parameters.values())
    except (TypeError, ValueError):
        return True
    if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params):
        return True
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2


async def _invoke(handler: Callable, *args: Any) -> Any:
    """Call a handler, awaiting it if it is async"""
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)
    result = handler(*args)
    if inspect.isawaitable(result):
        return await result
    return result


class Dispatcher:
    """Executes tool, resource and prompt requests against a Registry"""

    def __init__(self, registry: Registry):
        self.registry = registry

    # ===== LISTING =====

    def list_tools(self) -> List[Dict[str, Any]]:
        return [t.model_dump(by_alias=True, exclude_none=True) for t in self.registry.list_tools()]

    def list_resources(self) -> List[Dict[str, Any]]:
        return [r.model_dump(by_alias=True, exclude_none=True) for r in self.registry.list_resources()]

    def list_prompts(self) -> List[Dict[str, Any]]:
        return [p.model_dump(by_alias=True, exclude_none=True) for p in self.registry.list_prompts()]

    # ===== TOOLS =====

    def validate_tool_arguments(self, tool: ToolRegistration, raw_args: Optional[Dict[str, Any]]) -> pydantic.BaseModel:
        """Validate raw arguments against the tool's input model"""
        try:
            return tool.schema.input_schema.model_validate(
                raw_args if raw_args is not None else {}, strict=True
            )
        except pydantic.ValidationError as e:
            errors = _format_validation_errors(e)
            issues = ", ".join(f"{err['loc']}: {err['msg']}" for err in errors)
            raise ValidationError(f"Validation error: {issues}", errors=errors)

    async def call_tool(
        self,
        name: str,
        raw_args: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None
    ) -> Dict[str, Any]:
        """
        Execute a tool.

        Raises:
            NotFoundError: Tool was never registered

        Returns:
            Tool result dict with content and isError
        """
        tool = self.registry.get_tool(name)
        if tool is None:
            raise NotFoundError("Tool", name)

        try:
            args = self.validate_tool_arguments(tool, raw_args)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for tool {name}: {e.message}")
            return error_result(e.message)

        if context is None:
            context = ExecutionContext()

        try:
            if _accepts_context(tool.handler):
                result = await _invoke(tool.handler, args, context)
            else:
                result = await _invoke(tool.handler, args)
            return self._normalize_tool_result(name, result)
        except ToolExecutionError as e:
            logger.error(f"Tool {name} returned an unusable result: {e.message}")
            return error_result(e.message)
        except Exception as e:
            logger.exception(f"Tool execution error for {name}")
            return error_result(f"Tool execution failed: {sanitize_error_for_user(e)}")

    def _normalize_tool_result(self, name: str, result: Any) -> Dict[str, Any]:
        """Wrap the handler's content list unchanged, defaulting isError to False"""
        if isinstance(result, ToolResult):
            return result.model_dump(by_alias=True)
        if isinstance(result, Mapping) and isinstance(result.get("content"), list):
            return {"content": result["content"], "isError": bool(result.get("isError", False))}
        raise ToolExecutionError(name, f"Tool {name} returned an invalid result: expected a content list")

    # ===== RESOURCES =====

    async def read_resource(self, uri: str) -> Dict[str, Any]:
        """Read a resource by URI"""
        resource = self.registry.get_resource(uri)
        if resource is None:
            raise NotFoundError("Resource", uri)

        try:
            result = await _invoke(resource.handler, uri)
        except MCPRuntimeError:
            raise
        except Exception as e:
            logger.exception(f"Resource read error for {uri}")
            raise InternalError(f"Error reading resource {uri}: {sanitize_error_for_user(e)}")

        if not isinstance(result, Mapping) or not isinstance(result.get("contents"), list):
            raise InternalError(f"Resource {uri} returned an invalid result: expected a contents list")
        return {"contents": result["contents"]}

    # ===== PROMPTS =====

    def validate_prompt_arguments(self, prompt: PromptRegistration, args: Optional[Dict[str, Any]]) -> Any:
        """Validate prompt arguments against the optional argument schema"""
        args = dict(args or {})
        model = prompt.argument_model
        if model is not None:
            try:
                return model.model_validate(args)
            except pydantic.ValidationError as e:
                errors = _format_validation_errors(e)
                issues = ", ".join(f"{err['loc']}: {err['msg']}" for err in errors)
                raise InvalidParamsError(f"Validation error: {issues}", data=errors)

        declared = prompt.argument_list() or []
        missing = [arg.name for arg in declared if arg.required and arg.name not in args]
        if missing:
            raise InvalidParamsError(f"Missing required arguments: {', '.join(missing)}")
        return {key: value if isinstance(value, str) else str(value) for key, value in args.items()}

    async def get_prompt(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Render a prompt"""
        prompt = self.registry.get_prompt(name)
        if prompt is None:
            raise NotFoundError("Prompt", name)

        validated = self.validate_prompt_arguments(prompt, args)

        try:
            result = await _invoke(prompt.handler, validated)
        except MCPRuntimeError:
            raise
        except Exception as e:
            logger.exception(f"Prompt execution error for {name}")
            raise InternalError(f"Error rendering prompt {name}: {sanitize_error_for_user(e)}")

        if not isinstance(result, Mapping) or not isinstance(result.get("messages"), list):
            raise InternalError(f"Prompt {name} returned an invalid result: expected a messages list")
        response: Dict[str, Any] = {"messages": result["messages"]}
        if result.get("description") is not None:
            response["description"] = result["description"]
        return response
