# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for the MCP runtime.

All protocol-facing exceptions inherit from MCPRuntimeError and carry the
JSON-RPC error code they are reported with. ValidationError and
ToolExecutionError are "soft" errors: the dispatcher turns them into tool
results with isError set instead of JSON-RPC faults.
"""

from typing import Any, Dict, Optional


# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Implementation-defined codes
BAD_REQUEST = -32000
RESOURCE_NOT_FOUND = -32002
REQUEST_CANCELLED = -32800


class MCPRuntimeError(Exception):
    """Base exception for all MCP runtime errors."""

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        data: Optional[Any] = None
    ):
        """
        Initialize runtime error.

        Args:
            message: Human-readable error message
            code: JSON-RPC error code
            data: Additional error details
        """
        self.message = message
        self.code = code
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> Dict[str, Any]:
        """Convert error to a JSON-RPC error object."""
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class BadRequestError(MCPRuntimeError):
    """Malformed session correlation (missing or unknown session id)."""

    def __init__(self, message: str = "Bad Request: No valid session ID provided", data: Optional[Any] = None):
        super().__init__(message, code=BAD_REQUEST, data=data)


class ParseError(MCPRuntimeError):
    """Request body is not valid JSON."""

    def __init__(self, message: str = "Parse error", data: Optional[Any] = None):
        super().__init__(message, code=PARSE_ERROR, data=data)


class InvalidRequestError(MCPRuntimeError):
    """Message is not a valid JSON-RPC request."""

    def __init__(self, message: str = "Invalid Request", data: Optional[Any] = None):
        super().__init__(message, code=INVALID_REQUEST, data=data)


class MethodNotFoundError(MCPRuntimeError):
    """Unknown JSON-RPC method."""

    def __init__(self, method: str):
        super().__init__(f"Method not found: {method}", code=METHOD_NOT_FOUND)
        self.method = method


class InvalidParamsError(MCPRuntimeError):
    """Request parameters are missing or malformed."""

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message, code=INVALID_PARAMS, data=data)


class InternalError(MCPRuntimeError):
    """Unexpected failure while handling a request."""

    def __init__(self, message: str = "Internal Server Error", data: Optional[Any] = None):
        super().__init__(message, code=INTERNAL_ERROR, data=data)


class RequestCancelledError(MCPRuntimeError):
    """In-flight request was cancelled before it produced a result."""

    def __init__(self, request_id: Any, reason: Optional[str] = None):
        message = f"Request cancelled: {reason}" if reason else "Request cancelled"
        super().__init__(message, code=REQUEST_CANCELLED)
        self.request_id = request_id
        self.reason = reason


class NotFoundError(MCPRuntimeError):
    """Unknown tool, resource or prompt."""

    def __init__(self, kind: str, identifier: str):
        """
        Initialize not found error.

        Args:
            kind: Capability type ("Tool", "Resource" or "Prompt")
            identifier: Name or URI that was looked up
        """
        code = RESOURCE_NOT_FOUND if kind == "Resource" else INVALID_PARAMS
        super().__init__(f"{kind} not found: {identifier}", code=code)
        self.kind = kind
        self.identifier = identifier


class ValidationError(MCPRuntimeError):
    """Input failed schema validation before the handler ran."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message, code=INVALID_PARAMS, data=errors)
        self.errors = errors or []


class ToolExecutionError(MCPRuntimeError):
    """A tool handler raised or returned an unusable result."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message, code=INTERNAL_ERROR)
        self.tool_name = tool_name


class TeardownError(MCPRuntimeError):
    """Failure while closing a protocol endpoint or transport."""

    def __init__(self, session_id: str, message: str):
        super().__init__(message, code=INTERNAL_ERROR)
        self.session_id = session_id


class InvalidArgumentError(ValueError):
    """Registration precondition violated."""
    pass


class NameValidationError(InvalidArgumentError):
    """Capability name violates the naming rules."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class DuplicateRegistrationError(InvalidArgumentError):
    """Registry rejects overwriting an existing registration."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} already registered: {key}")
        self.kind = kind
        self.key = key


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for client display.
    Removes stack traces and limits message size.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        Client-facing error message without stack trace
    """
    error_msg = str(error).strip()

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg
