# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
JSON-RPC 2.0 Message Builders and Classifiers for MCP Protocol
"""

from typing import Any, Dict, Optional

from mcp_runtime.core.errors import INTERNAL_ERROR, BAD_REQUEST

JSONRPC_VERSION = "2.0"


def build_response(request_id: Any, result: Dict[str, Any]) -> Dict:
    """Build JSON-RPC success response"""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "result": result
    }


def build_error_response(
    request_id: Any,
    code: int,
    message: str,
    data: Optional[Any] = None
) -> Dict:
    """Build JSON-RPC error response"""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def build_notification(method: str, params: Optional[Dict[str, Any]] = None) -> Dict:
    """Build JSON-RPC notification (no id, no response expected)"""
    notification: Dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        notification["params"] = params
    return notification


def build_bad_request_error() -> Dict:
    """Envelope for requests that cannot be correlated to a session"""
    return build_error_response(None, BAD_REQUEST, "Bad Request: No valid session ID provided")


def build_internal_error() -> Dict:
    """Envelope for unexpected failures; never carries internals"""
    return build_error_response(None, INTERNAL_ERROR, "Internal Server Error")


def is_request(message: Any) -> bool:
    """A request has a method and an id"""
    return isinstance(message, dict) and "method" in message and "id" in message


def is_notification(message: Any) -> bool:
    """A notification has a method and no id"""
    return isinstance(message, dict) and "method" in message and "id" not in message


def is_response(message: Any) -> bool:
    """A response (to a server-initiated request) has result or error"""
    return isinstance(message, dict) and "method" not in message and (
        "result" in message or "error" in message
    )


def is_initialize_request(body: Any) -> bool:
    """True if the body is an initialize request, or a batch containing one"""
    if isinstance(body, list):
        return any(is_initialize_request(message) for message in body)
    return is_request(body) and body.get("method") == "initialize"
