# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for JSON-RPC message builders and classifiers"""

import pytest

from mcp_runtime.jsonrpc import (
    build_bad_request_error,
    build_error_response,
    build_internal_error,
    build_notification,
    build_response,
    is_initialize_request,
    is_notification,
    is_request,
    is_response,
)


def test_build_response():
    """Test success response builder"""
    response = build_response(7, {"tools": []})

    assert response == {"jsonrpc": "2.0", "id": 7, "result": {"tools": []}}


def test_build_error_response_with_data():
    """Test error response carries optional data"""
    response = build_error_response("abc", -32602, "Invalid params", data={"field": "a"})

    assert response["id"] == "abc"
    assert response["error"] == {"code": -32602, "message": "Invalid params", "data": {"field": "a"}}


def test_build_error_response_without_data():
    """Test data is omitted when not given"""
    response = build_error_response(1, -32601, "Method not found: x")

    assert "data" not in response["error"]


def test_build_notification():
    """Test notifications have no id"""
    notification = build_notification("notifications/message", {"level": "info"})

    assert notification == {
        "jsonrpc": "2.0",
        "method": "notifications/message",
        "params": {"level": "info"},
    }
    assert "params" not in build_notification("notifications/tools/list_changed")


def test_session_error_envelopes():
    """Test the two fixed HTTP error envelopes"""
    assert build_bad_request_error() == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32000, "message": "Bad Request: No valid session ID provided"},
    }
    assert build_internal_error() == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32603, "message": "Internal Server Error"},
    }


@pytest.mark.parametrize("message,kind", [
    ({"jsonrpc": "2.0", "id": 1, "method": "ping"}, "request"),
    ({"jsonrpc": "2.0", "method": "notifications/initialized"}, "notification"),
    ({"jsonrpc": "2.0", "id": 1, "result": {}}, "response"),
    ({"jsonrpc": "2.0", "id": 1, "error": {"code": 1, "message": "x"}}, "response"),
    ("not a message", None),
])
def test_classifiers(message, kind):
    """Test request/notification/response classification"""
    assert is_request(message) == (kind == "request")
    assert is_notification(message) == (kind == "notification")
    assert is_response(message) == (kind == "response")


def test_is_initialize_request():
    """Test initialize detection for single messages and batches"""
    initialize = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}
    ping = {"jsonrpc": "2.0", "id": 2, "method": "ping"}

    assert is_initialize_request(initialize)
    assert not is_initialize_request(ping)
    assert is_initialize_request([ping, initialize])
    assert not is_initialize_request([])
    assert not is_initialize_request({"jsonrpc": "2.0", "method": "initialize"})
