# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for the per-session ProtocolEndpoint"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from mcp_runtime.core.errors import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    REQUEST_CANCELLED,
    RESOURCE_NOT_FOUND,
)
from mcp_runtime.models import ToolSchema
from mcp_runtime.protocol import LATEST_PROTOCOL_VERSION
from mcp_runtime.utils import text_result


def request(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


async def initialize(endpoint, version="2025-06-18"):
    return await endpoint.handle_message(request("initialize", {
        "protocolVersion": version,
        "capabilities": {},
        "clientInfo": {"name": "pytest", "version": "1.0"},
    }, request_id=0))


class SlowArgs(BaseModel):
    seconds: float = 10


async def test_initialize_negotiates_version(endpoint):
    """Test a supported client version is echoed"""
    response = await initialize(endpoint, "2025-03-26")

    result = response["result"]
    assert result["protocolVersion"] == "2025-03-26"
    assert result["serverInfo"] == {"name": "calculator", "version": "1.0.0"}
    assert set(result["capabilities"]) >= {"tools", "resources", "prompts"}
    assert endpoint.initialized
    assert endpoint.client_info["name"] == "pytest"


async def test_initialize_unsupported_version_gets_latest(endpoint):
    """Test an unknown version is answered with the latest supported one"""
    response = await initialize(endpoint, "1999-01-01")

    assert response["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION


async def test_second_initialize_rejected(endpoint):
    """Test initialize is accepted once per session"""
    await initialize(endpoint)
    response = await initialize(endpoint)

    assert response["error"]["code"] == INVALID_REQUEST


async def test_requests_before_initialize(endpoint):
    """Test only ping is served before the handshake"""
    ping = await endpoint.handle_message(request("ping"))
    tools = await endpoint.handle_message(request("tools/list", request_id=2))

    assert ping == {"jsonrpc": "2.0", "id": 1, "result": {}}
    assert tools["error"]["code"] == INVALID_REQUEST
    assert tools["id"] == 2


async def test_unknown_method(endpoint):
    """Test unknown methods get -32601"""
    await initialize(endpoint)
    response = await endpoint.handle_message(request("tools/explode"))

    assert response["error"]["code"] == METHOD_NOT_FOUND


async def test_invalid_message(endpoint):
    """Test non JSON-RPC 2.0 input is rejected"""
    response = await endpoint.handle_message({"jsonrpc": "1.0", "id": 4, "method": "ping"})

    assert response["error"]["code"] == INVALID_REQUEST
    assert response["id"] == 4


async def test_initialized_notification(endpoint):
    """Test notifications produce no response"""
    await initialize(endpoint)
    response = await endpoint.handle_message({"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert response is None
    assert endpoint.client_ready


async def test_tools_list_and_call(endpoint):
    """Test the calculator add tool end to end"""
    await initialize(endpoint)

    listed = await endpoint.handle_message(request("tools/list"))
    names = [t["name"] for t in listed["result"]["tools"]]
    called = await endpoint.handle_message(
        request("tools/call", {"name": "add", "arguments": {"a": 5, "b": 3}}, request_id=2)
    )

    assert names == ["add", "subtract", "multiply", "divide"]
    assert called["result"] == {"content": [{"type": "text", "text": "5 + 3 = 8"}], "isError": False}


async def test_tool_failure_keeps_session_usable(endpoint):
    """Test a raising tool is a soft error and the next call succeeds"""
    await initialize(endpoint)

    failed = await endpoint.handle_message(
        request("tools/call", {"name": "divide", "arguments": {"a": 1, "b": 0}})
    )
    succeeded = await endpoint.handle_message(
        request("tools/call", {"name": "multiply", "arguments": {"a": 4, "b": 2}}, request_id=2)
    )

    assert failed["result"]["isError"] is True
    assert "Division by zero" in failed["result"]["content"][0]["text"]
    assert succeeded["result"]["content"][0]["text"] == "4 * 2 = 8"


async def test_unknown_tool_is_protocol_error(endpoint):
    """Test unknown tools are JSON-RPC errors, not soft errors"""
    await initialize(endpoint)
    response = await endpoint.handle_message(request("tools/call", {"name": "sqrt", "arguments": {}}))

    assert "result" not in response
    assert response["error"]["code"] == INVALID_PARAMS
    assert response["error"]["message"] == "Tool not found: sqrt"


async def test_resources_and_prompts(endpoint):
    """Test resource read and prompt rendering through the endpoint"""
    await initialize(endpoint)
    await endpoint.handle_message(request("tools/call", {"name": "add", "arguments": {"a": 1, "b": 2}}))

    resources = await endpoint.handle_message(request("resources/list", request_id=2))
    history = await endpoint.handle_message(request("resources/read", {"uri": "calculator://history"}, request_id=3))
    missing = await endpoint.handle_message(request("resources/read", {"uri": "calculator://nope"}, request_id=4))
    prompts = await endpoint.handle_message(request("prompts/list", request_id=5))
    explain = await endpoint.handle_message(
        request("prompts/get", {"name": "explain", "arguments": {"expression": "2 * 3"}}, request_id=6)
    )
    bad_prompt = await endpoint.handle_message(request("prompts/get", {"name": "explain"}, request_id=7))

    assert resources["result"]["resources"][0]["uri"] == "calculator://history"
    assert history["result"]["contents"][0]["text"] == '["1 + 2 = 3"]'
    assert missing["error"]["code"] == RESOURCE_NOT_FOUND
    assert prompts["result"]["prompts"][0]["arguments"][0]["name"] == "expression"
    assert "2 * 3" in explain["result"]["messages"][0]["content"]["text"]
    assert bad_prompt["error"]["code"] == INVALID_PARAMS


async def test_non_object_params(endpoint):
    """Test params must be an object"""
    await initialize(endpoint)
    response = await endpoint.handle_message(request("tools/call", ["add"]))

    assert response["error"]["code"] == INVALID_PARAMS


async def test_cancelled_notification_cancels_tool(mcp_server, endpoint):
    """Test notifications/cancelled sets the context signal and answers -32800"""
    seen = {}
    started = asyncio.Event()

    async def slow(args, context):
        seen["context"] = context
        started.set()
        await asyncio.sleep(args.seconds)
        return text_result("finished")

    mcp_server.register_tool("slow", slow, ToolSchema(input_schema=SlowArgs))
    await initialize(endpoint)

    call = asyncio.ensure_future(
        endpoint.handle_message(request("tools/call", {"name": "slow", "arguments": {}}, request_id=9))
    )
    await started.wait()
    assert endpoint.in_flight == 1

    await endpoint.handle_message({
        "jsonrpc": "2.0",
        "method": "notifications/cancelled",
        "params": {"requestId": 9, "reason": "user abort"},
    })
    response = await call

    assert response["id"] == 9
    assert response["error"]["code"] == REQUEST_CANCELLED
    assert response["error"]["message"] == "Request cancelled: user abort"
    assert seen["context"].cancelled
    assert endpoint.in_flight == 0


async def test_duplicate_in_flight_id_rejected(mcp_server, endpoint):
    """Test a second call reusing a running id is refused and the first stays cancellable"""
    started = asyncio.Event()

    async def slow(args, context):
        started.set()
        await asyncio.sleep(args.seconds)
        return text_result("finished")

    mcp_server.register_tool("slow", slow, ToolSchema(input_schema=SlowArgs))
    await initialize(endpoint)

    first = asyncio.ensure_future(
        endpoint.handle_message(request("tools/call", {"name": "slow", "arguments": {}}, request_id=7))
    )
    await started.wait()

    duplicate = await endpoint.handle_message(
        request("tools/call", {"name": "slow", "arguments": {}}, request_id=7)
    )

    assert duplicate["error"]["code"] == INVALID_REQUEST
    assert endpoint.in_flight == 1

    assert endpoint.cancel_request(7, "user abort") is True
    response = await first

    assert response["error"]["code"] == REQUEST_CANCELLED
    assert endpoint.in_flight == 0


async def test_cancel_unknown_request(endpoint):
    """Test cancelling an id that is not in flight is a no-op"""
    assert endpoint.cancel_request(12345) is False


async def test_close_cancels_in_flight_and_closes_transport(mcp_server, endpoint):
    """Test close cancels running calls and closes the transport once"""
    started = asyncio.Event()

    async def slow(args, context):
        started.set()
        await asyncio.sleep(args.seconds)
        return text_result("finished")

    mcp_server.register_tool("slow", slow, ToolSchema(input_schema=SlowArgs))
    transport = AsyncMock()
    endpoint.connect(transport)
    await initialize(endpoint)

    call = asyncio.ensure_future(
        endpoint.handle_message(request("tools/call", {"name": "slow", "arguments": {}}, request_id=3))
    )
    await started.wait()

    await endpoint.close()
    await endpoint.close()
    response = await call

    assert response["error"]["code"] == REQUEST_CANCELLED
    transport.close.assert_awaited_once()
    assert endpoint.closed

    after = await endpoint.handle_message(request("ping", request_id=4))
    assert after["error"]["code"] == INVALID_REQUEST


async def test_send_notification_goes_to_transport(endpoint):
    """Test outbound notifications are handed to the transport"""
    transport = AsyncMock()
    endpoint.connect(transport)

    await endpoint.send_notification("notifications/tools/list_changed")

    transport.send.assert_awaited_once_with(
        {"jsonrpc": "2.0", "method": "notifications/tools/list_changed"}
    )
