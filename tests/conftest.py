# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures: a calculator server, its streamable HTTP app and a client
"""

import pytest
from fastapi.testclient import TestClient

from mcp_runtime.examples.calculator import CalculatorServer
from mcp_runtime.server import MCPServer


INITIALIZE_PARAMS = {
    "protocolVersion": "2025-06-18",
    "capabilities": {},
    "clientInfo": {"name": "pytest", "version": "1.0"},
}


@pytest.fixture
def calculator():
    """Fresh calculator instance (history starts empty)"""
    return CalculatorServer()


@pytest.fixture
def mcp_server(calculator):
    """MCPServer with the calculator registered"""
    server = MCPServer("calculator", version="1.0.0")
    server.register(calculator)
    return server


@pytest.fixture
def app(mcp_server):
    """Streamable HTTP app on /mcp"""
    return mcp_server.streamable_app(endpoint="/mcp")


@pytest.fixture
def transport_server(app):
    return app.state.transport_server


@pytest.fixture
def client(app):
    """TestClient with lifespan, so cleanup runs on exit"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_id(client):
    """Initialize a session over HTTP and return its id"""
    response = client.post("/mcp", json={
        "jsonrpc": "2.0",
        "id": 0,
        "method": "initialize",
        "params": INITIALIZE_PARAMS,
    })
    assert response.status_code == 200
    sid = response.headers["mcp-session-id"]
    client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers={"mcp-session-id": sid},
    )
    return sid


@pytest.fixture
def endpoint(mcp_server):
    """Protocol endpoint not attached to any transport"""
    return mcp_server.create_endpoint(session_id="test-session")
