# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Session Data Structure
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp_runtime.protocol import ProtocolEndpoint
    from mcp_runtime.transport import StreamableHTTPTransport


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Session:
    """One client's protocol endpoint + transport pair, owned by the SessionManager"""
    session_id: str
    endpoint: "ProtocolEndpoint"
    transport: "StreamableHTTPTransport"
    is_closing: bool = False
    closed: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def state(self) -> SessionState:
        if self.closed:
            return SessionState.CLOSED
        if self.is_closing:
            return SessionState.CLOSING
        if self.endpoint.initialized:
            return SessionState.ACTIVE
        return SessionState.UNINITIALIZED

    def idle_seconds(self) -> float:
        return self.transport.idle_seconds()
