# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
stdio Transport
Newline-delimited JSON-RPC over stdin/stdout for a single implicit session.
Logs must go to stderr; stdout carries protocol messages only.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, Set, TextIO

from mcp_runtime.core.errors import PARSE_ERROR
from mcp_runtime.jsonrpc import build_error_response
from mcp_runtime.protocol import ProtocolEndpoint

logger = logging.getLogger(__name__)


class StdioTransport:
    """Reads one message (or batch) per line and writes one response per line"""

    def __init__(
        self,
        endpoint: ProtocolEndpoint,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None
    ):
        self.endpoint = endpoint
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.closed = False
        self._pending: Set[asyncio.Task] = set()

    async def send(self, message: Any) -> None:
        if self.closed:
            return
        self.stdout.write(json.dumps(message) + "\n")
        self.stdout.flush()

    async def close(self) -> None:
        self.closed = True

    async def serve(self) -> None:
        """Process stdin until EOF, then close the endpoint"""
        self.endpoint.connect(self)
        logger.info("stdio transport ready")
        try:
            while not self.closed:
                line = await asyncio.to_thread(self.stdin.readline)
                if not line:
                    break
                line = line.strip()
                if not line:
                    continue

                task = asyncio.ensure_future(self._handle_line(line))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

            if self._pending:
                await asyncio.gather(*self._pending, return_exceptions=True)
        finally:
            await self.endpoint.close()
            logger.info("stdio transport closed")

    async def _handle_line(self, line: str) -> None:
        try:
            body = json.loads(line)
        except ValueError:
            await self.send(build_error_response(None, PARSE_ERROR, "Parse error: Invalid JSON"))
            return

        if isinstance(body, list):
            results = await asyncio.gather(*(self.endpoint.handle_message(m) for m in body))
            responses = [r for r in results if r is not None]
            if responses:
                await self.send(responses)
            return

        response: Optional[Dict[str, Any]] = await self.endpoint.handle_message(body)
        if response is not None:
            await self.send(response)
