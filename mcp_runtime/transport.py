# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Streamable HTTP Transport
One instance per session. Carries client-to-server messages from POST
bodies into the protocol endpoint and server-to-client messages out over a
resumable GET event stream.
"""

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Set

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from mcp_runtime.core.errors import INVALID_REQUEST
from mcp_runtime.event_store import EventStore, StoredEvent
from mcp_runtime.jsonrpc import build_error_response, is_notification, is_request, is_response

logger = logging.getLogger(__name__)

MCP_SESSION_ID_HEADER = "mcp-session-id"
LAST_EVENT_ID_HEADER = "last-event-id"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

CloseCallback = Callable[[str], Awaitable[None]]


class StreamableHTTPTransport:
    """
    Per-session streamable HTTP transport.

    At most one GET event stream is attached at a time. Every outbound
    message is appended to the event store before it is handed to the
    attached stream, so a client that reconnects with Last-Event-ID misses
    nothing that was sent while it was away.
    """

    def __init__(
        self,
        session_id: str,
        event_store: EventStore,
        endpoint: Any = None,
        on_close: Optional[CloseCallback] = None,
        disconnect_poll_interval: float = 0.5,
        ping_interval: int = 15
    ):
        self.session_id = session_id
        self.event_store = event_store
        self.endpoint = endpoint
        self.on_close = on_close
        self.disconnect_poll_interval = disconnect_poll_interval
        self.ping_interval = ping_interval

        # Standalone server-to-client stream for this session
        self.stream_id = session_id
        self._stream_ids: Set[str] = {self.stream_id}
        self._listener: Optional[asyncio.Queue] = None
        self._closed = False
        self._last_activity = time.monotonic()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stream_attached(self) -> bool:
        return self._listener is not None

    @property
    def stream_ids(self) -> List[str]:
        return sorted(self._stream_ids)

    def touch(self) -> None:
        self._last_activity = time.monotonic()

    def idle_seconds(self) -> float:
        return time.monotonic() - self._last_activity

    @property
    def session_headers(self) -> Dict[str, str]:
        return {MCP_SESSION_ID_HEADER: self.session_id}

    # ===== OUTBOUND =====

    async def send(self, message: Dict[str, Any], stream_id: Optional[str] = None) -> Optional[int]:
        """
        Record an outbound message and deliver it to the attached stream.

        Returns:
            The assigned event id, or None if the transport is closed
        """
        if self._closed:
            logger.debug(f"Transport for session {self.session_id} is closed, dropping message")
            return None

        stream_id = stream_id or self.stream_id
        self._stream_ids.add(stream_id)
        event_id = await self.event_store.append(stream_id, message)

        if stream_id == self.stream_id and self._listener is not None:
            self._listener.put_nowait(StoredEvent(stream_id=stream_id, event_id=event_id, message=message))
        return event_id

    def event_stream(self, last_event_id: Optional[str] = None) -> AsyncIterator[ServerSentEvent]:
        """
        Claim the session's event stream and return its event iterator.

        The listener and the live baseline are taken at call time, so events
        sent before iteration starts are still delivered. Without a cursor only
        events sent after this call are delivered. While another stream holds
        the listener the returned iterator is empty.
        """
        if self._listener is not None or self._closed:
            return self._no_events()

        queue: asyncio.Queue = asyncio.Queue()
        self._listener = queue
        baseline = None if last_event_id is not None else self.event_store.latest_event_id(self.stream_id)
        return self._iter_events(queue, last_event_id, baseline)

    @staticmethod
    async def _no_events() -> AsyncIterator[ServerSentEvent]:
        return
        yield

    async def _iter_events(
        self,
        queue: asyncio.Queue,
        last_event_id: Optional[str],
        baseline: Optional[int]
    ) -> AsyncIterator[ServerSentEvent]:
        """Yield replayed events after the cursor, then live events, until close"""
        try:
            if baseline is None:
                replayed = await self.event_store.replay_after(self.stream_id, last_event_id)
                logger.info(
                    f"Resuming stream for session {self.session_id} after event {last_event_id!r}: "
                    f"{len(replayed)} event(s) to replay"
                )
                last_sent = 0
                for event in replayed:
                    yield self._to_sse(event)
                    last_sent = event.event_id
            else:
                last_sent = baseline

            while True:
                event = await queue.get()
                if event is None:
                    break
                # Already delivered during replay
                if event.event_id <= last_sent:
                    continue
                self.touch()
                yield self._to_sse(event)
                last_sent = event.event_id
        finally:
            if self._listener is queue:
                self._listener = None
            logger.debug(f"Event stream detached for session {self.session_id}")

    @staticmethod
    def _to_sse(event: StoredEvent) -> ServerSentEvent:
        return ServerSentEvent(data=json.dumps(event.message), id=str(event.event_id), event="message")

    # ===== HTTP METHODS =====

    async def handle_post(self, request: Optional[Request], body: Any) -> Response:
        """Feed one message or a batch to the endpoint and answer with the responses"""
        self.touch()

        if isinstance(body, list) and not body:
            return JSONResponse(
                build_error_response(None, INVALID_REQUEST, "Invalid Request: empty batch"),
                status_code=400,
                headers=self.session_headers,
            )

        messages = body if isinstance(body, list) else [body]
        expects_response = [
            message for message in messages
            if not (is_notification(message) or is_response(message))
        ]

        if not expects_response:
            for message in messages:
                await self.endpoint.handle_message(message)
            return Response(status_code=202, headers=self.session_headers)

        responses = await self._dispatch(request, messages)
        payload = responses if isinstance(body, list) else responses[0]
        return JSONResponse(payload, headers=self.session_headers)

    async def _dispatch(self, request: Optional[Request], messages: List[Any]) -> List[Dict[str, Any]]:
        work = asyncio.ensure_future(
            asyncio.gather(*(self.endpoint.handle_message(message) for message in messages))
        )
        watcher = None
        if request is not None:
            watcher = asyncio.ensure_future(self._watch_disconnect(request, messages))
        try:
            results = await work
        finally:
            if watcher is not None:
                watcher.cancel()
        return [result for result in results if result is not None]

    async def _watch_disconnect(self, request: Request, messages: List[Any]) -> None:
        """Cancel the batch's in-flight calls once the client goes away"""
        request_ids = [message["id"] for message in messages if is_request(message)]
        while not await request.is_disconnected():
            await asyncio.sleep(self.disconnect_poll_interval)

        logger.info(f"Client disconnected mid-request on session {self.session_id}")
        # Calls later in the batch may not have started yet
        while True:
            for request_id in request_ids:
                self.endpoint.cancel_request(request_id, "client disconnected")
            await asyncio.sleep(self.disconnect_poll_interval)

    async def handle_get(self, request: Request) -> Response:
        """Open the server-to-client event stream, resuming from Last-Event-ID if sent"""
        self.touch()

        accept = request.headers.get("accept", "")
        if accept and EVENT_STREAM_MEDIA_TYPE not in accept and "*/*" not in accept:
            return PlainTextResponse(
                "Not Acceptable: Client must accept text/event-stream", status_code=406
            )
        if self._listener is not None:
            return PlainTextResponse(
                "Conflict: Only one SSE stream is allowed per session", status_code=409
            )

        last_event_id = request.headers.get(LAST_EVENT_ID_HEADER)
        return EventSourceResponse(
            self.event_stream(last_event_id),
            headers=self.session_headers,
            ping=self.ping_interval,
        )

    async def handle_delete(self, request: Request) -> Response:
        """Client-initiated termination"""
        logger.info(f"Client requested termination of session {self.session_id}")
        await self.close()
        return Response(status_code=200, headers=self.session_headers)

    # ===== LIFECYCLE =====

    async def close(self) -> None:
        """End the attached stream and notify the owner. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._listener is not None:
            self._listener.put_nowait(None)

        if self.on_close is not None:
            try:
                await self.on_close(self.session_id)
            except Exception:
                logger.exception(f"Error in close callback for session {self.session_id}")
