# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Session Manager
Owns the session table and every lifecycle transition of a session.

Teardown is guarded by Session.is_closing. The guard is checked and set
without an await in between, so whichever trigger (DELETE, transport
close, idle expiry, shutdown) gets there first performs the teardown and
every later trigger is a no-op.
"""

import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional

from mcp_runtime.core.errors import TeardownError, sanitize_error_for_user
from mcp_runtime.core.logging import log_event
from mcp_runtime.event_store import EventStore, InMemoryEventStore
from mcp_runtime.protocol import ProtocolEndpoint
from mcp_runtime.session import Session
from mcp_runtime.transport import StreamableHTTPTransport

logger = logging.getLogger(__name__)

EndpointFactory = Callable[[str], ProtocolEndpoint]


def generate_session_id() -> str:
    return str(uuid.uuid4())


class SessionManager:
    """Manages session creation, lookup and teardown"""

    def __init__(
        self,
        endpoint_factory: EndpointFactory,
        event_store: Optional[EventStore] = None,
        session_id_generator: Callable[[], str] = generate_session_id,
        session_timeout_seconds: int = 3600
    ):
        self.endpoint_factory = endpoint_factory
        self.event_store = event_store or InMemoryEventStore()
        self.session_id_generator = session_id_generator
        self.session_timeout_seconds = session_timeout_seconds
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @property
    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())

    def create_session(self) -> Session:
        """Build endpoint + transport for a new session and store them"""
        session_id = self.session_id_generator()
        while session_id in self._sessions:
            logger.warning(f"Session id collision on {session_id}, regenerating")
            session_id = self.session_id_generator()

        endpoint = self.endpoint_factory(session_id)
        transport = StreamableHTTPTransport(
            session_id=session_id,
            event_store=self.event_store,
            endpoint=endpoint,
            on_close=self._on_transport_closed,
        )
        endpoint.connect(transport)

        session = Session(session_id=session_id, endpoint=endpoint, transport=transport)
        self._sessions[session_id] = session
        log_event(logger, "session_created", session_id=session_id, active_sessions=len(self._sessions))
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Return a live session; sessions that are closing count as unknown"""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None or session.is_closing:
            return None
        return session

    def begin_close(self, session_id: str) -> Optional[Session]:
        """
        Claim the teardown of a session.

        Returns:
            The session if this caller won the guard, None if the session is
            unknown or another trigger is already closing it
        """
        session = self._sessions.get(session_id)
        if session is None or session.is_closing:
            return None
        session.is_closing = True
        return session

    async def finish_close(self, session: Session) -> Optional[TeardownError]:
        """
        Close the protocol endpoint and drop the table entry.

        A failing endpoint close is logged and returned, never raised; the
        entry is removed regardless.
        """
        failure = None
        try:
            await session.endpoint.close()
        except Exception as e:
            logger.exception(f"Error closing protocol endpoint for session {session.session_id}")
            failure = TeardownError(session.session_id, sanitize_error_for_user(e))
        finally:
            self._sessions.pop(session.session_id, None)
            session.closed = True
            await self._drop_streams(session)

        log_event(logger, "session_closed", session_id=session.session_id, active_sessions=len(self._sessions))
        return failure

    async def close_session(self, session_id: str) -> bool:
        """
        Tear down a session if nobody else is already doing so.

        Returns:
            True if this call performed the teardown
        """
        session = self.begin_close(session_id)
        if session is None:
            return False
        await self.finish_close(session)
        return True

    async def _on_transport_closed(self, session_id: str) -> None:
        await self.close_session(session_id)

    async def _drop_streams(self, session: Session) -> None:
        for stream_id in session.transport.stream_ids:
            try:
                await self.event_store.drop_stream(stream_id)
            except Exception:
                logger.exception(f"Error dropping event stream {stream_id}")

    async def close_all(self) -> List[TeardownError]:
        """
        Best-effort shutdown of every session.

        Returns:
            Failures encountered, one per session that did not close cleanly
        """
        failures: List[TeardownError] = []
        for session_id, session in list(self._sessions.items()):
            if session.is_closing:
                continue
            session.is_closing = True
            try:
                await session.transport.close()
                await session.endpoint.close()
            except Exception as e:
                logger.exception(f"Error closing transport/server for session {session_id}")
                failures.append(TeardownError(session_id, sanitize_error_for_user(e)))
            finally:
                self._sessions.pop(session_id, None)
                session.closed = True
                await self._drop_streams(session)

        if failures:
            logger.warning(f"{len(failures)} session(s) failed to close cleanly during shutdown")
        return failures

    async def expire_idle_sessions(self) -> List[str]:
        """Close sessions idle longer than the timeout through their transport"""
        if self.session_timeout_seconds <= 0:
            return []

        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if not session.is_closing
            and not session.transport.stream_attached
            and session.idle_seconds() > self.session_timeout_seconds
        ]

        for session_id in expired:
            session = self._sessions.get(session_id)
            if session is None:
                continue
            logger.info(f"Closing idle session: {session_id}")
            await session.transport.close()
        return expired

    async def run_reaper(self, interval: float) -> None:
        """Periodically expire idle sessions until cancelled"""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.expire_idle_sessions()
            except Exception:
                logger.exception("Error expiring idle sessions")
