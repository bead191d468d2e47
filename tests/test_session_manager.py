# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Unit tests for SessionManager lifecycle and exactly-once teardown"""

import asyncio
import itertools
from unittest.mock import AsyncMock

import pytest

from mcp_runtime.event_store import InMemoryEventStore
from mcp_runtime.session import SessionState
from mcp_runtime.session_manager import SessionManager


@pytest.fixture
def event_store():
    return InMemoryEventStore()


@pytest.fixture
def manager(mcp_server, event_store):
    return SessionManager(mcp_server.create_endpoint, event_store=event_store)


def spy_on_endpoint_close(session):
    """Wrap endpoint.close so calls are counted but still run"""
    spy = AsyncMock(wraps=session.endpoint.close)
    session.endpoint.close = spy
    return spy


async def test_create_session(manager):
    """Test creation stores a wired endpoint/transport pair"""
    session = manager.create_session()

    assert session.session_id in manager
    assert len(manager) == 1
    assert session.endpoint.session_id == session.session_id
    assert session.transport.session_id == session.session_id
    assert session.transport.endpoint is session.endpoint
    assert session.state == SessionState.UNINITIALIZED
    assert manager.get(session.session_id) is session


async def test_session_ids_are_unique(manager):
    """Test every created session gets a distinct id"""
    ids = {manager.create_session().session_id for _ in range(50)}

    assert len(ids) == 50


async def test_id_collision_regenerates(mcp_server):
    """Test a colliding generated id is never reused"""
    ids = itertools.chain(["dup", "dup"], (f"id-{n}" for n in itertools.count()))
    manager = SessionManager(mcp_server.create_endpoint, session_id_generator=lambda: next(ids))

    first = manager.create_session()
    second = manager.create_session()

    assert first.session_id == "dup"
    assert second.session_id == "id-0"


async def test_get_unknown_or_empty(manager):
    """Test lookup of missing ids"""
    assert manager.get(None) is None
    assert manager.get("") is None
    assert manager.get("nope") is None


async def test_close_session_is_idempotent(manager):
    """Test a second close is a no-op and the endpoint closes once"""
    session = manager.create_session()
    endpoint_close = spy_on_endpoint_close(session)

    assert await manager.close_session(session.session_id) is True
    assert await manager.close_session(session.session_id) is False

    endpoint_close.assert_awaited_once()
    assert session.session_id not in manager
    assert session.state == SessionState.CLOSED
    assert session.transport.closed


async def test_begin_close_guard(manager):
    """Test only the first caller wins the guard and closing sessions are hidden"""
    session = manager.create_session()

    claimed = manager.begin_close(session.session_id)

    assert claimed is session
    assert manager.begin_close(session.session_id) is None
    assert manager.get(session.session_id) is None
    assert session.state == SessionState.CLOSING
    # Still in the table until teardown finishes
    assert session.session_id in manager

    await manager.finish_close(session)
    assert session.session_id not in manager


async def test_concurrent_close_triggers_tear_down_once(manager):
    """Test DELETE-style close racing a transport close"""
    session = manager.create_session()
    endpoint_close = spy_on_endpoint_close(session)

    results = await asyncio.gather(
        manager.close_session(session.session_id),
        session.transport.close(),
        manager.close_session(session.session_id),
    )

    assert results[0] is True
    assert results[2] is False
    endpoint_close.assert_awaited_once()
    assert len(manager) == 0


async def test_transport_close_tears_down_session(manager):
    """Test the transport's close callback removes the session"""
    session = manager.create_session()

    await session.transport.close()

    assert session.session_id not in manager
    assert session.endpoint.closed


async def test_teardown_failure_is_logged_and_swallowed(manager, caplog):
    """Test a failing endpoint close still removes the entry"""
    session = manager.create_session()
    session.endpoint.close = AsyncMock(side_effect=RuntimeError("socket already gone"))

    claimed = manager.begin_close(session.session_id)
    failure = await manager.finish_close(claimed)

    assert failure is not None
    assert failure.session_id == session.session_id
    assert "socket already gone" in failure.message
    assert session.session_id not in manager
    assert "Error closing protocol endpoint" in caplog.text


async def test_teardown_drops_event_streams(manager, event_store):
    """Test a closed session's events are discarded"""
    session = manager.create_session()
    await session.transport.send({"jsonrpc": "2.0", "method": "notifications/message"})
    assert event_store.latest_event_id(session.session_id) == 1

    await manager.close_session(session.session_id)

    assert event_store.stream_ids() == []


async def test_close_all_is_best_effort(manager):
    """Test shutdown closes everything even if one session fails"""
    good = manager.create_session()
    bad = manager.create_session()
    bad.transport.close = AsyncMock(side_effect=RuntimeError("boom"))

    failures = await manager.close_all()

    assert [f.session_id for f in failures] == [bad.session_id]
    assert len(manager) == 0
    assert good.endpoint.closed
    assert good.transport.closed


async def test_close_all_skips_sessions_already_closing(manager):
    """Test shutdown leaves an in-progress teardown to its owner"""
    session = manager.create_session()
    endpoint_close = spy_on_endpoint_close(session)
    manager.begin_close(session.session_id)

    await manager.close_all()
    await manager.finish_close(session)

    endpoint_close.assert_awaited_once()


async def test_expire_idle_sessions(mcp_server):
    """Test idle sessions are closed through their transport"""
    manager = SessionManager(mcp_server.create_endpoint, session_timeout_seconds=30)
    idle = manager.create_session()
    busy = manager.create_session()
    idle.transport.idle_seconds = lambda: 31.0
    busy.transport.idle_seconds = lambda: 1.0

    expired = await manager.expire_idle_sessions()

    assert expired == [idle.session_id]
    assert idle.session_id not in manager
    assert idle.endpoint.closed
    assert busy.session_id in manager


async def test_expiry_defaults_to_one_hour(manager):
    """Test sessions expire after an hour idle unless configured otherwise"""
    fresh = manager.create_session()
    stale = manager.create_session()
    fresh.transport.idle_seconds = lambda: 3599.0
    stale.transport.idle_seconds = lambda: 3601.0

    assert manager.session_timeout_seconds == 3600
    assert await manager.expire_idle_sessions() == [stale.session_id]
    assert fresh.session_id in manager


async def test_expiry_disabled_with_zero_timeout(mcp_server):
    """Test timeout 0 never expires sessions"""
    manager = SessionManager(mcp_server.create_endpoint, session_timeout_seconds=0)
    session = manager.create_session()
    session.transport.idle_seconds = lambda: 10_000.0

    assert await manager.expire_idle_sessions() == []
    assert session.session_id in manager
