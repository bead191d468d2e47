# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Event Store for stream resumability

Append-only log of server-to-client messages per stream. Event ids are
integers starting at 1 and increase by one per stream; a reconnecting
client sends the last id it saw and receives every later event in order.

Replay policy for cursors the store cannot place (not an integer, negative,
or beyond the newest recorded id): the cursor is treated as "nothing seen"
and the whole retained stream is replayed. Duplicates are preferable to
silently dropped events.
"""

import bisect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

EventCursor = Union[int, str, None]


@dataclass(frozen=True)
class StoredEvent:
    """One outbound message destined for a stream"""
    stream_id: str
    event_id: int
    message: Dict[str, Any]


def parse_event_id(value: EventCursor) -> Optional[int]:
    """Parse a Last-Event-ID header value; None if it is not a valid cursor"""
    if value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


class EventStore(ABC):
    """Interface for event stores; methods are async so a shared store can back it"""

    @abstractmethod
    async def append(self, stream_id: str, message: Dict[str, Any]) -> int:
        """Store a message and return its event id"""

    @abstractmethod
    async def replay_after(self, stream_id: str, last_event_id: EventCursor) -> List[StoredEvent]:
        """Return every stored event with an id greater than last_event_id, in order"""

    @abstractmethod
    async def drop_stream(self, stream_id: str) -> None:
        """Discard a stream and all its events"""

    @abstractmethod
    def latest_event_id(self, stream_id: str) -> int:
        """Newest event id recorded for a stream (0 if none)"""


class InMemoryEventStore(EventStore):
    """
    Process-local event store.

    Appends never await between reading and bumping the sequence, so under
    a single event loop two appends to one stream cannot interleave.
    """

    def __init__(self):
        self._events: Dict[str, List[StoredEvent]] = {}
        self._sequences: Dict[str, int] = {}

    async def append(self, stream_id: str, message: Dict[str, Any]) -> int:
        event_id = self._sequences.get(stream_id, 0) + 1
        self._sequences[stream_id] = event_id
        self._events.setdefault(stream_id, []).append(
            StoredEvent(stream_id=stream_id, event_id=event_id, message=message)
        )
        return event_id

    async def replay_after(self, stream_id: str, last_event_id: EventCursor) -> List[StoredEvent]:
        events = self._events.get(stream_id, [])
        cursor = parse_event_id(last_event_id)
        latest = self.latest_event_id(stream_id)

        if cursor is None or cursor > latest:
            logger.warning(
                f"Unknown Last-Event-ID {last_event_id!r} for stream {stream_id}, "
                f"replaying all {len(events)} retained events"
            )
            cursor = 0

        # Events are appended in id order, so the list is sorted
        start = bisect.bisect_right([event.event_id for event in events], cursor)
        return events[start:]

    async def drop_stream(self, stream_id: str) -> None:
        self._events.pop(stream_id, None)
        self._sequences.pop(stream_id, None)

    def latest_event_id(self, stream_id: str) -> int:
        return self._sequences.get(stream_id, 0)

    def stream_ids(self) -> List[str]:
        return list(self._events.keys())
