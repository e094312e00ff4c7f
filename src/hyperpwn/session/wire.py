"""Wire protocol — decouples the replay engine from its terminal host.

Events flow from the engine to the host. The host subscribes to the
wire and applies them: writing frames into panes, loading layouts,
updating pane headers.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any


class EventType(enum.Enum):
    PTY_DATA = "pty_data"
    SESSION_REGISTERED = "session_registered"
    BLOCK_CAPTURED = "block_captured"
    LAYOUT_LOAD = "layout_load"
    ERROR = "error"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Async message bus: engine -> host subscribers.

    Single-producer, multi-consumer broadcast.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[WireEvent | None]] = []
        self._closed: bool = False

    def send(self, event: WireEvent) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed:
            return
        for q in self._subscribers:
            q.put_nowait(event)

    def send_error(self, error: str) -> None:
        self.send(WireEvent(type=EventType.ERROR, data={"error": error}))

    def send_pty_data(self, session_id: str, data: str) -> None:
        """Ask the host to write ``data`` into a session's pane."""
        self.send(
            WireEvent(
                type=EventType.PTY_DATA,
                data={"session_id": session_id, "data": data},
            )
        )

    def send_session_registered(self, session_id: str, view: str) -> None:
        self.send(
            WireEvent(
                type=EventType.SESSION_REGISTERED,
                data={"session_id": session_id, "view": view},
            )
        )

    def send_block_captured(self, session_ids: list[str], cursor: int | None) -> None:
        """Notify subscribers that a context block was split into history."""
        self.send(
            WireEvent(
                type=EventType.BLOCK_CAPTURED,
                data={"session_ids": session_ids, "cursor": cursor},
            )
        )

    def send_layout_load(self, name: str, config_name: str) -> None:
        """Ask the host to install and activate a named layout."""
        self.send(
            WireEvent(
                type=EventType.LAYOUT_LOAD,
                data={"name": name, "config": config_name},
            )
        )

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        if q in self._subscribers:
            self._subscribers.remove(q)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        self._closed = True
        for q in self._subscribers:
            q.put_nowait(None)
