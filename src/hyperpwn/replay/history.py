"""Per-session segment history with a shared replay cursor."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """One session's part of a captured context block."""

    session_id: str
    content: str
    sequence_index: int  # Position in the session's history, 0-based


class HistoryStore:
    """Append-only segment histories sharing a single cursor.

    Every tracked session keeps its own sequence of segments. The cursor
    is one index applied to all of them, so navigation is only allowed
    while every sequence has the same length; otherwise the timelines no
    longer line up and prev/next/last do nothing.

    With ``max_segments`` set, each sequence keeps only its newest
    segments and the cursor indexes what is still retained.
    """

    def __init__(self, max_segments: int | None = None) -> None:
        self._max_segments = max_segments
        self._records: dict[str, deque[Segment]] = {}
        self._appended: dict[str, int] = {}  # Total segments ever appended
        self._cursor: int | None = None

    def track(self, session_id: str) -> None:
        """Start (or restart) the history of a session."""
        self._records[session_id] = deque(maxlen=self._max_segments)
        self._appended[session_id] = 0

    def append(self, session_id: str, content: str) -> Segment:
        """Append a segment and move the cursor to its position."""
        if session_id not in self._records:
            self.track(session_id)
        segment = Segment(
            session_id=session_id,
            content=content,
            sequence_index=self._appended[session_id],
        )
        records = self._records[session_id]
        records.append(segment)
        self._appended[session_id] += 1
        self._cursor = len(records) - 1
        return segment

    def length_agreement(self) -> int | None:
        """Common history length, or ``None`` when lengths have diverged.

        ``None`` is also returned when no session is tracked.
        """
        lengths = {len(records) for records in self._records.values()}
        if len(lengths) != 1:
            return None
        return lengths.pop()

    def prev(self) -> bool:
        """Step the cursor back. Returns True if it moved."""
        length = self.length_agreement()
        if not length or self._cursor is None:
            return False
        if 0 < self._cursor < length:
            self._cursor -= 1
            return True
        return False

    def next(self) -> bool:
        """Step the cursor forward. Returns True if it moved."""
        length = self.length_agreement()
        if not length or self._cursor is None:
            return False
        if self._cursor < length - 1:
            self._cursor += 1
            return True
        return False

    def last(self) -> bool:
        """Jump the cursor to the newest index. Returns True if it moved."""
        length = self.length_agreement()
        if not length or self._cursor == length - 1:
            return False
        self._cursor = length - 1
        return True

    def current(self, session_id: str) -> Segment | None:
        """Segment of a session at the cursor, if there is one."""
        records = self._records.get(session_id)
        if not records or self._cursor is None:
            return None
        if not 0 <= self._cursor < len(records):
            return None
        return records[self._cursor]

    def latest(self, session_id: str) -> Segment | None:
        """Newest segment of a session, ignoring the cursor."""
        records = self._records.get(session_id)
        return records[-1] if records else None

    def segments(self, session_id: str) -> list[Segment]:
        return list(self._records.get(session_id, ()))

    def sessions(self) -> list[str]:
        """Tracked session IDs in the order they started."""
        return list(self._records.keys())

    def total_appended(self, session_id: str) -> int:
        """Number of segments ever appended for a session."""
        return self._appended.get(session_id, 0)

    @property
    def cursor(self) -> int | None:
        return self._cursor

    @property
    def max_segments(self) -> int | None:
        return self._max_segments

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    def __len__(self) -> int:
        return len(self._records)
