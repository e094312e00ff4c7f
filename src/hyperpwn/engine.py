"""Replay engine — demultiplexes debugger context output across panes.

One engine serves every pane of a terminal window. The host feeds it the
output of each pane (``on_data``), pane resizes and navigation commands;
the engine answers with the text the pane should really display and
sends replayed frames over the wire.

All handlers run to completion and never suspend, so the engine needs no
locking as long as the host calls it from a single event loop.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from typing import Any, Awaitable, Callable

from hyperpwn.config import HyperpwnConfig
from hyperpwn.context.detector import ContextDetector, FragmentKind, MarkerMatcher
from hyperpwn.context.splitter import attribute, split_block
from hyperpwn.layout import DebuggerLayout, detect_layouts, layout_config_name
from hyperpwn.replay.history import HistoryStore
from hyperpwn.replay.registry import SessionRegistry
from hyperpwn.replay.render import CURSOR_HIDE, replay_frame
from hyperpwn.session.wire import Wire

logger = logging.getLogger(__name__)

LayoutLoader = Callable[[DebuggerLayout], Awaitable[None] | None]


class NavigateDirection(enum.StrEnum):
    PREVIOUS = "previous"
    NEXT = "next"
    LAST = "last"


# Host command names bound to the configured hotkeys
_COMMANDS: dict[str, NavigateDirection] = {
    "pwn:replayprev": NavigateDirection.PREVIOUS,
    "pwn:replaynext": NavigateDirection.NEXT,
}


class ReplayEngine:
    """Owns the session registry, block detector, history and cursor."""

    def __init__(
        self,
        wire: Wire | None = None,
        config: HyperpwnConfig | None = None,
        layout_loader: LayoutLoader | None = None,
        markers: MarkerMatcher | None = None,
    ) -> None:
        self.config = config or HyperpwnConfig()
        self.wire = wire or Wire()
        self.registry = SessionRegistry()
        self.history = HistoryStore(max_segments=self.config.replay.max_segments)
        self.detector = ContextDetector(markers)
        self._layout_loader = layout_loader
        self._columns: dict[str, int] = {}
        self._layout_tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def on_session_output(self, session_id: str, text: str) -> list[DebuggerLayout]:
        """Watch session output for debugger banners and request their layouts."""
        layouts = detect_layouts(text)
        for layout in layouts:
            logger.info("Session %s started %s, loading its layout", session_id, layout)
            self.wire.send_layout_load(str(layout), layout_config_name(layout))
            self._dispatch_layout(layout)
        return layouts

    def on_session_announcement(self, session_id: str, text: str) -> str | None:
        """Register a pane that announced its view.

        Returns the data that replaces the announcement in the pane, or
        ``None`` if ``text`` was not an announcement.
        """
        view = self.registry.register(session_id, text)
        if view is None:
            return None
        self.history.track(session_id)
        self.wire.send_session_registered(session_id, view)
        return CURSOR_HIDE

    def on_data(self, session_id: str, chunk: str) -> str:
        """Process one chunk of pane output.

        Returns what the pane should display instead of ``chunk``; an
        empty string means the chunk is swallowed, typically because it
        belongs to a context block that is still open.
        """
        replacement = self.on_session_announcement(session_id, chunk)
        if replacement is not None:
            return replacement

        output: list[str] = []
        for fragment in self.detector.feed(chunk, session_id):
            if fragment.kind is FragmentKind.PASS:
                output.append(fragment.text)
            else:
                output.append(self._capture_block(fragment.text))
        return "".join(output)

    def on_resize(self, session_id: str, columns: int) -> None:
        """Re-render the current frame of a pane at its new width."""
        self._columns[session_id] = columns
        self.emit(session_id, columns)

    def on_navigate(self, direction: NavigateDirection | str) -> bool:
        """Move the shared cursor and replay every pane.

        Accepts a direction or one of the host command names
        (``pwn:replayprev`` / ``pwn:replaynext``). Returns True if the
        cursor moved.
        """
        if direction in _COMMANDS:
            direction = _COMMANDS[direction]
        direction = NavigateDirection(direction)

        if direction is NavigateDirection.PREVIOUS:
            moved = self.history.prev()
        elif direction is NavigateDirection.NEXT:
            moved = self.history.next()
        else:
            moved = self.history.last()

        if moved:
            logger.debug("Replay cursor -> %s", self.history.cursor)
            self.replay_all()
        else:
            logger.debug(
                "Navigation %s ignored (cursor=%s, length=%s)",
                direction,
                self.history.cursor,
                self.history.length_agreement(),
            )
        return moved

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def emit(self, session_id: str, columns: int | None = None) -> bool:
        """Send the segment at the cursor to a pane. Returns True if sent."""
        segment = self.history.current(session_id)
        if segment is None:
            return False
        self._send_frame(session_id, segment.content, columns)
        return True

    def replay_all(self) -> None:
        """Emit the cursor position for every tracked session."""
        for session_id in self.history.sessions():
            self.emit(session_id)

    def columns(self, session_id: str) -> int:
        """Last known width of a pane."""
        return self._columns.get(session_id, self.config.replay.default_columns)

    def header_label(self, session_id: str) -> str | None:
        """Pane header text, or ``None`` when the pane gets no header."""
        view = self.registry.view_name(session_id)
        if not self.config.show_headers or view is None:
            return None
        return f"[{view}]"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _capture_block(self, body: str) -> str:
        """Store a completed block and return its unclaimed text."""
        result = attribute(split_block(body), self.registry)
        updated: list[str] = []
        for session_id, content in result.segments:
            if session_id not in self.history:
                self.history.track(session_id)
            self.history.append(session_id, content)
            updated.append(session_id)

        if updated:
            self.wire.send_block_captured(updated, self.history.cursor)
            self._replay_latest(updated)
        return result.passthrough

    def _replay_latest(self, updated: list[str]) -> None:
        """Show the newest capture in every pane."""
        length = self.history.length_agreement()
        if length:
            self.history.last()
            self.replay_all()
            return
        # Histories diverged: each updated pane shows its own newest section
        logger.debug("History lengths diverged, replaying updated sessions only")
        for session_id in updated:
            segment = self.history.latest(session_id)
            if segment is not None:
                self._send_frame(session_id, segment.content)

    def _send_frame(self, session_id: str, content: str, columns: int | None = None) -> None:
        width = columns if columns is not None else self.columns(session_id)
        frame = replay_frame(content, width, self.config.replay.tab_size)
        self.wire.send_pty_data(session_id, frame)

    def _dispatch_layout(self, layout: DebuggerLayout) -> None:
        """Run the layout loader without waiting for it."""
        if self._layout_loader is None:
            return
        try:
            result = self._layout_loader(layout)
        except Exception:
            logger.exception("Layout loader failed for %s", layout)
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, layout %s not loaded", layout)
            if inspect.iscoroutine(result):
                result.close()
            return
        task = loop.create_task(_await(result))
        self._layout_tasks.add(task)
        task.add_done_callback(self._layout_done)

    def _layout_done(self, task: asyncio.Task[Any]) -> None:
        self._layout_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Layout loader failed: %s", exc, exc_info=exc)
            self.wire.send_error(f"Layout loading failed: {exc}")


async def _await(awaitable: Awaitable[None]) -> None:
    await awaitable
