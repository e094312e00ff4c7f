"""Context block detector — find debugger context snapshots in a PTY stream.

GEF and pwndbg print their context as a block that opens with a
``legend:`` line and closes with a line made only of ``─`` characters.
Chunks arrive with arbitrary boundaries, so the detector keeps the open
block in a buffer and searches the accumulated text, never a single
chunk, for the closing rule.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

START_RE = re.compile(r"^(\[ )?legend:", re.IGNORECASE | re.MULTILINE)
END_RE = re.compile(r"\r?\n(\x1b\[[^m]*m)*─+(\x1b\[[^m]*m)*\r?\n")

_START_LITERALS = ("legend:", "[ legend:")


class DetectorState(enum.Enum):
    """Whether the detector is inside a context block."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"


class FragmentKind(enum.Enum):
    PASS = "pass"  # Forward downstream unchanged
    BLOCK = "block"  # Completed block body, marker text removed


@dataclass(frozen=True)
class Fragment:
    kind: FragmentKind
    text: str


class MarkerMatcher(Protocol):
    """Locates block markers. Spans are (start, end) offsets into the text."""

    def find_start(self, text: str, pos: int = 0) -> tuple[int, int] | None: ...

    def find_end(self, text: str) -> tuple[int, int] | None: ...

    def partial_start(self, text: str) -> bool:
        """True if ``text`` could still grow into a start marker."""
        ...


class RegexMarkers:
    """Default marker matcher for the GEF/pwndbg context layout."""

    def __init__(
        self,
        start: re.Pattern[str] = START_RE,
        end: re.Pattern[str] = END_RE,
        start_literals: tuple[str, ...] = _START_LITERALS,
    ) -> None:
        self._start = start
        self._end = end
        self._start_literals = tuple(s.lower() for s in start_literals)

    def find_start(self, text: str, pos: int = 0) -> tuple[int, int] | None:
        match = self._start.search(text, pos)
        return match.span() if match else None

    def find_end(self, text: str) -> tuple[int, int] | None:
        match = self._end.search(text)
        return match.span() if match else None

    def partial_start(self, text: str) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(
            literal.startswith(lowered) and literal != lowered
            for literal in self._start_literals
        )


@dataclass
class _Stream:
    """Detector state for one output source."""

    state: DetectorState = DetectorState.IDLE
    buffer: str = ""
    # Idle text held back because it may be the start of a marker
    held: str = ""
    # Whether the next unseen character begins a line
    at_line_start: bool = True


class ContextDetector:
    """Two-state machine splitting a chunk stream into pass-through and blocks.

    ``feed()`` returns the fragments produced by one chunk in stream order.
    While a block is open nothing is passed through; a block that never
    closes keeps buffering until ``reset()``.

    Each ``source`` (one pane, in practice) runs its own machine, so output
    interleaved from several panes never lands in another pane's block or
    hides another pane's markers.
    """

    def __init__(self, markers: MarkerMatcher | None = None) -> None:
        self._markers: MarkerMatcher = markers or RegexMarkers()
        self._streams: dict[str, _Stream] = {}

    def feed(self, chunk: str, source: str = "") -> list[Fragment]:
        """Consume one chunk from ``source`` and return the resulting fragments."""
        fragments: list[Fragment] = []
        stream = self._stream(source)
        if stream.state is DetectorState.ACCUMULATING:
            stream.buffer += chunk
            self._close(stream, fragments)
        else:
            text = stream.held + chunk
            stream.held = ""
            self._scan(stream, text, fragments)
        return fragments

    def flush(self, source: str = "") -> str:
        """Release text held back from ``source`` as a possible marker prefix."""
        stream = self._streams.get(source)
        if stream is None or not stream.held:
            return ""
        held, stream.held = stream.held, ""
        stream.at_line_start = held.endswith("\n")
        return held

    def reset(self, source: str | None = None) -> None:
        """Drop open blocks and held text, for one source or all of them."""
        sources = list(self._streams) if source is None else [source]
        for name in sources:
            stream = self._streams.pop(name, None)
            if stream is not None and stream.buffer:
                logger.debug(
                    "Discarding open context block from %r (%d chars)", name, len(stream.buffer)
                )

    def state_of(self, source: str = "") -> DetectorState:
        stream = self._streams.get(source)
        return stream.state if stream else DetectorState.IDLE

    def held(self, source: str = "") -> str:
        """Text currently held back from ``source``."""
        stream = self._streams.get(source)
        return stream.held if stream else ""

    @property
    def state(self) -> DetectorState:
        """ACCUMULATING while any source has an open block."""
        if self.is_open:
            return DetectorState.ACCUMULATING
        return DetectorState.IDLE

    @property
    def is_open(self) -> bool:
        return any(s.state is DetectorState.ACCUMULATING for s in self._streams.values())

    @property
    def pending(self) -> int:
        """Characters buffered for open blocks."""
        return sum(len(s.buffer) for s in self._streams.values())

    # ------------------------------------------------------------------

    def _stream(self, source: str) -> _Stream:
        stream = self._streams.get(source)
        if stream is None:
            stream = self._streams[source] = _Stream()
        return stream

    def _scan(self, stream: _Stream, text: str, fragments: list[Fragment]) -> None:
        """Idle: look for a start marker, passing everything before it."""
        span = self._find_line_start_marker(stream, text)
        if span is None:
            self._hold_partial(stream, text, fragments)
            return

        start, end = span
        self._pass(stream, text[:start], fragments)
        stream.state = DetectorState.ACCUMULATING
        stream.buffer = text[end:]
        logger.debug("Context block opened")
        self._close(stream, fragments)

    def _find_line_start_marker(self, stream: _Stream, text: str) -> tuple[int, int] | None:
        span = self._markers.find_start(text)
        if span is not None and span[0] == 0 and not stream.at_line_start:
            # Offset 0 only counts as a line start after a line break
            span = self._markers.find_start(text, 1)
        return span

    def _hold_partial(self, stream: _Stream, text: str, fragments: list[Fragment]) -> None:
        line_start = text.rfind("\n") + 1
        if line_start == 0 and not stream.at_line_start:
            self._pass(stream, text, fragments)
            return
        tail = text[line_start:]
        if self._markers.partial_start(tail):
            stream.held = tail
            self._pass(stream, text[:line_start], fragments)
        else:
            self._pass(stream, text, fragments)

    def _close(self, stream: _Stream, fragments: list[Fragment]) -> None:
        """Accumulating: finish the block if the buffer holds an end marker."""
        span = self._markers.find_end(stream.buffer)
        if span is None:
            return

        start, end = span
        body = stream.buffer[:start]
        tail = stream.buffer[end:]
        stream.state = DetectorState.IDLE
        stream.buffer = ""
        # The end marker consumed a line break
        stream.at_line_start = True
        logger.debug("Context block closed (%d chars)", len(body))
        fragments.append(Fragment(FragmentKind.BLOCK, body))
        if tail:
            self._scan(stream, tail, fragments)

    def _pass(self, stream: _Stream, text: str, fragments: list[Fragment]) -> None:
        if not text:
            return
        stream.at_line_start = text.endswith("\n")
        fragments.append(Fragment(FragmentKind.PASS, text))
