"""Replay rendering — fit captured context segments to a pane's width."""

from __future__ import annotations

import re

from rich.console import Console
from rich.text import Text

# Full terminal reset; clears the pane before a replayed frame is drawn
CLEAR_SCREEN = "\x1bc"
CURSOR_HIDE = "\x1b[?25l"

TAB_SIZE = 8

_ANSI_RE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07\x1b]*(?:\x07|\x1b\\)|[0-~])")
_LINE_BREAK_RE = re.compile(r"(\r\n|\r|\n)")

_console = Console(
    force_terminal=True,
    color_system="truecolor",
    legacy_windows=False,
    highlight=False,
)


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences (CSI, OSC and two-byte escapes) from text."""
    return _ANSI_RE.sub("", text)


def render_line(line: str, columns: int, tab_size: int = TAB_SIZE) -> str:
    """Expand tabs and crop one styled line to ``columns`` cells.

    The line is never wrapped or padded. Styling is decoded and re-encoded,
    so the escape codes in the result may differ from the input while
    describing the same colours.
    """
    if columns <= 0:
        return ""
    text = Text.from_ansi(line, end="")
    text.expand_tabs(tab_size)
    text.truncate(columns, overflow="crop")
    with _console.capture() as capture:
        _console.print(text, end="", soft_wrap=True)
    return capture.get()


def render_content(content: str, columns: int, tab_size: int = TAB_SIZE) -> str:
    """Apply :func:`render_line` to every line of ``content``.

    Line terminators are kept as they were, only the text between them
    is rendered.
    """
    parts = _LINE_BREAK_RE.split(content)
    # Odd indices are the captured terminators
    return "".join(
        part if i % 2 else render_line(part, columns, tab_size)
        for i, part in enumerate(parts)
    )


def replay_frame(content: str, columns: int, tab_size: int = TAB_SIZE) -> str:
    """Build the data written to a pane when a segment is replayed."""
    return CLEAR_SCREEN + CURSOR_HIDE + render_content(content, columns, tab_size)
