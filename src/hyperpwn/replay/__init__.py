"""Replay — per-session history, the shared cursor, and frame rendering.

Every captured context section is stored in its session's history. A
single cursor walks all histories together, and the frame at the cursor
is re-rendered for the pane's current width.
"""

from hyperpwn.replay.history import HistoryStore, Segment
from hyperpwn.replay.registry import SessionRegistry, match_announcement
from hyperpwn.replay.render import (
    CLEAR_SCREEN,
    CURSOR_HIDE,
    render_content,
    render_line,
    replay_frame,
    strip_ansi,
)

__all__ = [
    "CLEAR_SCREEN",
    "CURSOR_HIDE",
    "HistoryStore",
    "Segment",
    "SessionRegistry",
    "match_announcement",
    "render_content",
    "render_line",
    "replay_frame",
    "strip_ansi",
]
