"""Debugger layout detection — which pane layout a session needs."""

from __future__ import annotations

import enum

from hyperpwn.replay.render import strip_ansi


class DebuggerLayout(enum.StrEnum):
    GEF = "gef"
    PWNDBG = "pwndbg"


# Banner text each debugger prints once it has loaded
_LAYOUT_TRIGGERS: dict[DebuggerLayout, str] = {
    DebuggerLayout.GEF: "GEF for linux ready",
    DebuggerLayout.PWNDBG: "pwndbg: loaded ",
}


def detect_layouts(text: str) -> list[DebuggerLayout]:
    """Layouts whose banner appears in ``text`` once styling is removed."""
    plain = strip_ansi(text)
    return [layout for layout, trigger in _LAYOUT_TRIGGERS.items() if trigger in plain]


def layout_config_name(layout: DebuggerLayout | str) -> str:
    """File name of the layout configuration the host installs."""
    return f"hyperpwn-{DebuggerLayout(layout)}.yml"
