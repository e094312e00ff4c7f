"""CLI entry point for hyperpwn.

The commands replay recorded pane output through a :class:`ReplayEngine`.
A recording is a JSONL file, one host event per line::

    {"event": "data", "session": "a1", "data": " hyperpwn regs\\r\\n\\r\\n"}
    {"event": "resize", "session": "a1", "columns": 120}
    {"event": "navigate", "direction": "previous"}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from hyperpwn import __version__
from hyperpwn.config import HyperpwnConfig
from hyperpwn.engine import ReplayEngine
from hyperpwn.replay.render import render_content

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="hyperpwn",
    help="Replay GEF/pwndbg context views across terminal panes.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@dataclass
class Playback:
    """What a recording left behind after it was fed to an engine."""

    engine: ReplayEngine
    displayed: dict[str, str] = field(default_factory=dict)  # session -> pane text
    events: int = 0


def play_recording(path: Path, config: HyperpwnConfig) -> Playback:
    """Feed every event of a recording into a fresh engine."""
    playback = Playback(engine=ReplayEngine(config=config))
    engine = playback.engine
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                record: dict[str, Any] = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("Skipping line %d of %s: %s", lineno, path, e)
                continue
            _apply(playback, record)
            playback.events += 1
    for session_id in playback.displayed:
        playback.displayed[session_id] += engine.detector.flush(session_id)
    return playback


def _apply(playback: Playback, record: dict[str, Any]) -> None:
    engine = playback.engine
    event = record.get("event")
    session_id = str(record.get("session", ""))
    if event == "data":
        data = str(record.get("data", ""))
        engine.on_session_output(session_id, data)
        shown = engine.on_data(session_id, data)
        playback.displayed[session_id] = playback.displayed.get(session_id, "") + shown
    elif event == "resize":
        try:
            columns = int(record["columns"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping resize event without valid columns: %r", e)
            return
        engine.on_resize(session_id, columns)
    elif event == "navigate":
        try:
            engine.on_navigate(str(record["direction"]))
        except (KeyError, ValueError) as e:
            logger.warning("Skipping navigate event: %r", e)
    else:
        logger.warning("Unknown event type: %r", event)


def _load(config_file: str | None, recording: str) -> tuple[HyperpwnConfig, Path]:
    path = Path(os.path.abspath(recording))
    if not path.is_file():
        typer.echo(f"Error: Recording not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        config = HyperpwnConfig.load(config_file)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(1)
    return config, path


@app.command()
def summary(
    recording: str = typer.Argument(help="JSONL recording of pane events."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """List the sessions of a recording and the context sections captured."""
    setup_logging(verbose)
    config, path = _load(config_file, recording)
    playback = play_recording(path, config)
    engine = playback.engine

    table = Table(title=f"hyperpwn v{__version__} — {path.name}")
    table.add_column("Session")
    table.add_column("View")
    table.add_column("Sections", justify="right")
    table.add_column("Passed through", justify="right")
    for session_id in sorted(set(engine.history.sessions()) | set(playback.displayed)):
        table.add_row(
            session_id,
            engine.registry.view_name(session_id) or "-",
            str(engine.history.total_appended(session_id)),
            str(len(playback.displayed.get(session_id, ""))),
        )

    console = Console()
    console.print(table)
    console.print(
        f"Events: {playback.events}  Cursor: {engine.history.cursor}  "
        f"Aligned length: {engine.history.length_agreement()}"
    )
    if engine.detector.is_open:
        console.print(
            f"[yellow]Unterminated context block ({engine.detector.pending} chars buffered)[/yellow]"
        )


@app.command()
def show(
    recording: str = typer.Argument(help="JSONL recording of pane events."),
    session: str = typer.Argument(help="Session ID to show."),
    index: int | None = typer.Option(
        None, "--index", "-i", help="History index (default: the replay cursor)."
    ),
    columns: int | None = typer.Option(
        None, "--columns", "-w", help="Render width (default: the pane's width)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Print one captured section the way the pane would display it."""
    setup_logging(verbose)
    config, path = _load(config_file, recording)
    engine = play_recording(path, config).engine

    if session not in engine.history:
        typer.echo(f"Error: No history for session {session}", err=True)
        raise typer.Exit(1)

    if index is None:
        segment = engine.history.current(session)
    else:
        segments = engine.history.segments(session)
        segment = segments[index] if -len(segments) <= index < len(segments) else None
    if segment is None:
        typer.echo(f"Error: Nothing captured at that position for {session}", err=True)
        raise typer.Exit(1)

    width = columns or engine.columns(session)
    typer.echo(render_content(segment.content, width, config.replay.tab_size))


@app.command()
def keymaps(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Print the replay hotkeys as host key bindings."""
    try:
        config = HyperpwnConfig.load(config_file)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(1)
    for command, key in config.keymaps().items():
        typer.echo(f"{command}\t{key}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
