"""``study-snap history``: show the most recent study sessions."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from ..core import config as config_mod
from ..core import runtime as runtime_mod
from ..core import workspace as workspace_mod
from ..core.errors import LoggingError
from .store import MAX_RECENT, SessionLogEntry


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-snap history",
        description="List recent study sessions, newest first.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help=(
            f"Entries to show (1-{MAX_RECENT}; defaults to "
            "history.recent_limit)."
        ),
    )
    parser.add_argument("--config", type=Path, help="Path to the config TOML.")
    return parser


def _flag(value: bool) -> str:
    return "✓" if value else ""


def render_history(
    console: Console, entries: Sequence[SessionLogEntry]
) -> None:
    if not entries:
        console.print("No study sessions recorded yet.")
        return
    table = Table(title="Recent sessions", box=box.SIMPLE, expand=True)
    table.add_column("When")
    table.add_column("Topic", overflow="fold")
    table.add_column("Summary", justify="center")
    table.add_column("Flashcards", justify="center")
    table.add_column("Quiz", justify="center")
    table.add_column("Score", justify="right")
    for entry in entries:
        table.add_row(
            entry.created_at or "",
            entry.topic_title,
            _flag(entry.has_summary),
            _flag(entry.has_flashcards),
            _flag(entry.has_quiz),
            "" if entry.quiz_score is None else str(entry.quiz_score),
        )
    console.print(table)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    try:
        runtime = runtime_mod.load_runtime(config_path=args.config)
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 2

    store = runtime_mod.open_history(runtime.config, runtime.layout)
    if store is None:
        console.print("Session history is disabled or unavailable.")
        return 1
    limit = args.limit
    if limit is None:
        limit = runtime.config.history.recent_limit
    try:
        entries = store.recent(limit)
    except LoggingError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1
    render_history(console, entries)
    return 0
