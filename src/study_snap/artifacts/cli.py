"""``study-snap summary`` and ``study-snap flashcards`` commands."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from ..core import config as config_mod
from ..core import runtime as runtime_mod
from ..core import workspace as workspace_mod
from ..core.errors import UpstreamError
from ..core.gateway import CompletionGateway
from ..history.store import SessionLogEntry, record_session, topic_title_for
from .generate import generate_flashcards, generate_summary, parse_flashcards

GatewayFactory = Callable[[config_mod.StudySnapConfig], CompletionGateway]


def _build_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "source",
        nargs="?",
        type=Path,
        help="Text file to process (reads stdin when omitted or '-').",
    )
    parser.add_argument("--config", type=Path, help="Path to the config TOML.")
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not record this run in the history store.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )
    return parser


def _prepare(
    args: argparse.Namespace,
    console: Console,
    gateway_factory: Optional[GatewayFactory],
):
    try:
        runtime = runtime_mod.load_runtime(
            config_path=args.config, verbose=args.verbose
        )
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        return None
    try:
        text = runtime_mod.read_source_text(args.source)
    except OSError as exc:
        console.print(f"[red]Error:[/] unable to read source text: {exc}")
        return None
    if not text.strip():
        console.print("[red]Error:[/] No text provided.")
        return None
    factory = gateway_factory or runtime_mod.build_gateway
    try:
        gateway = factory(runtime.config)
    except RuntimeError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return None
    history = None if args.no_history else runtime_mod.open_history(
        runtime.config, runtime.layout
    )
    return text, gateway, history


def summary_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    gateway_factory: Optional[GatewayFactory] = None,
) -> int:
    parser = _build_parser(
        "study-snap summary", "Summarize study text in 2-3 short bullets."
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()
    prepared = _prepare(args, console, gateway_factory)
    if prepared is None:
        return 2
    text, gateway, history = prepared

    console.print("Generating summary...")
    try:
        result = generate_summary(text, gateway=gateway)
    except UpstreamError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1
    console.print(result, markup=False)
    record_session(
        history,
        SessionLogEntry(topic_title=topic_title_for(text), has_summary=True),
    )
    return 0


def flashcards_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    gateway_factory: Optional[GatewayFactory] = None,
) -> int:
    parser = _build_parser(
        "study-snap flashcards", "Generate Q/A flashcards from study text."
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the model output verbatim instead of a table.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()
    prepared = _prepare(args, console, gateway_factory)
    if prepared is None:
        return 2
    text, gateway, history = prepared

    console.print("Generating flashcards...")
    try:
        result = generate_flashcards(text, gateway=gateway)
    except UpstreamError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1

    cards = parse_flashcards(result)
    if args.raw or not cards:
        console.print(result, markup=False)
    else:
        table = Table(title="Flashcards", box=box.SIMPLE, expand=True)
        table.add_column("#", justify="right")
        table.add_column("Question", overflow="fold")
        table.add_column("Answer", overflow="fold")
        for idx, card in enumerate(cards, start=1):
            table.add_row(str(idx), card.question, card.answer)
        console.print(table)
    record_session(
        history,
        SessionLogEntry(
            topic_title=topic_title_for(text), has_flashcards=True
        ),
    )
    return 0
