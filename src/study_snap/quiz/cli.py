"""``study-snap quiz``: generate a quiz from study text and take it."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console

from ..core import config as config_mod
from ..core import runtime as runtime_mod
from ..core import workspace as workspace_mod
from ..core.errors import ExtractionError, UpstreamError
from ..core.gateway import CompletionGateway
from ..history.store import (
    SessionLogEntry,
    SessionLogger,
    record_session,
    topic_title_for,
)
from .console import InputProvider, run_quiz_session
from .extraction import (
    MAX_QUESTIONS,
    MIN_QUESTIONS,
    Quiz,
    clamp_count,
    generate_quiz,
)
from .session import QuizSession
from .view import QuizApp

GatewayFactory = Callable[[config_mod.StudySnapConfig], CompletionGateway]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-snap quiz",
        description=(
            "Generate multiple-choice questions from study text and take "
            "the quiz interactively."
        ),
    )
    parser.add_argument(
        "source",
        nargs="?",
        type=Path,
        help="Text file to quiz on (reads stdin when omitted or '-').",
    )
    parser.add_argument(
        "--count",
        "-n",
        default=None,
        help=(
            f"Number of questions ({MIN_QUESTIONS}-{MAX_QUESTIONS}); "
            "defaults to quiz.default_count."
        ),
    )
    parser.add_argument(
        "--tui",
        action="store_true",
        help="Use the Textual interface instead of the console prompt.",
    )
    parser.add_argument("--config", type=Path, help="Path to the config TOML.")
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not record this session in the history store.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )
    return parser


def _console_input(console: Console) -> InputProvider:
    return lambda: console.input("[bold]> [/]")


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
    gateway_factory: Optional[GatewayFactory] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    try:
        runtime = runtime_mod.load_runtime(
            config_path=args.config, verbose=args.verbose
        )
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 2

    try:
        text = runtime_mod.read_source_text(args.source)
    except OSError as exc:
        console.print(f"[red]Error:[/] unable to read source text: {exc}")
        return 2
    if not text.strip():
        console.print("[red]Error:[/] No text provided.")
        return 2

    cfg = runtime.config
    count = clamp_count(
        args.count if args.count is not None else cfg.quiz.default_count,
        default=cfg.quiz.default_count,
    )
    factory = gateway_factory or runtime_mod.build_gateway
    try:
        gateway = factory(cfg)
    except RuntimeError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 2

    history = None if args.no_history else runtime_mod.open_history(
        cfg, runtime.layout
    )
    title = topic_title_for(text)

    if args.tui:
        return _run_tui(text, count, gateway, history, title)

    console.print(f"Generating {count} MCQs...")
    try:
        quiz = generate_quiz(text, count, gateway=gateway)
    except (UpstreamError, ExtractionError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1
    console.print("Quiz generated. Answer questions below:")

    session = QuizSession(quiz)
    provider = input_provider or _console_input(console)
    result = run_quiz_session(session, console, provider)
    if result.exit_action == "finished":
        _record(history, title, session)
    return 0


def _record(
    history: SessionLogger | None, title: str, session: QuizSession
) -> None:
    record_session(
        history,
        SessionLogEntry(
            topic_title=title, has_quiz=True, quiz_score=session.score
        ),
    )


def _run_tui(
    text: str,
    count: int,
    gateway: CompletionGateway,
    history: SessionLogger | None,
    title: str,
) -> int:
    def generate() -> Quiz:
        return generate_quiz(text, count, gateway=gateway)

    app = QuizApp(
        generate=generate,
        on_finish=lambda session: _record(history, title, session),
    )
    app.run()
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    sys.exit(main())
