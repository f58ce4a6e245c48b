"""Unified `study-snap` command-line entry point."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence


CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    """A `study-snap` subcommand and the module that implements it."""

    name: str
    summary: str
    handler: Optional[CommandHandler] = None
    is_tui: bool = False


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the shared study-snap workspace.",
        handler=lambda argv: _run_module_command(
            "study_snap.workspace.cli",
            "main",
            "study-snap init",
            argv,
        ),
    ),
    CommandSpec(
        name="config",
        summary="Create, validate or locate the configuration file.",
        handler=lambda argv: _run_module_command(
            "study_snap.workspace.cli",
            "config_main",
            "study-snap config",
            argv,
        ),
    ),
    CommandSpec(
        name="quiz",
        summary="Generate a multiple-choice quiz from text and take it.",
        is_tui=True,
        handler=lambda argv: _run_module_command(
            "study_snap.quiz.cli",
            "main",
            "study-snap quiz",
            argv,
        ),
    ),
    CommandSpec(
        name="summary",
        summary="Summarize study text in 2-3 short bullets.",
        handler=lambda argv: _run_module_command(
            "study_snap.artifacts.cli",
            "summary_main",
            "study-snap summary",
            argv,
        ),
    ),
    CommandSpec(
        name="flashcards",
        summary="Generate Q/A flashcards from study text.",
        handler=lambda argv: _run_module_command(
            "study_snap.artifacts.cli",
            "flashcards_main",
            "study-snap flashcards",
            argv,
        ),
    ),
    CommandSpec(
        name="history",
        summary="Show the most recent study sessions.",
        handler=lambda argv: _run_module_command(
            "study_snap.history.cli",
            "main",
            "study-snap history",
            argv,
        ),
    ),
    CommandSpec(
        name="serve",
        summary="Run the HTTP backend for the browser extension.",
        handler=lambda argv: _run_module_command(
            "study_snap.web.cli",
            "main",
            "study-snap serve",
            argv,
        ),
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def format_command_table() -> str:
    """Return a formatted command table for help output."""

    width = max((len(name) for name in COMMANDS), default=0)
    lines = ["Available commands:"]
    for spec in _COMMAND_SPECS:
        suffix = " (interactive)" if spec.is_tui else ""
        lines.append(f"  {spec.name.ljust(width)}  {spec.summary}{suffix}")
    return "\n".join(lines)


def format_usage() -> str:
    """Build the top-level usage banner with command listings."""

    return "\n".join(
        [
            "Usage: study-snap <command> [args...]",
            "Run `study-snap list` for commands or "
            "`study-snap help <name>` for details.",
            "",
            format_command_table(),
        ]
    )


def _out(text: str) -> None:
    if text:
        sys.stdout.write(text + "\n")


def _err(text: str) -> None:
    if text:
        sys.stderr.write(text + "\n")


def _handle_version() -> int:
    try:
        version = metadata.version("study-snap")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _out(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _out(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if spec is None:
        return _unknown(argv[0])
    _out(f"{spec.name}: {spec.summary}")
    _out(f"Run `study-snap {spec.name} --help` for CLI-specific options.")
    return 0


def _unknown(command: str) -> int:
    _err(f"Unknown command '{command}'.")
    _err(format_command_table())
    return 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    if not args:
        _out(format_usage())
        return 2

    head, *tail = args
    if head in ("-h", "--help"):
        _out(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        return _handle_version()
    if head == "list":
        _out(format_command_table())
        return 0
    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec is None:
        return _unknown(head)
    if spec.handler is None:
        _err(f"Command '{spec.name}' is not yet implemented.")
        return 2
    return spec.handler(tail)


def _run_module_command(
    module_name: str,
    func_name: str,
    prog_name: str,
    argv: Sequence[str],
) -> int:
    """Import ``module_name`` on demand and run ``func_name(argv)``.

    ``SystemExit`` raised by argparse becomes the returned exit code.
    """

    target = getattr(import_module(module_name), func_name)
    old_argv = sys.argv
    sys.argv = [prog_name, *argv]
    try:
        result = target(list(argv))
    except SystemExit as exc:
        return _exit_code(exc.code)
    finally:
        sys.argv = old_argv
    return result if isinstance(result, int) else 0


def _exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _err(str(code))
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
