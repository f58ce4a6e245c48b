"""``study-snap init`` and ``study-snap config`` commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from study_snap.core import config as config_mod
from study_snap.core import workspace as workspace_mod


def _status(layout: workspace_mod.WorkspaceLayout, key: str) -> str:
    return "created" if layout.created.get(key) else "exists"


def _init_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-snap init",
        description=(
            "Create the study-snap data directory with its config, logs and "
            "history subdirectories."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            f"Workspace root (defaults to {workspace_mod.WORKSPACE_ENV} or "
            "~/.study-snap-data)."
        ),
    )
    parser.add_argument(
        "--with-config",
        action="store_true",
        help="Also write the config template when none exists yet.",
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Print nothing on success."
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _init_parser().parse_args(list(argv) if argv is not None else None)
    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        _print_error(str(exc))
        return 2

    config_note = None
    if args.with_config:
        target = layout.path_for("config") / config_mod.CONFIG_FILENAME
        state = "exists"
        if not target.exists():
            config_mod.write_template(target)
            state = "created"
        config_note = f"Config: {target} ({state})"

    if args.quiet:
        return 0

    print(f"Workspace ready at {layout.home} ({_status(layout, 'home')})")
    pad = max(len(name) for name, _ in layout.items())
    print("Subdirectories:")
    for name, directory in layout.items():
        print(f"  {name:<{pad}}  {directory} ({_status(layout, name)})")
    if config_note:
        print(config_note)
    return 0


def _config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-snap config",
        description="Create, check or locate the study-snap config file.",
    )
    commands = parser.add_subparsers(dest="action", required=True)

    init = commands.add_parser("init", help="Write the config template.")
    init.add_argument(
        "--force", action="store_true", help="Replace an existing file."
    )
    validate = commands.add_parser(
        "validate", help="Load the config and report the effective values."
    )
    validate.add_argument(
        "--quiet", action="store_true", help="Only report errors."
    )
    path = commands.add_parser("path", help="Print the config path in effect.")

    for sub in (init, validate, path):
        sub.add_argument(
            "--path",
            type=Path,
            help="Config TOML to use instead of the resolved default.",
        )
    return parser


def config_main(argv: Sequence[str] | None = None) -> int:
    args = _config_parser().parse_args(
        list(argv) if argv is not None else None
    )
    explicit = args.path.expanduser().resolve() if args.path else None
    try:
        layout = workspace_mod.ensure_workspace()
        if args.action == "init":
            target, _ = config_mod.resolve_config_path(
                layout=layout, explicit_path=explicit
            )
            config_mod.write_template(target, overwrite=args.force)
            print(f"Wrote config template to {target}")
        elif args.action == "validate":
            cfg = config_mod.load_config(layout=layout, explicit_path=explicit)
            if not args.quiet:
                _print_summary(cfg, layout)
        else:
            target, _ = config_mod.resolve_config_path(
                layout=layout, explicit_path=explicit
            )
            print(target)
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    return 0


def _print_summary(
    cfg: config_mod.StudySnapConfig, layout: workspace_mod.WorkspaceLayout
) -> None:
    history = cfg.history_path(layout) if cfg.history.enabled else "disabled"
    print("Configuration OK")
    print(f"  model: {cfg.provider.model}")
    print(f"  api_base: {cfg.provider.api_base or '(default)'}")
    print(f"  default_count: {cfg.quiz.default_count}")
    print(f"  history: {history}")
    print(f"  server: {cfg.server.host}:{cfg.server.port}")


def _print_error(message: str) -> None:
    sys.stderr.write(f"Error: {message}\n")


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
