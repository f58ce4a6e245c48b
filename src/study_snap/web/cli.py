"""``study-snap serve``: run the HTTP backend with uvicorn."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from ..core import config as config_mod
from ..core import runtime as runtime_mod
from ..core import workspace as workspace_mod
from .app import create_app


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-snap serve",
        description="Serve the study-snap HTTP API for the browser extension.",
    )
    parser.add_argument(
        "--host", help="Bind address (defaults to server.host)."
    )
    parser.add_argument(
        "--port", type=int, help="Bind port (defaults to server.port)."
    )
    parser.add_argument("--config", type=Path, help="Path to the config TOML.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        runtime = runtime_mod.load_runtime(
            config_path=args.config,
            verbose=args.verbose,
            log_filename="server.log",
        )
    except (config_mod.ConfigError, workspace_mod.WorkspaceError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    cfg = runtime.config
    app = create_app(
        cfg, history=runtime_mod.open_history(cfg, runtime.layout)
    )
    host = args.host or cfg.server.host
    port = args.port or cfg.server.port
    runtime.logger.info(
        "Starting server",
        extra={"host": host, "port": port, "log_path": str(runtime.log_path)},
    )
    uvicorn.run(app, host=host, port=port)
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
