"""Wiring shared by every command: workspace, config, logging, gateway."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, TextIO

from ..history.store import SessionLogger
from . import config as config_mod
from . import workspace as workspace_mod
from .ai import load_client
from .errors import LoggingError
from .gateway import OpenAICompletionGateway
from .logging import configure_logger

__all__ = [
    "Runtime",
    "load_runtime",
    "build_gateway",
    "open_history",
    "read_source_text",
]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Runtime:
    layout: workspace_mod.WorkspaceLayout
    config: config_mod.StudySnapConfig
    logger: logging.Logger
    log_path: Path


def load_runtime(
    *,
    config_path: Optional[Path] = None,
    workspace: Optional[Path] = None,
    verbose: bool = False,
    env: Mapping[str, str] | None = None,
    log_filename: str | None = None,
) -> Runtime:
    """Resolve the workspace, load config and configure logging.

    Raises :class:`config_mod.ConfigError` or
    :class:`workspace_mod.WorkspaceError` when either cannot be prepared.
    """

    layout = workspace_mod.ensure_workspace(env=env, path=workspace)
    cfg = config_mod.load_config(
        layout=layout, explicit_path=config_path, env=env
    )
    logger, log_path = configure_logger(
        log_dir=layout.path_for("logs"),
        level=cfg.logging.level,
        verbose=verbose or cfg.logging.verbose,
        filename=log_filename,
    )
    logger.debug(
        "Runtime ready",
        extra={"workspace": str(layout.home), "model": cfg.provider.model},
    )
    return Runtime(layout=layout, config=cfg, logger=logger, log_path=log_path)


def build_gateway(
    cfg: config_mod.StudySnapConfig,
    *,
    env: Mapping[str, str] | None = None,
) -> OpenAICompletionGateway:
    """Create the completion gateway described by ``cfg.provider``."""

    provider = cfg.provider
    client = load_client(
        api_key_env=provider.api_key_env,
        api_base=provider.api_base,
        timeout=provider.request_timeout_seconds,
        env=env,
    )
    return OpenAICompletionGateway(
        client=client,
        model=provider.model,
        temperature=provider.temperature,
        max_output_tokens=provider.max_output_tokens,
    )


def open_history(
    cfg: config_mod.StudySnapConfig,
    layout: workspace_mod.WorkspaceLayout,
) -> SessionLogger | None:
    """Return the history store, or ``None`` when disabled or unavailable."""

    if not cfg.history.enabled:
        return None
    try:
        return SessionLogger(
            cfg.history_path(layout), user_id=cfg.history.user_id
        )
    except LoggingError:
        _LOGGER.warning("Session history unavailable", exc_info=True)
        return None


def read_source_text(
    path: Optional[Path], *, stdin: TextIO | None = None
) -> str:
    """Read study text from ``path`` or, when omitted or ``-``, stdin."""

    if path is None or str(path) == "-":
        stream = stdin if stdin is not None else sys.stdin
        return stream.read()
    return Path(path).expanduser().read_text(encoding="utf-8")
