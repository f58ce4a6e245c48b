"""Structured logging for study_snap commands and the web backend.

Every module logs through ``logging.getLogger(__name__)``. Those loggers sit
under the ``study_snap`` namespace and propagate into the logger prepared by
:func:`configure_logger`. That logger writes one JSON object per line to a
rotating file in the workspace ``logs/`` directory. It can also echo plain
text to stderr when verbose.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable

__all__ = [
    "ROOT_LOGGER",
    "JsonLogFormatter",
    "configure_logger",
]

ROOT_LOGGER = "study_snap"

_FILE_MARKER = "_study_snap_file"
_CONSOLE_MARKER = "_study_snap_console"

_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return repr(value)


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields land under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=True, default=_json_default)


def configure_logger(
    name: str = ROOT_LOGGER,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach the managed file (and optional console) handler to ``name``.

    Calling again with the same file keeps the existing handler; a different
    file replaces it. Returns the logger and the file actually written, which
    is under the temp dir when ``log_dir`` is not writable.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    log_name = filename or f"{name.rsplit('.', 1)[-1]}.log"
    handler = _file_handler(
        logger,
        _writable_log_file((log_dir, _fallback_log_dir()), log_name),
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    handler.setLevel(logging.DEBUG if verbose else _coerce_level(level))

    console = _find_handler(logger, _CONSOLE_MARKER)
    if verbose:
        if console is None:
            console = logging.StreamHandler(stream=sys.stderr)
            console.setFormatter(
                logging.Formatter("%(levelname)s %(message)s")
            )
            setattr(console, _CONSOLE_MARKER, True)
            logger.addHandler(console)
        console.setLevel(logging.DEBUG)
    elif console is not None:
        logger.removeHandler(console)
        console.close()

    return logger, Path(handler.baseFilename)


def _coerce_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def _find_handler(
    logger: logging.Logger, marker: str
) -> logging.Handler | None:
    for handler in logger.handlers:
        if getattr(handler, marker, False):
            return handler
    return None


def _file_handler(
    logger: logging.Logger,
    path: Path,
    *,
    max_bytes: int,
    backup_count: int,
) -> RotatingFileHandler:
    current = _find_handler(logger, _FILE_MARKER)
    if current is not None:
        if Path(current.baseFilename) == path:  # type: ignore[attr-defined]
            return current  # type: ignore[return-value]
        logger.removeHandler(current)
        current.close()

    try:
        handler = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    except PermissionError:
        fallback = _writable_log_file((_fallback_log_dir(),), path.name)
        handler = RotatingFileHandler(
            fallback,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    handler.setFormatter(JsonLogFormatter())
    setattr(handler, _FILE_MARKER, True)
    logger.addHandler(handler)
    return handler


def _writable_log_file(directories: Iterable[Path], filename: str) -> Path:
    """Create ``filename`` in the first directory that accepts it."""

    last_error: PermissionError | None = None
    for directory in directories:
        path = directory / filename
        try:
            directory.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
        except PermissionError as exc:
            last_error = exc
            continue
        for target, mode in ((directory, 0o700), (path, 0o600)):
            try:
                target.chmod(mode)
            except PermissionError:  # pragma: no cover - filesystem specific
                pass
        return path
    assert last_error is not None
    raise last_error


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "study-snap-logs"
