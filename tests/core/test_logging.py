from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from study_snap.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [
        handler
        for handler in logger.handlers
        if getattr(handler, "_study_snap_console", False)
    ]


def test_configure_logger_writes_json_lines(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "study_snap.test_json",
        log_dir=tmp_path / "logs",
        level="INFO",
        filename="json.log",
    )

    logger.info("quiz generated", extra={"questions": 3, "path": tmp_path})
    logger.debug("hidden at INFO")
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("extraction failed", extra={"kind": ("a", "b")})
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "quiz generated"
    assert first["level"] == "INFO"
    assert first["extra"] == {"questions": 3, "path": str(tmp_path)}

    last = json.loads(lines[-1])
    assert "ValueError: boom" in last["exception"]
    assert last["extra"]["kind"] == ["a", "b"]

    _close(logger)


def test_child_loggers_propagate_into_configured_logger(tmp_path):
    logger, log_path = core_logging.configure_logger(
        log_dir=tmp_path / "logs", filename="child.log"
    )
    logging.getLogger("study_snap.quiz.extraction").warning("truncating")
    for handler in logger.handlers:
        handler.flush()

    payload = json.loads(log_path.read_text(encoding="utf-8").splitlines()[-1])
    assert payload["logger"] == "study_snap.quiz.extraction"
    assert log_path.name == "child.log"

    _close(logger)


def test_default_filename_uses_logger_tail(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "study_snap.server", log_dir=tmp_path / "logs"
    )
    assert log_path.name == "server.log"
    _close(logger)


def test_reconfigure_reuses_or_replaces_file_handler(tmp_path):
    name = "study_snap.test_reuse"
    logger, first = core_logging.configure_logger(
        name, log_dir=tmp_path / "a", filename="x.log"
    )
    core_logging.configure_logger(name, log_dir=tmp_path / "a", filename="x.log")
    file_handlers = [
        h for h in logger.handlers if getattr(h, "_study_snap_file", False)
    ]
    assert len(file_handlers) == 1

    _, second = core_logging.configure_logger(
        name, log_dir=tmp_path / "b", filename="x.log"
    )
    file_handlers = [
        h for h in logger.handlers if getattr(h, "_study_snap_file", False)
    ]
    assert len(file_handlers) == 1
    assert second != first
    assert Path(file_handlers[0].baseFilename) == second

    _close(logger)


def test_console_handler_toggle(tmp_path):
    name = "study_snap.test_toggle"
    logger, _ = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", verbose=True, filename="t.log"
    )
    assert len(_console_handlers(logger)) == 1

    core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", verbose=True, filename="t.log"
    )
    assert len(_console_handlers(logger)) == 1

    core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", verbose=False, filename="t.log"
    )
    assert not _console_handlers(logger)

    _close(logger)


def test_configure_logger_falls_back_when_directory_blocked(
    tmp_path, monkeypatch
):
    blocked = tmp_path / "blocked"
    fallback = tmp_path / "fallback"
    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: ANN001
        if self == blocked:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    logger, log_path = core_logging.configure_logger(
        "study_snap.test_blocked", log_dir=blocked, filename="b.log"
    )

    assert log_path.parent == fallback
    assert log_path.exists()
    _close(logger)


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))
    assert core_logging._fallback_log_dir() == tmp_path / "study-snap-logs"


def test_coerce_level_defaults_to_info():
    assert core_logging._coerce_level("bogus") == logging.INFO
    assert core_logging._coerce_level("debug") == logging.DEBUG
