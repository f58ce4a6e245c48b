from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import FakeChatClient, WorkspaceBuilder  # noqa: E402

from study_snap.core import config as config_mod  # noqa: E402
from study_snap.core import workspace as workspace_mod  # noqa: E402
from study_snap.core.logging import ROOT_LOGGER  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(
        workspace_mod.WORKSPACE_ENV, str(tmp_path / "data-home")
    )
    monkeypatch.delenv(config_mod.CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv("PPLX_API_KEY", raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_client() -> FakeChatClient:
    """OpenAI-style client double recording ``chat.completions`` calls."""

    return FakeChatClient()
