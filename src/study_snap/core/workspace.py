"""Per-user data directory shared by every study_snap command.

The workspace root holds ``config/`` (the TOML file), ``logs/`` (JSON log
files) and ``history/`` (the SQLite session log).
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from .errors import StudySnapError

__all__ = [
    "WORKSPACE_ENV",
    "DEFAULT_WORKSPACE",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
    "describe_layout",
]

WORKSPACE_ENV = "STUDY_SNAP_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".study-snap-data"

SUBDIRECTORIES = ("config", "logs", "history")


class WorkspaceError(StudySnapError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            raise KeyError(f"Unknown workspace directory '{key}'.")
        return self.directories[key]

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Return the workspace layout, creating directories when ``create``.

    ``path`` wins over ``STUDY_SNAP_DATA_HOME``, which wins over
    ``~/.study-snap-data``. Only the default location may fall back to the
    system temp dir when it is not writable.
    """

    home, explicit = _workspace_home(os.environ if env is None else env, path)
    if not create:
        return _layout(home, create=False)
    try:
        return _layout(home, create=True)
    except PermissionError as exc:
        error = exc
    fallback = _fallback_base()
    if not explicit and fallback != home:
        try:
            return _layout(fallback, create=True)
        except PermissionError as exc:
            error = exc
    raise WorkspaceError(f"Unable to prepare workspace at {home}") from error


def describe_layout(
    *, env: Mapping[str, str] | None = None, path: Path | None = None
) -> Mapping[str, Path]:
    """Map ``home`` and each subdirectory to its path without touching disk."""

    layout = ensure_workspace(env=env, path=path, create=False)
    return MappingProxyType({"home": layout.home, **layout.directories})


def _workspace_home(
    env: Mapping[str, str], override: Path | None
) -> tuple[Path, bool]:
    explicit = True
    target = override
    if target is None:
        from_env = (env.get(WORKSPACE_ENV) or "").strip()
        target = Path(from_env) if from_env else DEFAULT_WORKSPACE
        explicit = bool(from_env)
    target = target.expanduser()
    try:
        return target.resolve(), explicit
    except FileNotFoundError:
        return target.absolute(), explicit


def _fallback_base() -> Path:
    return Path(tempfile.gettempdir()) / "study-snap-data"


def _layout(home: Path, *, create: bool) -> WorkspaceLayout:
    if home.exists() and not home.is_dir():
        raise WorkspaceError(
            f"Configured workspace exists and is not a directory: {home}"
        )
    directories = {name: home / name for name in SUBDIRECTORIES}
    created = {"home": create and _make_dir(home)}
    for name, directory in directories.items():
        if directory.exists() and not directory.is_dir():
            raise WorkspaceError(
                f"Expected workspace directory for '{name}' but found a "
                f"file: {directory}"
            )
        created[name] = create and _make_dir(directory)
    return WorkspaceLayout(
        home=home,
        directories=MappingProxyType(directories),
        created=MappingProxyType(created),
    )


def _make_dir(path: Path) -> bool:
    """Create ``path`` (mode 0700) and report whether it was new."""

    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        pass
    return True
