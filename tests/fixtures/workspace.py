"""Filesystem helpers shared by tests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from study_snap.core import workspace as workspace_mod


@dataclass
class WorkspaceBuilder:
    """Workspace and config files rooted under a tmp directory."""

    root: Path

    @property
    def home(self) -> Path:
        return self.root / "data-home"

    def env(self, **extra: str) -> Dict[str, str]:
        env = {workspace_mod.WORKSPACE_ENV: str(self.home)}
        env.update(extra)
        return env

    def layout(self) -> workspace_mod.WorkspaceLayout:
        return workspace_mod.ensure_workspace(path=self.home)

    def write(
        self, relative: Union[str, Path], content: str
    ) -> Path:
        path = self.root / Path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def write_config(self, content: str) -> Path:
        layout = self.layout()
        path = layout.path_for("config") / "study_snap.toml"
        path.write_text(content, encoding="utf-8")
        return path
