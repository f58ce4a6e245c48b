"""TOML configuration for study_snap.

The config file groups provider, quiz, history, server and logging concerns.
User values are merged over built-in defaults and unknown keys are rejected.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - should never happen
    raise RuntimeError("Python 3.11+ required for tomllib support") from exc

from ..quiz.extraction import MAX_QUESTIONS, MIN_QUESTIONS
from .errors import StudySnapError
from .workspace import WorkspaceLayout

__all__ = [
    "CONFIG_PATH_ENV",
    "CONFIG_FILENAME",
    "ConfigError",
    "ProviderConfig",
    "QuizConfig",
    "HistoryConfig",
    "ServerConfig",
    "LoggingConfig",
    "StudySnapConfig",
    "default_config",
    "load_config",
    "resolve_config_path",
    "config_template",
    "write_template",
]

CONFIG_PATH_ENV = "STUDY_SNAP_CONFIG"
CONFIG_FILENAME = "study_snap.toml"


class ConfigError(StudySnapError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ProviderConfig:
    model: str
    api_base: Optional[str]
    api_key_env: str
    temperature: float
    max_output_tokens: int
    request_timeout_seconds: int


@dataclass(frozen=True)
class QuizConfig:
    default_count: int


@dataclass(frozen=True)
class HistoryConfig:
    enabled: bool
    db_filename: str
    recent_limit: int
    user_id: str


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    cors_origins: tuple[str, ...]


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class StudySnapConfig:
    provider: ProviderConfig
    quiz: QuizConfig
    history: HistoryConfig
    server: ServerConfig
    logging: LoggingConfig

    def history_path(self, layout: WorkspaceLayout) -> Path:
        """Return the SQLite file used by the session history store."""

        return layout.path_for("history") / self.history.db_filename


def _overlay(
    tree: MutableMapping[str, Any], user: Mapping[str, Any], prefix: str = ""
) -> None:
    """Copy ``user`` values onto the defaults ``tree``, table by table."""

    for key, value in user.items():
        dotted = prefix + key
        if key not in tree:
            raise ConfigError(f"Unknown configuration key '{dotted}'.")
        if not isinstance(tree[key], MutableMapping):
            tree[key] = value
        elif isinstance(value, Mapping):
            _overlay(tree[key], value, prefix=f"{dotted}.")
        else:
            raise ConfigError(
                f"Expected table for '{dotted}', found {type(value).__name__}."
            )


class _Section:
    """Typed reads from one merged table, reporting ``table.key`` on error."""

    def __init__(self, name: str, values: Mapping[str, Any]) -> None:
        self.name = name
        self.values = values

    def _fail(self, key: str, problem: str) -> ConfigError:
        return ConfigError(f"'{self.name}.{key}' {problem}.")

    def text(self, key: str) -> str:
        value = self.values.get(key)
        if not isinstance(value, str) or not value.strip():
            raise self._fail(key, "must be a non-empty string")
        return value.strip()

    def optional_text(self, key: str) -> Optional[str]:
        if self.values.get(key) is None:
            return None
        return self.text(key)

    def flag(self, key: str) -> bool:
        value = self.values.get(key)
        if not isinstance(value, bool):
            raise self._fail(key, "must be a boolean")
        return value

    def integer(
        self, key: str, *, low: int = 1, high: Optional[int] = None
    ) -> int:
        value = self.values.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._fail(key, "must be an integer")
        if value < low or (high is not None and value > high):
            bounds = f"between {low} and {high}" if high else f">= {low}"
            raise self._fail(key, f"must be {bounds}")
        return value

    def number(self, key: str, *, low: float, high: float) -> float:
        value = self.values.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._fail(key, "must be a number")
        if not low <= value <= high:
            raise self._fail(key, f"must be between {low} and {high}")
        return float(value)

    def choice(self, key: str, options: tuple[str, ...]) -> str:
        value = self.text(key).upper()
        if value not in options:
            raise self._fail(key, "must be one of " + ", ".join(options))
        return value

    def strings(self, key: str) -> tuple[str, ...]:
        value = self.values.get(key)
        if not isinstance(value, list) or not all(
            isinstance(item, str) and item.strip() for item in value
        ):
            raise self._fail(key, "must be a list of non-empty strings")
        return tuple(item.strip() for item in value)


_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _build_config(tree: Mapping[str, Any]) -> StudySnapConfig:
    provider = _Section("provider", tree["provider"])
    quiz = _Section("quiz", tree["quiz"])
    history = _Section("history", tree["history"])
    server = _Section("server", tree["server"])
    log = _Section("logging", tree["logging"])

    db_filename = history.text("db_filename")
    if Path(db_filename).name != db_filename:
        raise ConfigError(
            "history.db_filename must be a bare file name, not a path."
        )

    return StudySnapConfig(
        provider=ProviderConfig(
            model=provider.text("model"),
            api_base=provider.optional_text("api_base"),
            api_key_env=provider.text("api_key_env"),
            temperature=provider.number("temperature", low=0.0, high=2.0),
            max_output_tokens=provider.integer("max_output_tokens"),
            request_timeout_seconds=provider.integer(
                "request_timeout_seconds"
            ),
        ),
        quiz=QuizConfig(
            default_count=quiz.integer(
                "default_count", low=MIN_QUESTIONS, high=MAX_QUESTIONS
            ),
        ),
        history=HistoryConfig(
            enabled=history.flag("enabled"),
            db_filename=db_filename,
            recent_limit=history.integer("recent_limit", high=100),
            user_id=history.text("user_id"),
        ),
        server=ServerConfig(
            host=server.text("host"),
            port=server.integer("port", high=65535),
            cors_origins=server.strings("cors_origins"),
        ),
        logging=LoggingConfig(
            level=log.choice("level", _LEVELS),
            verbose=log.flag("verbose"),
        ),
    )


def resolve_config_path(
    *,
    layout: WorkspaceLayout,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> tuple[Path, bool]:
    """Return the config path and whether it was requested explicitly.

    Explicit paths (argument or ``STUDY_SNAP_CONFIG``) must exist when
    loaded; the workspace default may be absent, in which case built-in
    defaults apply.
    """

    if explicit_path is None:
        source = os.environ if env is None else env
        from_env = (source.get(CONFIG_PATH_ENV) or "").strip()
        if not from_env:
            return layout.path_for("config") / CONFIG_FILENAME, False
        explicit_path = Path(from_env)
    return explicit_path.expanduser().resolve(), True


def default_config() -> StudySnapConfig:
    return _build_config(copy.deepcopy(_DEFAULTS))


def load_config(
    *,
    layout: WorkspaceLayout,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> StudySnapConfig:
    """Merge the TOML file over the defaults and validate the result."""

    path, explicit = resolve_config_path(
        layout=layout, explicit_path=explicit_path, env=env
    )
    tree: Dict[str, Any] = copy.deepcopy(_DEFAULTS)
    if explicit or path.exists():
        try:
            user = tomllib.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {path}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Failed to parse config TOML: {exc}") from exc
        _overlay(tree, user)
    return _build_config(tree)


def config_template() -> str:
    return _CONFIG_TEMPLATE.lstrip("\n")


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    """Write :func:`config_template` to ``path`` and restrict its mode."""

    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:
        pass
    return path


_DEFAULTS: Dict[str, Any] = {
    "provider": {
        "model": "sonar",
        "api_base": "https://api.perplexity.ai",
        "api_key_env": "PPLX_API_KEY",
        "temperature": 0.2,
        "max_output_tokens": 2048,
        "request_timeout_seconds": 60,
    },
    "quiz": {
        "default_count": 5,
    },
    "history": {
        "enabled": True,
        "db_filename": "history.sqlite3",
        "recent_limit": 20,
        "user_id": "default_user",
    },
    "server": {
        "host": "127.0.0.1",
        "port": 3000,
        "cors_origins": ["*"],
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# study-snap configuration

[provider]
# Any OpenAI-compatible chat completion endpoint
model = "sonar"
api_base = "https://api.perplexity.ai"
# Environment variable holding the API key (also read from .env)
api_key_env = "PPLX_API_KEY"
# Sampling temperature (0.0-2.0)
temperature = 0.2
max_output_tokens = 2048
request_timeout_seconds = 60

[quiz]
# Questions per quiz when no count is given (1-20)
default_count = 5

[history]
# Record generated artifacts and quiz scores in a local SQLite file
enabled = true
db_filename = "history.sqlite3"
# Entries returned by `study-snap history` and GET /history
recent_limit = 20
user_id = "default_user"

[server]
host = "127.0.0.1"
port = 3000
cors_origins = ["*"]

[logging]
level = "INFO"
verbose = false
"""
