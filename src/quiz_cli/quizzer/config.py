"""Configuration loader for quiz sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional, Sequence

from quiz_cli.core import config as core_config
from quiz_cli.core import workspace as workspace_mod

from .history import DEFAULT_MAX_ENTRIES, HISTORY_FILENAME

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "QUIZ_CLI_CONFIG"
ENV_PREFIX = "QUIZ_CLI_"

_DEFAULT_QUESTIONS_FILE = "data/questions.json"
_DEFAULT_LOG_LEVEL = "INFO"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved configuration for one command invocation."""

    questions_file: Path
    category: Optional[str]
    known_categories: tuple[str, ...]
    shuffle: bool
    limit: int
    time_limit_minutes: int
    allow_retry: bool
    history_file: Path
    history_max_entries: int
    log_level: str

    @property
    def time_limit_ms(self) -> int:
        return self.time_limit_minutes * 60 * 1000


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    questions_file: Optional[Path] = None
    category: Optional[str] = None
    shuffle: Optional[bool] = None
    limit: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    allow_retry: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )
    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        loaded_path = requested
        try:
            core_config.merge_tables(
                table, core_config.read_config_file(requested)
            )
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
    elif config_path is not None or (env_map.get(CONFIG_ENV) or "").strip():
        raise QuizConfigError(f"Config file not found: {requested}")

    questions = table["questions"]
    session = table["session"]
    history = table["history"]

    questions_file = _pick_first(
        overrides.questions_file,
        _env_path(env_map, "QUESTIONS_FILE"),
        _coerce_path(questions["file"], field="questions.file"),
    )
    category = _pick_first(
        overrides.category,
        _env_string(env_map, "CATEGORY"),
        _coerce_optional_str(
            questions["category"], field="questions.category"
        ),
    )
    shuffle = _pick_first(
        overrides.shuffle,
        _env_bool(env_map, "SHUFFLE"),
        _require_bool(questions["shuffle"], field="questions.shuffle"),
    )
    limit = _require_non_negative_int(
        _pick_first(
            overrides.limit, _env_int(env_map, "LIMIT"), questions["limit"]
        ),
        field="questions.limit",
    )
    time_limit = _require_non_negative_int(
        _pick_first(
            overrides.time_limit_minutes,
            _env_int(env_map, "TIME_LIMIT"),
            session["time_limit_minutes"],
        ),
        field="session.time_limit_minutes",
    )
    allow_retry = _pick_first(
        overrides.allow_retry,
        _env_bool(env_map, "ALLOW_RETRY"),
        _require_bool(session["allow_retry"], field="session.allow_retry"),
    )
    history_file = _resolve_history_file(
        _pick_first(
            _env_path(env_map, "HISTORY_FILE"),
            _coerce_optional_path(history["file"], field="history.file"),
        ),
        layout=layout,
    )
    max_entries = history["max_entries"]
    if not isinstance(max_entries, int) or max_entries <= 0:
        raise QuizConfigError(
            "'history.max_entries' must be a positive integer."
        )
    log_level = _resolve_log_level(
        _pick_first(
            overrides.log_level,
            _env_string(env_map, "LOG_LEVEL"),
            table["logging"]["level"],
        )
    )

    config = QuizConfig(
        questions_file=Path(questions_file).expanduser(),
        category=category,
        known_categories=_string_tuple(
            questions["known_categories"], field="questions.known_categories"
        ),
        shuffle=bool(shuffle),
        limit=limit,
        time_limit_minutes=time_limit,
        allow_retry=bool(allow_retry),
        history_file=history_file,
        history_max_entries=max_entries,
        log_level=log_level,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "questions": {
            "file": _DEFAULT_QUESTIONS_FILE,
            "category": None,
            "known_categories": [],
            "shuffle": False,
            "limit": 0,
        },
        "session": {
            "time_limit_minutes": 0,
            "allow_retry": False,
        },
        "history": {
            "file": None,
            "max_entries": DEFAULT_MAX_ENTRIES,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _resolve_history_file(
    candidate: Optional[Path], *, layout: workspace_mod.WorkspaceLayout
) -> Path:
    if candidate is None:
        return layout.path_for("history") / HISTORY_FILENAME
    candidate = candidate.expanduser()
    if not candidate.is_absolute():
        return (layout.home / candidate).resolve()
    return candidate


def _resolve_log_level(candidate: object) -> str:
    if not isinstance(candidate, str) or not candidate.strip():
        raise QuizConfigError("logging.level must be a non-empty string.")
    return candidate.strip().upper()


def _coerce_path(value: object, *, field: str) -> Path:
    path = _coerce_optional_path(value, field=field)
    if path is None:
        raise QuizConfigError(f"'{field}' must be a non-empty path.")
    return path


def _coerce_optional_path(value: object, *, field: str) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw) if raw else None
    raise QuizConfigError(f"'{field}' must be a string when provided.")


def _coerce_optional_str(value: object, *, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise QuizConfigError(f"'{field}' must be a string when provided.")
    return value.strip() or None


def _string_tuple(value: object, *, field: str) -> tuple[str, ...]:
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise QuizConfigError(f"'{field}' must be a list of strings.")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise QuizConfigError(f"'{field}' must be a list of strings.")
        items.append(item.strip())
    return tuple(items)


def _require_bool(value: object, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise QuizConfigError(f"'{field}' must be a boolean.")
    return value


def _require_non_negative_int(value: object, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QuizConfigError(f"'{field}' must be a non-negative integer.")
    return value


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _env_string(env_map, key)
    return Path(raw).expanduser() if raw is not None else None


def _env_int(env_map: Mapping[str, str], key: str) -> Optional[int]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise QuizConfigError(
            f"{ENV_PREFIX}{key} must be an integer, got '{raw}'."
        ) from exc


def _env_bool(env_map: Mapping[str, str], key: str) -> Optional[bool]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise QuizConfigError(f"{ENV_PREFIX}{key} must be a boolean, got '{raw}'.")


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
