"""TOML read, merge and write helpers behind ``quiz.toml``."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "TomlConfigError",
    "read_config_file",
    "merge_tables",
    "write_config_text",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML config file cannot be read, merged or written."""


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse ``path`` as TOML, raising TomlConfigError on IO or syntax."""

    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise TomlConfigError(f"Could not read config {path}: {exc}") from exc
    try:
        return tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise TomlConfigError(f"Config {path} is not UTF-8 text") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def merge_tables(
    defaults: MutableMapping[str, Any],
    loaded: Mapping[str, Any],
    *,
    section: str = "",
) -> None:
    """Overlay ``loaded`` onto ``defaults`` in place.

    Only keys already present in ``defaults`` are accepted, and a key whose
    default is a table must be overridden by a table.
    """

    for key, value in loaded.items():
        where = f"{section}.{key}" if section else key
        if key not in defaults:
            raise TomlConfigError(f"Unknown configuration key '{where}'.")
        current = defaults[key]
        if not isinstance(current, MutableMapping):
            defaults[key] = value
        elif isinstance(value, Mapping):
            merge_tables(current, value, section=where)
        else:
            raise TomlConfigError(
                f"Expected table for '{where}', found {type(value).__name__}."
            )


def write_config_text(
    path: Path, text: str, *, overwrite: bool = False
) -> Path:
    """Write a config file, refusing to clobber one unless ``overwrite``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    flags = os.O_WRONLY | os.O_CREAT
    flags |= os.O_TRUNC if overwrite else os.O_EXCL
    try:
        fd = os.open(path, flags, 0o644)
    except FileExistsError as exc:
        raise TomlConfigError(f"Config already exists: {path}") from exc
    except OSError as exc:
        raise TomlConfigError(f"Could not write config {path}: {exc}") from exc
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(text)
    return path
