"""Persistent session history stored as a JSON array.

The store is best-effort: reads and writes never raise to the session, they
log a warning and report failure instead.
"""

from __future__ import annotations

import csv
import json
import logging
import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from .results import SessionResult

__all__ = [
    "DEFAULT_MAX_ENTRIES",
    "HistoryError",
    "HistoryStore",
]

DEFAULT_MAX_ENTRIES = 50
HISTORY_FILENAME = "results.json"

_LOCK_SUFFIX = ".lock"
_LOCK_TIMEOUT_SECONDS = 5.0
_CSV_HEADER = (
    "Date",
    "Total Questions",
    "Correct Answers",
    "Percentage",
    "Duration (seconds)",
)

_LOGGER = logging.getLogger("quiz_cli.history")


class HistoryError(RuntimeError):
    """Raised internally when the history file cannot be read or written."""


class HistoryStore:
    """Append-only session history capped at ``max_entries`` results."""

    def __init__(
        self,
        path: Path,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._path = Path(path)
        self._max_entries = max_entries
        self._logger = logger or _LOGGER

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def load_results(self) -> list[SessionResult]:
        """Return stored results oldest first; failures yield ``[]``."""

        try:
            return [
                SessionResult.from_dict(item) for item in self._read_raw()
            ]
        except (HistoryError, KeyError, TypeError, ValueError) as exc:
            self._logger.warning(
                "Could not load results history: %s",
                exc,
                extra={"path": str(self._path)},
            )
            return []

    def save_result(self, result: SessionResult) -> bool:
        """Append ``result``, evicting the oldest entries beyond the cap."""

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with _FileLock(self._lock_path()):
                try:
                    entries = self._read_raw()
                except HistoryError as exc:
                    self._logger.warning(
                        "Discarding unreadable history: %s",
                        exc,
                        extra={"path": str(self._path)},
                    )
                    entries = []
                entries.append(result.to_dict())
                if len(entries) > self._max_entries:
                    del entries[: len(entries) - self._max_entries]
                _atomic_write_json(self._path, entries)
        except (HistoryError, OSError, TypeError, ValueError) as exc:
            self._logger.warning(
                "Could not save results: %s",
                exc,
                extra={"path": str(self._path)},
            )
            return False
        self._logger.debug(
            "Saved session result",
            extra={"path": str(self._path), "entries": len(entries)},
        )
        return True

    def clear(self) -> bool:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            self._logger.warning(
                "Could not clear results history: %s",
                exc,
                extra={"path": str(self._path)},
            )
            return False
        return True

    def export_csv(self, target: Path) -> int:
        """Write a CSV summary of all stored results; return the row count."""

        results = self.load_results()
        if not results:
            return 0
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(_CSV_HEADER)
            writer.writerows(_csv_row(result) for result in results)
        return len(results)

    def _lock_path(self) -> Path:
        return self._path.with_name(self._path.name + _LOCK_SUFFIX)

    def _read_raw(self) -> list[Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise HistoryError(f"Failed to read {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HistoryError(f"Failed to parse {self._path}") from exc
        if not isinstance(data, list):
            raise HistoryError(f"Expected a JSON array in {self._path}")
        return data


def _csv_row(result: SessionResult) -> Sequence[object]:
    date = datetime.fromtimestamp(
        result.timestamp / 1000, tz=timezone.utc
    ).date()
    return (
        date.isoformat(),
        result.total_questions,
        result.correct_answers,
        result.percentage,
        round(result.duration / 1000),
    )


class _FileLock:
    """Simple filesystem lock using exclusive file creation."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_FileLock":
        deadline = time.time() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(
                    self._path,
                    os.O_CREAT | os.O_EXCL | os.O_WRONLY,
                )
                os.close(fd)
                return self
            except FileExistsError:
                if time.time() > deadline:
                    raise HistoryError(
                        f"Timed out waiting for history lock: {self._path}"
                    )
                time.sleep(0.05)

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)


def _atomic_write_json(path: Path, payload: Any) -> None:
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        suffix=".tmp",
    )
    try:
        with handle:
            json.dump(payload, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(handle.name, path)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
