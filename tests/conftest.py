from __future__ import annotations

import logging
import os
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

from fixtures import (  # noqa: E402
    ManualDeadlineFactory,
    QuizWorkspace,
    RecordingHistory,
    StepClock,
)


@pytest.fixture
def quiz_home(tmp_path: Path) -> QuizWorkspace:
    """The workspace that ``QUIZ_CLI_DATA_HOME`` points at for each test."""

    return QuizWorkspace(tmp_path / "quiz-home")


@pytest.fixture
def deadlines() -> ManualDeadlineFactory:
    return ManualDeadlineFactory()


@pytest.fixture
def history() -> RecordingHistory:
    return RecordingHistory()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep workspace and config lookups inside the test tmp directory."""

    for key in list(os.environ):
        if key.startswith("QUIZ_CLI_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("QUIZ_CLI_DATA_HOME", str(tmp_path / "quiz-home"))
    yield
    logger = logging.getLogger("quiz_cli")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
