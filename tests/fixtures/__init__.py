"""Shared testing fixtures for the quiz_cli test suite."""

from .prompter import (  # noqa: F401
    Expire,
    ManualDeadline,
    ManualDeadlineFactory,
    RecordingHistory,
    ScriptedPrompter,
    StepClock,
)
from .questions import bank_payload, write_bank  # noqa: F401
from .workspace import QuizWorkspace  # noqa: F401

__all__ = [
    "Expire",
    "ManualDeadline",
    "ManualDeadlineFactory",
    "QuizWorkspace",
    "RecordingHistory",
    "ScriptedPrompter",
    "StepClock",
    "bank_payload",
    "write_bank",
]
