"""Question bank loading and validation.

A question bank is a JSON document with a top-level ``questions`` array.
Records are validated up front so the session engine only ever sees
well-formed :class:`QuestionRecord` instances whose correct answers already
resolve to option indices.
"""

from __future__ import annotations

import json
import logging
import random
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

__all__ = [
    "QuestionBankError",
    "AnswerResolutionError",
    "QuestionType",
    "Option",
    "QuestionRecord",
    "QuestionStats",
    "resolve_option_index",
    "parse_question",
    "load_questions",
    "question_stats",
]

_LOGGER = logging.getLogger("quiz_cli.questions")


class QuestionBankError(RuntimeError):
    """Raised when a question file cannot be read or fails validation."""


class AnswerResolutionError(QuestionBankError):
    """Raised when a correct-answer entry does not match any option."""


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single-choice"
    MULTIPLE_CHOICE = "multiple-choice"
    FREE_FORM = "free-form"

    @classmethod
    def supported(cls) -> str:
        return ", ".join(member.value for member in cls)


@dataclass(frozen=True)
class Option:
    """A selectable option; plain string options carry no ``value``."""

    text: str
    value: Any = None

    def matches(self, entry: Any) -> bool:
        if self.value is None:
            return self.text == entry
        return self.text == entry or self.value == entry


@dataclass(frozen=True)
class QuestionRecord:
    """Immutable, validated question used during a session."""

    id: str
    type: QuestionType
    question: str
    options: tuple[Option, ...] = ()
    correct_answers: tuple[Any, ...] = ()
    correct_indices: tuple[int, ...] = ()
    category: Optional[str] = None
    description: Optional[str] = None
    sample_answers: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    explanation: Optional[str] = None

    @property
    def option_labels(self) -> list[str]:
        return [option.text for option in self.options]

    def expected_answers(self) -> list[Any]:
        """Expected answers as stored on answer records for later review."""

        if self.type is QuestionType.FREE_FORM:
            return list(self.correct_answers or self.sample_answers)
        return list(self.correct_answers)

    def correct_labels(self) -> list[str]:
        return [self.options[index].text for index in self.correct_indices]


@dataclass(frozen=True)
class QuestionStats:
    total: int
    by_type: dict[str, int]
    by_category: dict[str, int]


def resolve_option_index(options: Sequence[Option], entry: Any) -> int:
    """Resolve a correct-answer entry to an option index.

    Integers are used as indices directly; anything else matches the first
    option whose text (or value) equals it.
    """

    if isinstance(entry, int) and not isinstance(entry, bool):
        if 0 <= entry < len(options):
            return entry
        raise AnswerResolutionError(
            f"Correct answer index {entry} is out of range for "
            f"{len(options)} options"
        )
    for index, option in enumerate(options):
        if option.matches(entry):
            return index
    raise AnswerResolutionError(
        f"Correct answer '{entry}' doesn't match any option"
    )


def load_questions(
    path: Path,
    *,
    category: Optional[str] = None,
    shuffle: bool = False,
    limit: int = 0,
    rng: Optional[random.Random] = None,
    known_categories: Sequence[str] = (),
    logger: Optional[logging.Logger] = None,
) -> list[QuestionRecord]:
    """Load, filter, shuffle, limit and validate questions from ``path``."""

    log = logger or _LOGGER
    items = _read_bank(Path(path))

    if category and category.lower() != "all":
        wanted = category.lower()
        items = [
            item
            for item in items
            if isinstance(item, Mapping)
            and isinstance(item.get("category"), str)
            and item["category"].lower() == wanted
        ]
    if shuffle:
        items = list(items)
        (rng or random.Random()).shuffle(items)
    if limit and limit > 0:
        items = items[:limit]

    known = {name.lower() for name in known_categories}
    records: list[QuestionRecord] = []
    for index, item in enumerate(items):
        record = parse_question(item, index)
        if known and record.category and record.category.lower() not in known:
            log.warning(
                "Question %d has unknown category '%s'",
                index + 1,
                record.category,
                extra={"question_id": record.id},
            )
        records.append(record)
    log.debug(
        "Loaded question bank",
        extra={"path": str(path), "count": len(records)},
    )
    return records


def _read_bank(path: Path) -> list[Any]:
    try:
        raw = path.resolve().read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise QuestionBankError(f"Questions file not found: {path}") from exc
    except OSError as exc:
        raise QuestionBankError(
            f"Could not read questions file {path}: {exc}"
        ) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise QuestionBankError(f"Invalid JSON format: {exc}") from exc
    questions = data.get("questions") if isinstance(data, dict) else None
    if not isinstance(questions, list):
        raise QuestionBankError(
            'Questions file must contain a "questions" array'
        )
    return questions


def parse_question(data: Any, index: int) -> QuestionRecord:
    """Validate a raw question mapping and build a :class:`QuestionRecord`."""

    label = f"Question {index + 1}"
    if not isinstance(data, Mapping):
        raise QuestionBankError(f"{label}: Expected an object")
    for key in ("id", "question", "type"):
        if not data.get(key):
            raise QuestionBankError(
                f"{label}: Missing required field '{key}'"
            )
    try:
        qtype = QuestionType(data["type"])
    except ValueError as exc:
        raise QuestionBankError(
            f"{label}: Unsupported type '{data['type']}'. Supported types: "
            f"{QuestionType.supported()}"
        ) from exc

    common = {
        "id": str(data["id"]),
        "type": qtype,
        "question": str(data["question"]),
        "category": _optional_str(data.get("category")),
        "description": _optional_str(data.get("description")),
        "explanation": _optional_str(data.get("explanation")),
    }
    if qtype is QuestionType.FREE_FORM:
        return QuestionRecord(
            sample_answers=_string_list(data, "sampleAnswers", label),
            keywords=_string_list(data, "keywords", label),
            correct_answers=_string_list(data, "correctAnswers", label),
            **common,
        )

    options = _parse_options(data.get("options"), label)
    correct = data.get("correctAnswers")
    if correct is None:
        raise QuestionBankError(f"{label}: Missing 'correctAnswers' field")
    if not isinstance(correct, list):
        raise QuestionBankError(f"{label}: 'correctAnswers' must be an array")
    if qtype is QuestionType.SINGLE_CHOICE and len(correct) != 1:
        raise QuestionBankError(
            f"{label}: Single-choice questions must have exactly one correct "
            "answer"
        )
    if qtype is QuestionType.MULTIPLE_CHOICE and not correct:
        raise QuestionBankError(
            f"{label}: Multiple-choice questions must have at least one "
            "correct answer"
        )
    try:
        indices = tuple(
            resolve_option_index(options, entry) for entry in correct
        )
    except AnswerResolutionError as exc:
        raise AnswerResolutionError(f"{label}: {exc}") from exc

    return QuestionRecord(
        options=options,
        correct_answers=tuple(correct),
        correct_indices=indices,
        **common,
    )


def _parse_options(raw: Any, label: str) -> tuple[Option, ...]:
    if not isinstance(raw, list):
        raise QuestionBankError(
            f"{label}: Choice questions must have an 'options' array"
        )
    if len(raw) < 2:
        raise QuestionBankError(
            f"{label}: Choice questions must have at least 2 options"
        )
    options: list[Option] = []
    for position, item in enumerate(raw, start=1):
        if isinstance(item, str):
            options.append(Option(item))
        elif isinstance(item, Mapping) and item.get("text"):
            options.append(Option(str(item["text"]), item.get("value")))
        else:
            raise QuestionBankError(
                f'{label}, Option {position}: Invalid format. Use string or '
                '{text: "...", value: "..."}'
            )
    return tuple(options)


def _string_list(
    data: Mapping[str, Any], key: str, label: str
) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise QuestionBankError(
            f"{label}: '{key}' must be an array if provided"
        )
    return tuple(str(item) for item in value)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def question_stats(questions: Sequence[QuestionRecord]) -> QuestionStats:
    by_type = Counter(question.type.value for question in questions)
    by_category = Counter(
        question.category or "uncategorized" for question in questions
    )
    return QuestionStats(
        total=len(questions),
        by_type=dict(by_type),
        by_category=dict(by_category),
    )
