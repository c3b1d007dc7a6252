"""Answer and session result records plus scoring helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping, Sequence

__all__ = [
    "AnswerRecord",
    "SessionResult",
    "build_session_result",
    "format_duration",
    "grade_for",
    "round_percentage",
]


@dataclass(frozen=True)
class AnswerRecord:
    """Terminal outcome of one question; at most one per question."""

    question_id: str
    question: str
    type: str
    user_answer: Any
    is_correct: bool
    correct_answers: list[Any]
    timestamp: int

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "questionId": self.question_id,
            "question": self.question,
            "type": self.type,
            "userAnswer": self.user_answer,
            "isCorrect": self.is_correct,
            "correctAnswers": list(self.correct_answers),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnswerRecord":
        user_answer = payload.get("userAnswer")
        if isinstance(user_answer, list):
            user_answer = [int(item) for item in user_answer]
        return cls(
            question_id=str(payload["questionId"]),
            question=str(payload.get("question", "")),
            type=str(payload.get("type", "")),
            user_answer=user_answer,
            is_correct=bool(payload.get("isCorrect")),
            correct_answers=list(payload.get("correctAnswers") or []),
            timestamp=int(payload.get("timestamp", 0)),
        )


@dataclass(frozen=True)
class SessionResult:
    """Aggregate outcome of one session as persisted to history."""

    timestamp: int
    total_questions: int
    correct_answers: int
    percentage: int
    duration: int
    answers: list[AnswerRecord] = field(default_factory=list)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "timestamp": self.timestamp,
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_answers,
            "percentage": self.percentage,
            "duration": self.duration,
            "answers": [answer.to_dict() for answer in self.answers],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SessionResult":
        total = int(payload["totalQuestions"])
        correct = int(payload["correctAnswers"])
        percentage = payload.get("percentage")
        return cls(
            timestamp=int(payload["timestamp"]),
            total_questions=total,
            correct_answers=correct,
            percentage=(
                int(percentage)
                if percentage is not None
                else round_percentage(correct, total)
            ),
            duration=int(payload.get("duration", 0)),
            answers=[
                AnswerRecord.from_dict(item)
                for item in payload.get("answers") or []
            ],
        )

    @property
    def answered(self) -> int:
        return len(self.answers)


def round_percentage(score: int, total: int) -> int:
    """Return ``score / total`` as a percentage rounded half up."""

    if total <= 0:
        return 0
    return (score * 200 + total) // (2 * total)


def build_session_result(
    answers: Sequence[AnswerRecord],
    *,
    total_questions: int,
    started_ms: int,
    finished_ms: int,
) -> SessionResult:
    """Assemble the result; the percentage is against the configured total.

    A timed-out session therefore never reaches 100% unless every question
    was answered.
    """

    correct = sum(1 for answer in answers if answer.is_correct)
    return SessionResult(
        timestamp=finished_ms,
        total_questions=total_questions,
        correct_answers=correct,
        percentage=round_percentage(correct, total_questions),
        duration=max(0, finished_ms - started_ms),
        answers=list(answers),
    )


_GRADE_BANDS: tuple[tuple[int, str, str], ...] = (
    (90, "Excellent!", "bold green"),
    (80, "Great job!", "green"),
    (70, "Good work!", "yellow"),
    (60, "Not bad!", "yellow"),
)


def grade_for(percentage: int) -> tuple[str, str]:
    """Return the grade label and its Rich style for ``percentage``."""

    for threshold, label, style in _GRADE_BANDS:
        if percentage >= threshold:
            return label, style
    return "Keep studying!", "red"


def format_duration(duration_ms: int) -> str:
    seconds = max(0, int(duration_ms)) // 1000
    minutes, remaining = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{remaining}s"
