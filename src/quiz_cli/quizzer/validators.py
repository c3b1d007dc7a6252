"""Pure answer validators for each question type."""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from .questions import QuestionRecord

__all__ = [
    "SelfAssessment",
    "SELF_ASSESSMENT_CHOICES",
    "assessment_is_correct",
    "matching_keywords",
    "validate_free_form",
    "validate_multiple_choice",
    "validate_single_choice",
]


class SelfAssessment(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PARTIAL = "partial"


# Display order of the self-assessment prompt.
SELF_ASSESSMENT_CHOICES: tuple[tuple[SelfAssessment, str], ...] = (
    (SelfAssessment.CORRECT, "Correct - I'm confident in my answer"),
    (SelfAssessment.INCORRECT, "Incorrect - I think I got it wrong"),
    (SelfAssessment.PARTIAL, "Partially correct - Some parts right"),
)


def validate_single_choice(question: QuestionRecord, selected: int) -> bool:
    if not question.correct_indices:
        return False
    return selected == question.correct_indices[0]


def validate_multiple_choice(
    question: QuestionRecord, selected: Sequence[int]
) -> bool:
    """Compare sorted selections with the sorted resolved answers.

    Duplicates are significant: ``[0, 0, 1]`` never equals ``[0, 1]``.
    """

    return sorted(selected) == sorted(question.correct_indices)


def matching_keywords(question: QuestionRecord, answer: str) -> list[str]:
    lowered = answer.lower()
    return [
        keyword
        for keyword in question.keywords
        if keyword and keyword.lower() in lowered
    ]


def assessment_is_correct(assessment: SelfAssessment) -> bool:
    return assessment in (SelfAssessment.CORRECT, SelfAssessment.PARTIAL)


def validate_free_form(
    question: QuestionRecord, answer: str, assessment: SelfAssessment
) -> bool:
    """Free-form answers are graded by the learner's own rating.

    Keyword hits (see :func:`matching_keywords`) are only shown as hints and
    never change the outcome; ``question`` and ``answer`` are accepted so all
    validators share a call shape.
    """

    return assessment_is_correct(assessment)
