from __future__ import annotations

import pytest

from quiz_cli.quizzer.questions import parse_question
from quiz_cli.quizzer.validators import (
    SELF_ASSESSMENT_CHOICES,
    SelfAssessment,
    assessment_is_correct,
    matching_keywords,
    validate_free_form,
    validate_multiple_choice,
    validate_single_choice,
)


@pytest.fixture
def single():
    return parse_question(
        {
            "id": "single",
            "type": "single-choice",
            "question": "Pick B",
            "options": ["A", {"text": "B", "value": "b"}, "C", "D"],
            "correctAnswers": ["b"],
        },
        0,
    )


@pytest.fixture
def multiple():
    return parse_question(
        {
            "id": "multi",
            "type": "multiple-choice",
            "question": "Pick A, B and C",
            "options": ["A", "B", "C", "D"],
            "correctAnswers": [0, 1, 2],
        },
        0,
    )


@pytest.fixture
def free_form():
    return parse_question(
        {
            "id": "free",
            "type": "free-form",
            "question": "Describe S3",
            "keywords": ["Object", "durable", ""],
        },
        0,
    )


def test_single_choice_true_only_for_resolved_index(single):
    outcomes = [
        validate_single_choice(single, index)
        for index in range(len(single.options))
    ]

    assert outcomes == [False, True, False, False]


def test_multiple_choice_compares_sorted_selections(multiple):
    assert validate_multiple_choice(multiple, [2, 0, 1]) is True
    assert validate_multiple_choice(multiple, [0, 1]) is False
    assert validate_multiple_choice(multiple, [0, 1, 2, 3]) is False


def test_multiple_choice_duplicates_are_significant(multiple):
    assert validate_multiple_choice(multiple, [0, 0, 1, 2]) is False


def test_matching_keywords_is_case_insensitive(free_form):
    hits = matching_keywords(free_form, "An OBJECT store that is Durable")

    assert hits == ["Object", "durable"]
    assert matching_keywords(free_form, "block storage") == []


@pytest.mark.parametrize(
    "assessment, expected",
    [
        (SelfAssessment.CORRECT, True),
        (SelfAssessment.PARTIAL, True),
        (SelfAssessment.INCORRECT, False),
    ],
)
def test_free_form_follows_self_assessment(free_form, assessment, expected):
    assert assessment_is_correct(assessment) is expected
    assert validate_free_form(free_form, "anything", assessment) is expected


def test_free_form_keywords_do_not_change_outcome(free_form):
    answer = "object durable"

    assert validate_free_form(
        free_form, answer, SelfAssessment.INCORRECT
    ) is False


def test_self_assessment_choice_order():
    assert [choice for choice, _ in SELF_ASSESSMENT_CHOICES] == [
        SelfAssessment.CORRECT,
        SelfAssessment.INCORRECT,
        SelfAssessment.PARTIAL,
    ]
