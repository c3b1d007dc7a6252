from __future__ import annotations

import json
import logging
import random

import pytest

from fixtures import bank_payload, write_bank
from quiz_cli.quizzer.questions import (
    AnswerResolutionError,
    Option,
    QuestionBankError,
    QuestionType,
    load_questions,
    parse_question,
    question_stats,
    resolve_option_index,
)


def _choice(**overrides):
    data = {
        "id": "q1",
        "type": "single-choice",
        "question": "Pick one",
        "options": ["A", "B", "C"],
        "correctAnswers": [1],
    }
    data.update(overrides)
    return data


def test_resolve_option_index_by_index_text_and_value():
    options = (Option("Paris", "fr"), Option("London"), Option("Rome"))

    assert resolve_option_index(options, 2) == 2
    assert resolve_option_index(options, "London") == 1
    assert resolve_option_index(options, "fr") == 0
    assert resolve_option_index(options, "Paris") == 0


def test_resolve_option_index_is_stable_across_calls():
    options = (Option("A", "x"), Option("B", "x"), Option("C"))

    first = [resolve_option_index(options, entry) for entry in (1, "x", "C")]
    second = [resolve_option_index(options, entry) for entry in (1, "x", "C")]

    assert first == second == [1, 0, 2]


@pytest.mark.parametrize("entry", [5, -1, "missing", True])
def test_resolve_option_index_rejects_unmatched_entries(entry):
    options = (Option("A"), Option("B"))

    with pytest.raises(AnswerResolutionError):
        resolve_option_index(options, entry)


def test_parse_question_single_choice_resolves_indices():
    record = parse_question(_choice(correctAnswers=["C"]), 0)

    assert record.type is QuestionType.SINGLE_CHOICE
    assert record.correct_indices == (2,)
    assert record.correct_labels() == ["C"]
    assert record.expected_answers() == ["C"]


def test_parse_question_accepts_object_options():
    record = parse_question(
        _choice(
            type="multiple-choice",
            options=[
                {"text": "Lambda", "value": "lambda"},
                "EC2",
                {"text": "Fargate"},
            ],
            correctAnswers=["lambda", "Fargate"],
        ),
        0,
    )

    assert record.option_labels == ["Lambda", "EC2", "Fargate"]
    assert record.correct_indices == (0, 2)


def test_parse_question_free_form_keeps_samples_and_keywords():
    record = parse_question(
        {
            "id": "f1",
            "type": "free-form",
            "question": "Explain",
            "sampleAnswers": ["An answer"],
            "keywords": ["answer"],
        },
        0,
    )

    assert record.options == ()
    assert record.sample_answers == ("An answer",)
    assert record.keywords == ("answer",)
    assert record.expected_answers() == ["An answer"]


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"id": None}, "Question 3: Missing required field 'id'"),
        ({"question": ""}, "Missing required field 'question'"),
        ({"type": "essay"}, "Unsupported type 'essay'"),
        ({"options": "A,B"}, "must have an 'options' array"),
        ({"options": ["A"]}, "at least 2 options"),
        ({"options": ["A", 3]}, "Question 3, Option 2: Invalid format"),
        ({"correctAnswers": None}, "Missing 'correctAnswers' field"),
        ({"correctAnswers": 1}, "'correctAnswers' must be an array"),
        ({"correctAnswers": [0, 1]}, "exactly one correct answer"),
        ({"correctAnswers": ["Z"]}, "doesn't match any option"),
    ],
)
def test_parse_question_reports_validation_errors(overrides, message):
    with pytest.raises(QuestionBankError) as excinfo:
        parse_question(_choice(**overrides), 2)

    assert message in str(excinfo.value)


def test_parse_question_multiple_choice_requires_an_answer():
    with pytest.raises(QuestionBankError, match="at least one correct"):
        parse_question(
            _choice(type="multiple-choice", correctAnswers=[]), 0
        )


@pytest.mark.parametrize(
    "key", ["keywords", "sampleAnswers", "correctAnswers"]
)
def test_parse_question_free_form_rejects_non_list_fields(key):
    data = {"id": "f", "type": "free-form", "question": "?", key: "words"}

    with pytest.raises(QuestionBankError, match=f"'{key}' must be an array"):
        parse_question(data, 0)


def test_parse_question_free_form_keeps_correct_answers_whole():
    record = parse_question(
        {
            "id": "f",
            "type": "free-form",
            "question": "?",
            "correctAnswers": ["Regularization"],
        },
        0,
    )

    assert record.correct_answers == ("Regularization",)


def test_load_questions_reads_bank(tmp_path):
    path = write_bank(tmp_path / "bank.json")

    records = load_questions(path)

    assert [record.id for record in records] == ["s3", "serverless", "overfit"]
    assert records[1].correct_indices == (0, 2)


def test_load_questions_filters_category_case_insensitively(tmp_path):
    path = write_bank(tmp_path / "bank.json")

    aws = load_questions(path, category="aws")
    everything = load_questions(path, category="ALL")

    assert [record.id for record in aws] == ["s3", "serverless"]
    assert len(everything) == 3


def test_load_questions_shuffles_and_limits(tmp_path):
    path = write_bank(tmp_path / "bank.json")

    first = load_questions(path, shuffle=True, rng=random.Random(7))
    second = load_questions(path, shuffle=True, rng=random.Random(7))
    limited = load_questions(path, limit=2)

    assert [r.id for r in first] == [r.id for r in second]
    assert sorted(r.id for r in first) == ["overfit", "s3", "serverless"]
    assert [r.id for r in limited] == ["s3", "serverless"]


def test_load_questions_warns_on_unknown_category(tmp_path, caplog):
    path = write_bank(tmp_path / "bank.json")
    caplog.set_level(logging.WARNING, logger="quiz_cli.questions")

    load_questions(path, known_categories=["aws"])

    assert "unknown category 'ai'" in caplog.text


def test_load_questions_missing_file(tmp_path):
    with pytest.raises(QuestionBankError, match="Questions file not found"):
        load_questions(tmp_path / "missing.json")


def test_load_questions_invalid_json(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(QuestionBankError, match="Invalid JSON format"):
        load_questions(path)


def test_load_questions_requires_questions_array(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text(json.dumps({"items": []}), encoding="utf-8")

    with pytest.raises(QuestionBankError, match='"questions" array'):
        load_questions(path)


def test_load_questions_rejects_bad_record_before_session(tmp_path):
    payload = bank_payload()
    payload["questions"][1]["correctAnswers"] = ["ecs"]
    path = tmp_path / "bank.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(AnswerResolutionError, match="Question 2"):
        load_questions(path)


def test_question_stats_counts_types_and_categories(tmp_path):
    records = load_questions(write_bank(tmp_path / "bank.json"))

    stats = question_stats(records)

    assert stats.total == 3
    assert stats.by_type == {
        "single-choice": 1,
        "multiple-choice": 1,
        "free-form": 1,
    }
    assert stats.by_category == {"aws": 1, "AWS": 1, "ai": 1}
