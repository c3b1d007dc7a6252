from __future__ import annotations

from rich.console import Console

from quiz_cli.quizzer.report import (
    compute_statistics,
    render_history,
    type_breakdown,
)
from quiz_cli.quizzer.results import AnswerRecord, SessionResult


def _answer(qid, qtype, correct, user_answer=0, question=None):
    return AnswerRecord(
        question_id=qid,
        question=question or f"Question {qid}",
        type=qtype,
        user_answer=user_answer,
        is_correct=correct,
        correct_answers=[0],
        timestamp=0,
    )


def _session(timestamp, percentage, *, answers=(), total=4, duration=60_000):
    correct = sum(1 for answer in answers if answer.is_correct)
    return SessionResult(
        timestamp=timestamp,
        total_questions=total,
        correct_answers=correct,
        percentage=percentage,
        duration=duration,
        answers=list(answers),
    )


def _console() -> Console:
    return Console(record=True, width=120, force_terminal=True)


def test_compute_statistics_empty_history():
    assert compute_statistics([]) is None


def test_compute_statistics_aggregates_and_keeps_earliest_ties():
    first = _session(1_000, 50, total=2, duration=30_000)
    second = _session(2_000, 100, total=2, duration=90_000)
    third = _session(3_000, 100, total=4, duration=60_000)
    fourth = _session(4_000, 50, total=2, duration=60_000)

    stats = compute_statistics([first, second, third, fourth])

    assert stats is not None
    assert stats.sessions == 4
    assert stats.total_questions == 10
    assert stats.average_duration == 60_000
    assert stats.best is second
    assert stats.worst is first


def test_compute_statistics_accuracy_uses_totals():
    answers = [_answer("a", "single-choice", True)]
    results = [
        _session(1_000, 33, answers=answers, total=3),
        _session(2_000, 0, answers=[], total=3),
    ]

    stats = compute_statistics(results)

    assert stats is not None
    assert stats.total_correct == 1
    assert stats.accuracy == 17


def test_type_breakdown_groups_in_first_seen_order():
    result = _session(
        1_000,
        50,
        answers=[
            _answer("a", "multiple-choice", True),
            _answer("b", "single-choice", False),
            _answer("c", "multiple-choice", False),
            _answer("d", "single-choice", True),
        ],
    )

    summaries = type_breakdown(result)

    assert [(s.type, s.total, s.correct) for s in summaries] == [
        ("multiple-choice", 2, 1),
        ("single-choice", 2, 1),
    ]
    assert summaries[0].percentage == 50


def test_render_history_without_results():
    console = _console()

    render_history(console, [])

    assert "No quiz results found." in console.export_text()


def test_render_history_lists_sessions_with_statistics():
    console = _console()
    results = [
        _session(1_700_000_000_000, 25),
        _session(1_700_000_100_000, 75),
    ]

    render_history(console, results)

    rendered = console.export_text()
    assert "Quiz Results History" in rendered
    assert "Overall Statistics" in rendered
    assert "Total sessions" in rendered
    assert rendered.index("(75%)") < rendered.index("(25%)")


def test_render_history_single_result_skips_statistics():
    console = _console()

    render_history(console, [_session(1_700_000_000_000, 50)])

    assert "Overall Statistics" not in console.export_text()


def test_render_latest_shows_breakdown():
    console = _console()
    long_question = "x" * 70
    latest = _session(
        1_700_000_100_000,
        50,
        answers=[
            _answer("a", "single-choice", True),
            _answer(
                "b",
                "free-form",
                False,
                user_answer="my guess",
                question=long_question,
            ),
        ],
        total=2,
    )

    render_history(
        console, [_session(1_700_000_000_000, 0), latest], latest_only=True
    )

    rendered = console.export_text()
    assert "Latest" in rendered
    assert "Detailed Breakdown" in rendered
    assert "Correct answers (1):" in rendered
    assert "Incorrect answers (1):" in rendered
    assert 'Your answer: "my guess"' in rendered
    assert "x" * 60 + "..." in rendered
    assert "Performance by Question Type" in rendered
    assert "Overall Statistics" not in rendered


def test_render_latest_without_answer_details():
    console = _console()

    render_history(console, [_session(1_000, 0)], latest_only=True)

    assert "No detailed answer data available." in console.export_text()
