from __future__ import annotations

import csv
import json
import logging

import pytest

from quiz_cli.quizzer.history import HistoryStore
from quiz_cli.quizzer.results import AnswerRecord, SessionResult


def _result(index: int, *, correct: int = 1, total: int = 2) -> SessionResult:
    return SessionResult(
        timestamp=1_700_000_000_000 + index * 1000,
        total_questions=total,
        correct_answers=correct,
        percentage=round(100 * correct / total),
        duration=90_500,
        answers=[
            AnswerRecord(
                question_id=f"q{index}",
                question="Which?",
                type="multiple-choice",
                user_answer=[0, 2],
                is_correct=True,
                correct_answers=["a", "c"],
                timestamp=1_700_000_000_000,
            )
        ],
    )


def test_save_and_load_round_trip(tmp_path):
    store = HistoryStore(tmp_path / "history" / "results.json")

    assert store.load_results() == []
    assert store.save_result(_result(1)) is True
    assert store.save_result(_result(2)) is True

    loaded = store.load_results()
    assert loaded == [_result(1), _result(2)]
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert raw[0]["answers"][0]["userAnswer"] == [0, 2]
    assert not (store.path.parent / "results.json.lock").exists()


def test_history_is_capped_to_newest_entries(tmp_path):
    store = HistoryStore(tmp_path / "results.json")

    for index in range(55):
        assert store.save_result(_result(index))

    loaded = store.load_results()
    assert len(loaded) == 50
    assert loaded[0].answers[0].question_id == "q5"
    assert loaded[-1].answers[0].question_id == "q54"


def test_custom_cap(tmp_path):
    store = HistoryStore(tmp_path / "results.json", max_entries=2)

    for index in range(4):
        store.save_result(_result(index))

    assert [r.timestamp for r in store.load_results()] == [
        _result(2).timestamp,
        _result(3).timestamp,
    ]


def test_invalid_cap_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        HistoryStore(tmp_path / "results.json", max_entries=0)


def test_corrupt_history_loads_empty_and_is_replaced(tmp_path, caplog):
    path = tmp_path / "results.json"
    path.write_text("{broken", encoding="utf-8")
    store = HistoryStore(path)
    caplog.set_level(logging.WARNING, logger="quiz_cli.history")

    assert store.load_results() == []
    assert store.save_result(_result(1)) is True
    assert store.load_results() == [_result(1)]
    assert "Could not load results history" in caplog.text
    assert "Discarding unreadable history" in caplog.text


def test_save_failure_returns_false(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = HistoryStore(blocker / "results.json")

    assert store.save_result(_result(1)) is False
    assert "Could not save results" in caplog.text


def test_clear_removes_history(tmp_path):
    store = HistoryStore(tmp_path / "results.json")
    store.save_result(_result(1))

    assert store.clear() is True
    assert store.load_results() == []
    assert store.clear() is True


def test_export_csv(tmp_path):
    store = HistoryStore(tmp_path / "results.json")
    store.save_result(_result(1, correct=1, total=3))
    target = tmp_path / "out" / "history.csv"

    rows = store.export_csv(target)

    assert rows == 1
    with target.open(encoding="utf-8", newline="") as handle:
        content = list(csv.reader(handle))
    assert content[0] == [
        "Date",
        "Total Questions",
        "Correct Answers",
        "Percentage",
        "Duration (seconds)",
    ]
    assert content[1] == ["2023-11-14", "3", "1", "33", "90"]


def test_export_csv_without_history_writes_nothing(tmp_path):
    store = HistoryStore(tmp_path / "results.json")
    target = tmp_path / "history.csv"

    assert store.export_csv(target) == 0
    assert not target.exists()
