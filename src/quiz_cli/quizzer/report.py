"""Rich rendering of stored session history and aggregate statistics."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .results import SessionResult, format_duration, round_percentage

__all__ = [
    "HistoryStatistics",
    "TypeSummary",
    "compute_statistics",
    "type_breakdown",
    "render_history",
]


@dataclass(frozen=True)
class TypeSummary:
    """Answers of one question type within a session."""

    type: str
    total: int
    correct: int

    @property
    def percentage(self) -> int:
        return round_percentage(self.correct, self.total)


@dataclass(frozen=True)
class HistoryStatistics:
    sessions: int
    total_questions: int
    total_correct: int
    accuracy: int
    average_duration: int
    best: SessionResult
    worst: SessionResult


def compute_statistics(
    results: Sequence[SessionResult],
) -> HistoryStatistics | None:
    """Aggregate stored sessions; ``None`` for an empty history.

    Ties for best and worst keep the earliest session.
    """

    if not results:
        return None
    total_questions = sum(result.total_questions for result in results)
    total_correct = sum(result.correct_answers for result in results)
    best = results[0]
    worst = results[0]
    for result in results[1:]:
        if result.percentage > best.percentage:
            best = result
        if result.percentage < worst.percentage:
            worst = result
    return HistoryStatistics(
        sessions=len(results),
        total_questions=total_questions,
        total_correct=total_correct,
        accuracy=round_percentage(total_correct, total_questions),
        average_duration=round(
            sum(result.duration for result in results) / len(results)
        ),
        best=best,
        worst=worst,
    )


def type_breakdown(result: SessionResult) -> list[TypeSummary]:
    """Per question type totals in first-seen order."""

    counts: dict[str, list[int]] = {}
    for answer in result.answers:
        entry = counts.setdefault(answer.type, [0, 0])
        entry[0] += 1
        if answer.is_correct:
            entry[1] += 1
    return [
        TypeSummary(type=qtype, total=total, correct=correct)
        for qtype, (total, correct) in counts.items()
    ]


def render_history(
    console: Console,
    results: Sequence[SessionResult],
    *,
    latest_only: bool = False,
) -> None:
    if not results:
        console.print("[yellow]No quiz results found.[/]")
        return

    console.print()
    console.rule(Text("Quiz Results History", style="bold blue"))
    if latest_only:
        latest = results[-1]
        _render_sessions(console, [(len(results), latest)], latest_only=True)
        _render_breakdown(console, latest)
        return

    numbered = list(enumerate(results, start=1))
    _render_sessions(console, list(reversed(numbered)), latest_only=False)
    if len(results) > 1:
        stats = compute_statistics(results)
        if stats is not None:
            _render_statistics(console, stats)


def _render_sessions(
    console: Console,
    numbered: Sequence[tuple[int, SessionResult]],
    *,
    latest_only: bool,
) -> None:
    table = Table(box=box.SIMPLE, expand=False)
    table.add_column("Session", justify="right")
    table.add_column("Date")
    table.add_column("Score", justify="right")
    table.add_column("Duration", justify="right")
    if not latest_only:
        table.add_column("Incorrect", justify="right")
    for number, result in numbered:
        row = [
            "Latest" if latest_only else str(number),
            _format_timestamp(result.timestamp),
            Text(
                f"{result.correct_answers}/{result.total_questions} "
                f"({result.percentage}%)",
                style=_grade_style(result.percentage),
            ),
            format_duration(result.duration),
        ]
        if not latest_only:
            incorrect = sum(1 for a in result.answers if not a.is_correct)
            row.append(str(incorrect) if incorrect else "")
        table.add_row(*row)
    console.print(table)


def _render_statistics(console: Console, stats: HistoryStatistics) -> None:
    overview = Table(
        title="Overall Statistics",
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total sessions", str(stats.sessions))
    overview.add_row("Total questions", str(stats.total_questions))
    overview.add_row(
        "Overall accuracy",
        Text(f"{stats.accuracy}%", style=_grade_style(stats.accuracy)),
    )
    overview.add_row(
        "Average duration", format_duration(stats.average_duration)
    )
    overview.add_row(
        "Best session",
        f"{stats.best.percentage}% on {_format_date(stats.best.timestamp)}",
    )
    overview.add_row(
        "Worst session",
        f"{stats.worst.percentage}% on {_format_date(stats.worst.timestamp)}",
    )
    console.print(overview)


def _render_breakdown(console: Console, result: SessionResult) -> None:
    console.rule(Text("Detailed Breakdown", style="bold blue"))
    if not result.answers:
        console.print(Text("No detailed answer data available.", style="dim"))
        return

    correct = [answer for answer in result.answers if answer.is_correct]
    incorrect = [answer for answer in result.answers if not answer.is_correct]
    if correct:
        console.print(f"[green]Correct answers ({len(correct)}):[/]")
        for number, answer in enumerate(correct, start=1):
            console.print(
                Text(f"  {number}. {_truncate(answer.question)}", style="dim")
            )
    if incorrect:
        console.print(f"[red]Incorrect answers ({len(incorrect)}):[/]")
        for number, answer in enumerate(incorrect, start=1):
            console.print(
                Text(f"  {number}. {_truncate(answer.question)}", style="dim")
            )
            if answer.type == "free-form":
                console.print(
                    Text(
                        f'     Your answer: "{answer.user_answer}"',
                        style="dim",
                    )
                )

    per_type = Table(
        title="Performance by Question Type", box=box.SIMPLE, expand=False
    )
    per_type.add_column("Type")
    per_type.add_column("Correct", justify="right")
    per_type.add_column("Accuracy", justify="right")
    for summary in type_breakdown(result):
        per_type.add_row(
            summary.type,
            f"{summary.correct}/{summary.total}",
            Text(
                f"{summary.percentage}%",
                style=_grade_style(summary.percentage),
            ),
        )
    console.print(per_type)


def _grade_style(percentage: int) -> str:
    if percentage >= 90:
        return "green"
    if percentage >= 80:
        return "yellow"
    if percentage >= 70:
        return "blue"
    return "red"


def _truncate(text: str, width: int = 60) -> str:
    return text if len(text) <= width else text[:width] + "..."


def _format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(
        "%Y-%m-%d %H:%M"
    )


def _format_date(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d")
