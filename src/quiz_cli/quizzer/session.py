"""Rich-powered quiz session engine.

``QuizSession`` drives a validated question sequence through the prompt
collaborator: each question runs a small retry loop around a single attempt
that yields a terminal :class:`AnswerRecord`, an optional deadline timer cuts
the session short, and the finished :class:`SessionResult` is handed to the
history store.

The deadline is cooperative. The timer only flips an event; the engine looks
at it before presenting a question and after every prompt returns, so a
prompt already waiting for input is never interrupted. An answer that
arrives after the deadline is discarded.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Sequence
from typing import Callable, Optional, Protocol

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .prompts import Prompter
from .questions import QuestionRecord, QuestionType
from .results import (
    AnswerRecord,
    SessionResult,
    build_session_result,
    format_duration,
    grade_for,
)
from .validators import (
    SELF_ASSESSMENT_CHOICES,
    matching_keywords,
    validate_free_form,
    validate_multiple_choice,
    validate_single_choice,
)

__all__ = [
    "QuizSessionError",
    "UnsupportedQuestionTypeError",
    "SessionDeadline",
    "QuizSession",
]

Clock = Callable[[], int]
DeadlineFactory = Callable[[int, Clock], "SessionDeadline"]

_LOGGER = logging.getLogger("quiz_cli.session")


class QuizSessionError(RuntimeError):
    """Raised when a session cannot be constructed or must abort."""


class UnsupportedQuestionTypeError(QuizSessionError):
    """Raised when a question type has no collection routine."""


class HistoryWriter(Protocol):
    def save_result(self, result: SessionResult) -> bool: ...


class SessionDeadline:
    """Wall-clock cutoff backed by a daemon ``threading.Timer``.

    The first expiry stamps ``expired_at`` from ``clock`` so a session cut
    short while a prompt is blocked still finishes at the cutoff.
    """

    def __init__(
        self, time_limit_ms: int, clock: Optional[Clock] = None
    ) -> None:
        self._time_limit_ms = max(0, int(time_limit_ms))
        self._clock = clock or _wall_clock_ms
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._expired_at: Optional[int] = None
        self._timer: Optional[threading.Timer] = None

    @property
    def expired(self) -> bool:
        return self._event.is_set()

    @property
    def expired_at(self) -> Optional[int]:
        return self._expired_at

    def arm(self) -> None:
        if self._time_limit_ms <= 0 or self._timer is not None:
            return
        self._timer = threading.Timer(
            self._time_limit_ms / 1000.0, self.expire
        )
        self._timer.daemon = True
        self._timer.start()

    def expire(self) -> None:
        with self._lock:
            if self._expired_at is None:
                self._expired_at = self._clock()
            self._event.set()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class _DeadlineReached(Exception):
    def __init__(self, committed: Optional[AnswerRecord] = None) -> None:
        super().__init__("deadline reached")
        self.committed = committed


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class QuizSession:
    """Run one quiz session over an ordered, validated question sequence."""

    def __init__(
        self,
        questions: Sequence[QuestionRecord],
        *,
        prompter: Prompter,
        history: HistoryWriter,
        time_limit_ms: int = 0,
        allow_retry: bool = False,
        console: Optional[Console] = None,
        clock: Optional[Clock] = None,
        deadline_factory: DeadlineFactory = SessionDeadline,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not questions:
            raise QuizSessionError(
                "A quiz session needs at least one question."
            )
        self._questions = tuple(questions)
        self._prompter = prompter
        self._history = history
        self._time_limit_ms = max(0, int(time_limit_ms))
        self._allow_retry = bool(allow_retry)
        self._console = console or Console()
        self._clock = clock or _wall_clock_ms
        self._deadline_factory = deadline_factory
        self._logger = logger or _LOGGER
        self._collectors = {
            QuestionType.SINGLE_CHOICE: self._collect_single_choice,
            QuestionType.MULTIPLE_CHOICE: self._collect_multiple_choice,
            QuestionType.FREE_FORM: self._collect_free_form,
        }

    @property
    def questions(self) -> tuple[QuestionRecord, ...]:
        return self._questions

    @property
    def time_limit_ms(self) -> int:
        return self._time_limit_ms

    @property
    def allow_retry(self) -> bool:
        return self._allow_retry

    def start(self) -> Optional[SessionResult]:
        """Run the session; ``None`` means the user declined to start."""

        self._render_intro()
        if not self._prompter.confirm("Ready to start the quiz?", default=True):
            self._console.print("[yellow]Quiz cancelled.[/]")
            self._logger.info("Session cancelled before start")
            return None

        started = self._clock()
        deadline = self._deadline_factory(self._time_limit_ms, self._clock)
        if self._time_limit_ms > 0:
            deadline.arm()
        self._logger.info(
            "Session started",
            extra={
                "questions": len(self._questions),
                "time_limit_ms": self._time_limit_ms,
                "allow_retry": self._allow_retry,
            },
        )

        answers: list[AnswerRecord] = []
        timed_out = False
        try:
            for index, question in enumerate(self._questions):
                if deadline.expired:
                    timed_out = True
                    break
                self._render_header(index, started)
                try:
                    answers.append(self._ask(question, deadline))
                except _DeadlineReached as reached:
                    if reached.committed is not None:
                        answers.append(reached.committed)
                    timed_out = True
                    break
        finally:
            deadline.cancel()

        if timed_out:
            self._console.print(
                "\n[bold red]Time limit reached! Quiz automatically "
                "submitted.[/]"
            )
            self._logger.warning(
                "Session deadline reached",
                extra={"answered": len(answers)},
            )
        finished = deadline.expired_at if timed_out else None
        return self._finish(answers, started, finished)

    # Per-question state machine -------------------------------------------

    def _ask(
        self, question: QuestionRecord, deadline: SessionDeadline
    ) -> AnswerRecord:
        collect = self._collectors.get(question.type)
        if collect is None:
            raise UnsupportedQuestionTypeError(
                f"Unsupported question type: {question.type}"
            )
        attempt = 1
        while True:
            self._render_question(question)
            record = collect(question, deadline)
            self._render_feedback(question, record)
            self._logger.debug(
                "Attempt answered",
                extra={
                    "question_id": question.id,
                    "attempt": attempt,
                    "correct": record.is_correct,
                },
            )
            if record.is_correct or not self._allow_retry:
                return record
            retry = self._prompter.confirm(
                "Would you like to try again?", default=False
            )
            if deadline.expired:
                raise _DeadlineReached(record)
            if not retry:
                return record
            attempt += 1
            self._console.print("\n[yellow]Try again:[/]\n")

    def _collect_single_choice(
        self, question: QuestionRecord, deadline: SessionDeadline
    ) -> AnswerRecord:
        selected = self._prompter.select_one(
            "Select the correct answer:", question.option_labels
        )
        self._check_deadline(deadline)
        return self._record(
            question, selected, validate_single_choice(question, selected)
        )

    def _collect_multiple_choice(
        self, question: QuestionRecord, deadline: SessionDeadline
    ) -> AnswerRecord:
        selected = sorted(
            self._prompter.select_many(
                "Select all correct answers:", question.option_labels
            )
        )
        self._check_deadline(deadline)
        return self._record(
            question, selected, validate_multiple_choice(question, selected)
        )

    def _collect_free_form(
        self, question: QuestionRecord, deadline: SessionDeadline
    ) -> AnswerRecord:
        if question.sample_answers:
            self._console.print(
                Text("Sample answers for reference:", style="dim")
            )
            for number, sample in enumerate(question.sample_answers, start=1):
                self._console.print(Text(f"  {number}. {sample}", style="dim"))
        answer = self._prompter.text("Your answer:").strip()
        self._check_deadline(deadline)

        if matching_keywords(question, answer):
            self._console.print(
                "\n[blue]Your answer contains expected keywords.[/]"
            )
        picked = self._prompter.select_one(
            "How would you rate your answer?",
            [label for _, label in SELF_ASSESSMENT_CHOICES],
        )
        self._check_deadline(deadline)
        assessment = SELF_ASSESSMENT_CHOICES[picked][0]
        return self._record(
            question,
            answer,
            validate_free_form(question, answer, assessment),
        )

    @staticmethod
    def _check_deadline(deadline: SessionDeadline) -> None:
        if deadline.expired:
            raise _DeadlineReached()

    def _record(
        self, question: QuestionRecord, user_answer: object, is_correct: bool
    ) -> AnswerRecord:
        return AnswerRecord(
            question_id=question.id,
            question=question.question,
            type=question.type.value,
            user_answer=user_answer,
            is_correct=is_correct,
            correct_answers=question.expected_answers(),
            timestamp=self._clock(),
        )

    # Finalization ---------------------------------------------------------

    def _finish(
        self,
        answers: Sequence[AnswerRecord],
        started: int,
        finished: Optional[int] = None,
    ) -> SessionResult:
        if finished is None:
            finished = self._clock()
        result = build_session_result(
            answers,
            total_questions=len(self._questions),
            started_ms=started,
            finished_ms=finished,
        )
        self._render_summary(result)
        try:
            saved = self._history.save_result(result)
        except Exception:
            self._logger.warning("History store raised on save", exc_info=True)
            saved = False
        if saved:
            self._console.print(
                Text("\nResults saved to history.", style="dim")
            )
        else:
            self._console.print(
                "\n[yellow]Warning: could not save results to history.[/]"
            )
        self._logger.info(
            "Session finished",
            extra={
                "total": result.total_questions,
                "answered": result.answered,
                "correct": result.correct_answers,
                "percentage": result.percentage,
                "duration_ms": result.duration,
            },
        )
        return result

    # Rendering ------------------------------------------------------------

    def _render_intro(self) -> None:
        self._console.print()
        self._console.rule(Text("Starting Quiz Session", style="bold blue"))
        self._console.print(f"Questions: [yellow]{len(self._questions)}[/]")
        if self._time_limit_ms > 0:
            minutes = round(self._time_limit_ms / 60000)
            self._console.print(f"Time Limit: [yellow]{minutes} minutes[/]")
        retry = "Yes" if self._allow_retry else "No"
        self._console.print(f"Retry Allowed: [yellow]{retry}[/]\n")

    def _render_header(self, index: int, started: int) -> None:
        header = Text.assemble(
            (f"Question {index + 1}", "bold cyan"),
            (f" of {len(self._questions)}", "dim"),
        )
        self._console.print()
        self._console.rule(header)
        if self._time_limit_ms > 0:
            elapsed = self._clock() - started
            remaining = max(0, self._time_limit_ms - elapsed)
            self._console.print(
                Text(
                    f"Time remaining: {math.ceil(remaining / 60000)} minutes",
                    style="dim",
                )
            )

    def _render_question(self, question: QuestionRecord) -> None:
        self._console.print(Text(question.question, style="bold green"))
        if question.description:
            self._console.print(Text(question.description, style="dim"))
        self._console.print()

    def _render_feedback(
        self, question: QuestionRecord, record: AnswerRecord
    ) -> None:
        if record.is_correct:
            self._console.print("\n[bold green]✅ Correct![/]")
        else:
            self._console.print("\n[bold red]❌ Incorrect.[/]")
            self._render_expected(question)
        if question.explanation:
            border = "green" if record.is_correct else "red"
            self._console.print(
                Panel(
                    question.explanation,
                    title="Explanation",
                    border_style=border,
                )
            )

    def _render_expected(self, question: QuestionRecord) -> None:
        if question.type is QuestionType.FREE_FORM:
            if not question.sample_answers:
                return
            self._console.print("[blue]Sample correct answers:[/]")
            labels: Sequence[str] = question.sample_answers
        else:
            self._console.print("[blue]Correct answer(s):[/]")
            labels = question.correct_labels()
        for label in labels:
            self._console.print(Text(f"  • {label}", style="green"))

    def _render_summary(self, result: SessionResult) -> None:
        self._console.print()
        self._console.rule(Text("Quiz Completed!", style="bold magenta"))

        label, style = grade_for(result.percentage)
        overview = Table(
            show_header=False,
            box=box.MINIMAL_DOUBLE_HEAD,
            expand=False,
        )
        overview.add_column("Metric", style="bold")
        overview.add_column("Value", justify="right")
        overview.add_row(
            "Score",
            f"{result.correct_answers}/{result.total_questions} "
            f"({result.percentage}%)",
        )
        overview.add_row(
            "Answered", f"{result.answered}/{result.total_questions}"
        )
        overview.add_row("Time taken", format_duration(result.duration))
        overview.add_row("Grade", Text(label, style=style))
        self._console.print(overview)
