"""Command-line entry point for quiz-cli."""

from __future__ import annotations

import argparse
import logging
import sys
from importlib import metadata
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from quiz_cli.core import config_templates
from quiz_cli.core import workspace as workspace_mod
from quiz_cli.core.config_templates import ConfigTemplateError
from quiz_cli.core.logging import configure_logger
from quiz_cli.core.workspace import WorkspaceError
from quiz_cli.quizzer.config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    load_config,
)
from quiz_cli.quizzer.history import HistoryStore
from quiz_cli.quizzer.prompts import ConsolePrompter, InputProvider
from quiz_cli.quizzer.questions import (
    QuestionBankError,
    QuestionRecord,
    load_questions,
    question_stats,
)
from quiz_cli.quizzer.report import render_history
from quiz_cli.quizzer.session import QuizSession, QuizSessionError

_LOGGER_NAME = "quiz_cli"
_LIST_WIDTH = 80


def _version() -> str:
    try:
        return metadata.version("quiz-cli")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz",
        description="Interactive quiz sessions over a JSON question bank.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Print the installed version and exit.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Override the workspace root (defaults to QUIZ_CLI_DATA_HOME or "
            "~/.quiz-cli-data)."
        ),
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )
    sub = parser.add_subparsers(dest="command")

    sp_start = sub.add_parser("start", help="Start a new quiz session")
    _add_file_option(sp_start)
    _add_category_option(sp_start)
    sp_start.add_argument(
        "-n",
        "--number",
        type=int,
        help="Number of questions to ask (0 = all).",
    )
    sp_start.add_argument(
        "-t",
        "--time",
        dest="time_limit",
        type=int,
        help="Time limit in minutes (0 = no limit).",
    )
    sp_start.add_argument(
        "-s",
        "--shuffle",
        action="store_true",
        help="Randomize question order.",
    )
    sp_start.add_argument(
        "-r",
        "--retry",
        action="store_true",
        help="Allow retrying incorrect answers.",
    )

    sp_list = sub.add_parser("list", help="List available questions")
    _add_file_option(sp_list)
    _add_category_option(sp_list)
    sp_list.add_argument(
        "--stats",
        action="store_true",
        help="Show question statistics instead of the listing.",
    )

    sp_validate = sub.add_parser(
        "validate", help="Validate the question file format"
    )
    _add_file_option(sp_validate)

    sp_results = sub.add_parser("results", help="View quiz results history")
    sp_results.add_argument(
        "-l",
        "--latest",
        action="store_true",
        help="Show only the latest result with a breakdown.",
    )
    sp_results.add_argument(
        "-c",
        "--clear",
        action="store_true",
        help="Clear all results history.",
    )
    sp_results.add_argument(
        "--export",
        type=Path,
        metavar="PATH",
        help="Write the history as CSV to PATH.",
    )

    sp_init = sub.add_parser(
        "init", help="Bootstrap the workspace and config template"
    )
    sp_init.add_argument(
        "--path",
        type=Path,
        help="Workspace root to create (defaults to --workspace).",
    )
    sp_init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing quiz.toml.",
    )
    sp_init.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )

    sub.add_parser("version", help="Print the installed version")
    return parser


def _add_file_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--file",
        type=Path,
        help="Path to the questions file (default: ./data/questions.json).",
    )


def _add_category_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--category",
        help="Filter questions by category ('all' disables filtering).",
    )


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    if args.version or args.command == "version":
        console.print(_version())
        return 0
    if args.command is None:
        parser.print_help()
        return 2
    if args.command == "init":
        return _cmd_init(args, console)

    loaded = _load(args, console)
    if loaded is None:
        return 2
    load_result, logger = loaded
    logger.debug(
        "quiz CLI invoked",
        extra={
            "command": args.command,
            "config_path": load_result.config_path,
        },
    )

    if args.command == "start":
        return _cmd_start(load_result, console, logger, input_provider)
    if args.command == "list":
        return _cmd_list(args, load_result, console, logger)
    if args.command == "validate":
        return _cmd_validate(load_result, console, logger)
    if args.command == "results":
        return _cmd_results(args, load_result, console, logger)
    parser.print_help()  # pragma: no cover - argparse rejects others
    return 2


def _overrides_from_args(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        questions_file=getattr(args, "file", None),
        category=getattr(args, "category", None),
        shuffle=True if getattr(args, "shuffle", False) else None,
        limit=getattr(args, "number", None),
        time_limit_minutes=getattr(args, "time_limit", None),
        allow_retry=True if getattr(args, "retry", False) else None,
        log_level=args.log_level,
    )


def _load(
    args: argparse.Namespace, console: Console
) -> Optional[tuple[LoadResult, logging.Logger]]:
    try:
        load_result = load_config(
            config_path=args.config,
            overrides=_overrides_from_args(args),
            workspace_path=args.workspace,
        )
    except QuizConfigError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return None
    logger, _ = configure_logger(
        _LOGGER_NAME,
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.log_level,
        verbose=args.verbose,
    )
    return load_result, logger


def _load_bank(
    load_result: LoadResult,
    logger: logging.Logger,
    *,
    use_selection: bool,
) -> list[QuestionRecord]:
    config = load_result.config
    return load_questions(
        config.questions_file,
        category=config.category,
        shuffle=config.shuffle if use_selection else False,
        limit=config.limit if use_selection else 0,
        known_categories=config.known_categories,
        logger=logger.getChild("questions"),
    )


def _cmd_start(
    load_result: LoadResult,
    console: Console,
    logger: logging.Logger,
    input_provider: Optional[InputProvider],
) -> int:
    config = load_result.config
    try:
        questions = _load_bank(load_result, logger, use_selection=True)
    except QuestionBankError as exc:
        logger.error("Could not load questions: %s", exc)
        console.print(f"[red]Error starting quiz:[/] {exc}")
        return 1
    if not questions:
        console.print("[red]No questions found matching the criteria.[/]")
        return 1

    history = HistoryStore(
        config.history_file,
        max_entries=config.history_max_entries,
        logger=logger.getChild("history"),
    )
    try:
        session = QuizSession(
            questions,
            prompter=ConsolePrompter(console, input_provider),
            history=history,
            time_limit_ms=config.time_limit_ms,
            allow_retry=config.allow_retry,
            console=console,
            logger=logger.getChild("session"),
        )
        session.start()
    except QuizSessionError as exc:
        logger.exception("Quiz session aborted")
        console.print(f"[red]Error during quiz session:[/] {exc}")
        return 1
    except (EOFError, KeyboardInterrupt):
        logger.warning("Quiz session interrupted")
        console.print("\n[yellow]Quiz aborted.[/]")
        return 1
    except Exception as exc:
        logger.exception("Quiz session failed")
        console.print(f"[red]Error during quiz session:[/] {exc}")
        return 1
    return 0


def _cmd_list(
    args: argparse.Namespace,
    load_result: LoadResult,
    console: Console,
    logger: logging.Logger,
) -> int:
    try:
        questions = _load_bank(load_result, logger, use_selection=False)
    except QuestionBankError as exc:
        logger.error("Could not list questions: %s", exc)
        console.print(f"[red]Error listing questions:[/] {exc}")
        return 1
    if args.stats:
        _print_stats(console, questions)
    else:
        _print_listing(console, questions)
    return 0


def _print_listing(
    console: Console, questions: Sequence[QuestionRecord]
) -> None:
    console.print(f"\n[blue]Found {len(questions)} questions:[/]\n")
    for number, question in enumerate(questions, start=1):
        line = Text(f"{number}. ")
        if question.category:
            line.append(f"[{question.category.upper()}] ", style="cyan")
        line.append(f"({question.type.value}) ", style="yellow")
        text = question.question
        if len(text) > _LIST_WIDTH:
            text = text[:_LIST_WIDTH] + "..."
        line.append(text)
        console.print(line)


def _print_stats(
    console: Console, questions: Sequence[QuestionRecord]
) -> None:
    stats = question_stats(questions)
    console.print(f"\n[blue]Total questions: {stats.total}[/]")
    for title, counts in (
        ("By Type", stats.by_type),
        ("By Category", stats.by_category),
    ):
        table = Table(title=title, box=box.SIMPLE, expand=False)
        table.add_column("Name")
        table.add_column("Count", justify="right", style="cyan")
        for name, count in sorted(counts.items()):
            table.add_row(name, str(count))
        console.print(table)


def _cmd_validate(
    load_result: LoadResult, console: Console, logger: logging.Logger
) -> int:
    try:
        questions = _load_bank(load_result, logger, use_selection=False)
    except QuestionBankError as exc:
        logger.error("Question file failed validation: %s", exc)
        console.print(f"[red]✗ Validation failed:[/] {exc}")
        return 1
    console.print(
        f"[green]✓ Questions file is valid[/] ({len(questions)} questions)"
    )
    return 0


def _cmd_results(
    args: argparse.Namespace,
    load_result: LoadResult,
    console: Console,
    logger: logging.Logger,
) -> int:
    config = load_result.config
    store = HistoryStore(
        config.history_file,
        max_entries=config.history_max_entries,
        logger=logger.getChild("history"),
    )
    if args.clear:
        if not store.clear():
            console.print("[red]Could not clear results history.[/]")
            return 1
        console.print("[green]Results history cleared.[/]")
        return 0
    if args.export is not None:
        try:
            rows = store.export_csv(args.export)
        except OSError as exc:
            logger.error("Could not export results: %s", exc)
            console.print(f"[red]Error exporting results:[/] {exc}")
            return 1
        if rows == 0:
            console.print("[yellow]No quiz results found.[/]")
            return 0
        console.print(
            f"[green]Exported {rows} result(s) to {args.export}[/]"
        )
        return 0
    render_history(console, store.load_results(), latest_only=args.latest)
    return 0


def _cmd_init(args: argparse.Namespace, console: Console) -> int:
    try:
        layout = workspace_mod.ensure_workspace(
            path=args.path or args.workspace
        )
    except WorkspaceError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1

    target = layout.path_for("config") / CONFIG_FILENAME
    template = config_templates.get_template("quiz")
    if target.exists() and not args.force:
        status = "exists"
    else:
        try:
            template.write(target, overwrite=args.force)
        except ConfigTemplateError as exc:
            console.print(f"[red]Error:[/] {exc}")
            return 1
        status = "written"

    if args.quiet:
        return 0
    home_status = "created" if layout.created.get("home") else "exists"
    console.print(f"Workspace ready at {layout.home} ({home_status})")
    width = max(len(name) for name in layout.directories)
    for name, directory in layout.items():
        state = "created" if layout.created.get(name) else "exists"
        console.print(f"  {name.ljust(width)}  {directory} ({state})")
    console.print(f"Config: {target} ({status})")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    sys.exit(main())
