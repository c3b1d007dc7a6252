from .config import (
    ConfigOverrides,
    LoadResult,
    QuizConfig,
    QuizConfigError,
    load_config,
)
from .history import HistoryStore
from .prompts import ConsolePrompter, Prompter, parse_selection, parse_yes_no
from .questions import (
    AnswerResolutionError,
    Option,
    QuestionBankError,
    QuestionRecord,
    QuestionType,
    load_questions,
    question_stats,
    resolve_option_index,
)
from .report import compute_statistics, render_history, type_breakdown
from .results import (
    AnswerRecord,
    SessionResult,
    build_session_result,
    round_percentage,
)
from .session import (
    QuizSession,
    QuizSessionError,
    SessionDeadline,
    UnsupportedQuestionTypeError,
)
from .validators import (
    SelfAssessment,
    validate_free_form,
    validate_multiple_choice,
    validate_single_choice,
)

__all__ = [
    "ConfigOverrides",
    "LoadResult",
    "QuizConfig",
    "QuizConfigError",
    "load_config",
    "HistoryStore",
    "ConsolePrompter",
    "Prompter",
    "parse_selection",
    "parse_yes_no",
    "AnswerResolutionError",
    "Option",
    "QuestionBankError",
    "QuestionRecord",
    "QuestionType",
    "load_questions",
    "question_stats",
    "resolve_option_index",
    "compute_statistics",
    "render_history",
    "type_breakdown",
    "AnswerRecord",
    "SessionResult",
    "build_session_result",
    "round_percentage",
    "QuizSession",
    "QuizSessionError",
    "SessionDeadline",
    "UnsupportedQuestionTypeError",
    "SelfAssessment",
    "validate_free_form",
    "validate_multiple_choice",
    "validate_single_choice",
]
