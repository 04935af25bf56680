"""
RecallCore Core Module
======================
The review state machine and everything it is built from.

Leaf utilities:
    - dates: today at 00:00, day offsets, review-date parsing, due predicate

Session data:
    - PromptStore: id -> prompt mapping (copy-on-write add/update/remove)
    - build_review_queue: due filter, date pre-sort, ordering strategy
    - process_answer: timing statistics, policy call, same-session re-queue

State machine:
    - transition: pure (state, context, event) -> (state, context, effects)
    - ReviewScheduler: owns state/context, applies timeouts, notifies listeners

Configuration:
    Settings are loaded from config.yaml (key ``recall``) via the config
    module, with RECALL_* environment overrides.
"""

from .exceptions import (
    RecallCoreError,
    IrrecoverableError,
    ConfigurationError,
    ValidationError,
    InvalidReviewDateError,
    DuplicateIdentifierError,
    QueueOrderingError,
    SnapshotError,
    UnknownEventError,
)
from .dates import (
    change_date,
    date_already_passed,
    get_todays_date,
    normalize_to_day,
    parse_review_date,
)
from .prompt_store import ConflictPolicy, Prompt, PromptId, PromptStore
from .review_queue import (
    ShuffleOrdering,
    build_review_queue,
    get_ordering_strategy,
    preserve_order,
    shuffle_prompts,
)
from .context import ReviewContext, is_review_complete
from .answer_pipeline import AnswerStatistics, process_answer
from .machine import (
    Answer,
    AddPrompts,
    AnswerTimeout,
    EventType,
    MachineOptions,
    NextPrompt,
    RemovePrompts,
    Restart,
    ReviewState,
    Start,
    Transition,
    UpdatePrompts,
    event_from_dict,
    transition,
)
from .timers import AsyncioTimerScheduler, ThreadingTimerScheduler, default_timer_scheduler
from .policies import boolean_answer_policy
from .scheduler import ReviewScheduler, TransitionRecord, create_scheduler

__all__ = [
    # Errors
    "RecallCoreError",
    "IrrecoverableError",
    "ConfigurationError",
    "ValidationError",
    "InvalidReviewDateError",
    "DuplicateIdentifierError",
    "QueueOrderingError",
    "SnapshotError",
    "UnknownEventError",
    # Dates
    "change_date",
    "date_already_passed",
    "get_todays_date",
    "normalize_to_day",
    "parse_review_date",
    # Store & queue
    "ConflictPolicy",
    "Prompt",
    "PromptId",
    "PromptStore",
    "ShuffleOrdering",
    "build_review_queue",
    "get_ordering_strategy",
    "preserve_order",
    "shuffle_prompts",
    # Context & pipeline
    "ReviewContext",
    "is_review_complete",
    "AnswerStatistics",
    "process_answer",
    # Machine
    "Answer",
    "AddPrompts",
    "AnswerTimeout",
    "EventType",
    "MachineOptions",
    "NextPrompt",
    "RemovePrompts",
    "Restart",
    "ReviewState",
    "Start",
    "Transition",
    "UpdatePrompts",
    "event_from_dict",
    "transition",
    # Service
    "AsyncioTimerScheduler",
    "ThreadingTimerScheduler",
    "default_timer_scheduler",
    "boolean_answer_policy",
    "ReviewScheduler",
    "TransitionRecord",
    "create_scheduler",
]
