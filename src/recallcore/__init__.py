"""
RecallCore - Review Session Scheduling Core
===========================================

A reusable scheduling core for flashcard-like "prompts": it decides which
prompts are due, presents them one at a time through a finite-state review
session, hands each answer to a host-supplied policy and tracks completion.

Key Features:
    - Day-granular due filtering with an injectable ordering strategy
      (random shuffle by default)
    - Pure transition function over idle / session.prompt /
      session.feedback / completed
    - Exposure timing and an optional per-prompt answer timeout
    - Copy-on-write Prompt Store: failed events never half-apply
    - JSON snapshots of the Prompt Store and Review Queue

Main Packages:
    - core: dates, prompt store, queue builder, answer pipeline, machine, scheduler
    - storage: snapshot export / restore
    - utils: JSON compatibility layer

Quick Start:
    from recallcore import create_scheduler, boolean_answer_policy

    scheduler = create_scheduler(boolean_answer_policy)
    scheduler.add_prompts([{"id": "1", "next_review_date": "2024-01-01", "front": "Q"}])
    scheduler.start()
    scheduler.answer(False)

Version: 0.1.0
"""

__version__ = "0.1.0"

from .core import (
    AnswerStatistics,
    ConflictPolicy,
    DuplicateIdentifierError,
    RecallCoreError,
    ReviewContext,
    ReviewScheduler,
    ReviewState,
    boolean_answer_policy,
    change_date,
    create_scheduler,
    get_todays_date,
    preserve_order,
    shuffle_prompts,
)

__all__ = [
    "__version__",
    "AnswerStatistics",
    "ConflictPolicy",
    "DuplicateIdentifierError",
    "RecallCoreError",
    "ReviewContext",
    "ReviewScheduler",
    "ReviewState",
    "boolean_answer_policy",
    "change_date",
    "create_scheduler",
    "get_todays_date",
    "preserve_order",
    "shuffle_prompts",
]
