"""
Answer Processing Pipeline
==========================
Adapts a raw answer plus timing statistics into an updated prompt record.

Steps:
    1. Measure exposure time: ``now - prompt_first_displayed`` (milliseconds).
    2. Call the host policy with a shallow copy of the current prompt, the
       raw answer (None when the answer timed out) and the statistics.
    3. Store the returned prompt under the current prompt's id (the
       id is pinned: a policy cannot rename the record).
    4. If the returned ``next_review_date`` is already due, append the id to
       the tail of the current queue so it comes back in the same session.

The queue is neither rebuilt nor reshuffled here. The policy's output is not
validated: a malformed date simply never counts as due.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Protocol, Tuple

from loguru import logger

from .context import ReviewContext
from .prompt_store import NEXT_REVIEW_FIELD, Prompt
from .dates import date_already_passed


@dataclass(frozen=True)
class AnswerStatistics:
    """Ephemeral measurements handed to the answer policy."""
    time: float  # milliseconds between display and answer processing

    @property
    def seconds(self) -> float:
        return self.time / 1000.0


class AnswerPolicy(Protocol):
    """Computes the updated prompt (expected to set ``next_review_date``)."""

    def __call__(self, prompt: Prompt, answer: Optional[Any], statistics: AnswerStatistics) -> Prompt:
        ...


def measure(context: ReviewContext, now_ms: float) -> AnswerStatistics:
    started = context.prompt_first_displayed
    elapsed = now_ms - started if started is not None else 0.0
    return AnswerStatistics(time=max(0.0, elapsed))


def process_answer(
    context: ReviewContext,
    answer: Optional[Any],
    policy: AnswerPolicy,
    now_ms: float,
    today: Optional[date] = None,
) -> Tuple[ReviewContext, Prompt, AnswerStatistics]:
    """
    Run the pipeline for the current prompt.

    Returns the new context (current prompt still set; clearing it is the
    machine's job), the policy's prompt and the statistics it was given.
    Policy exceptions propagate untouched and ``context`` is not modified.
    """
    current = context.current_prompt
    if current is None:
        raise RuntimeError("process_answer called without a current prompt")

    prompt_id = current["id"]
    statistics = measure(context, now_ms)
    updated = policy(dict(current), answer, statistics)
    if updated.get("id") != prompt_id:
        logger.warning(
            f"Answer policy changed prompt id {prompt_id!r} to {updated.get('id')!r}; keeping {prompt_id!r}."
        )
        updated = {**updated, "id": prompt_id}

    prompts = context.prompts.put(prompt_id, updated)
    review_queue = context.review_queue
    if date_already_passed(updated.get(NEXT_REVIEW_FIELD), today):
        review_queue = review_queue + (prompt_id,)

    return context.evolve(prompts=prompts, review_queue=review_queue), updated, statistics
