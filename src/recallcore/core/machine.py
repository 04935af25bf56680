"""
Review Session State Machine
============================
Pure transition function for a review session.

States::

    idle ──START──▶ session.prompt ──ANSWER / timeout──▶ session.feedback
     ▲                   │  ▲                                   │
     │        guard:     │  └───────────────PROMPT──────────────┘
     │   review complete ▼
     └──RESTART──── completed

    idle and completed also accept ADD_PROMPTS, UPDATE_PROMPTS and
    REMOVE_PROMPTS, each followed by a full queue rebuild.

``transition(state, context, event, options)`` never performs side effects:
it returns the next state, the next context and a tuple of effects
(schedule / cancel the answer timeout) for the caller to apply. An event the
current state does not handle yields ``handled=False`` and leaves both state
and context as they were. Exceptions raised by host policies propagate before
anything is returned, so a failed event never half-applies.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Tuple, Union

from loguru import logger

from .answer_pipeline import AnswerPolicy, process_answer
from .context import ReviewContext, is_review_complete
from .exceptions import UnknownEventError, ValidationError
from .prompt_store import ConflictPolicy, Prompt, PromptId
from .review_queue import OrderingStrategy, build_review_queue, shuffle_prompts


# ═══════════════════════════════════════════════════════════════════════
# States
# ═══════════════════════════════════════════════════════════════════════

class ReviewState(str, Enum):
    IDLE = "idle"
    SESSION_PROMPT = "session.prompt"
    SESSION_FEEDBACK = "session.feedback"
    COMPLETED = "completed"

    @property
    def in_session(self) -> bool:
        return self in (ReviewState.SESSION_PROMPT, ReviewState.SESSION_FEEDBACK)

    def matches(self, value: Union[str, "ReviewState"]) -> bool:
        """True for the exact state or any parent of it ("session")."""
        value = value.value if isinstance(value, ReviewState) else value
        return self.value == value or self.value.startswith(f"{value}.")


# ═══════════════════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════════════════

class EventType(str, Enum):
    START = "START"
    ADD_PROMPTS = "ADD_PROMPTS"
    UPDATE_PROMPTS = "UPDATE_PROMPTS"
    REMOVE_PROMPTS = "REMOVE_PROMPTS"
    ANSWER = "ANSWER"
    PROMPT = "PROMPT"
    RESTART = "RESTART"
    ANSWER_TIMEOUT = "ANSWER_TIMEOUT"  # internal, raised by the timer


@dataclass(frozen=True)
class Start:
    type: ClassVar[EventType] = EventType.START


@dataclass(frozen=True)
class AddPrompts:
    prompts: Tuple[Prompt, ...] = ()
    type: ClassVar[EventType] = EventType.ADD_PROMPTS


@dataclass(frozen=True)
class UpdatePrompts:
    prompts: Tuple[Prompt, ...] = ()
    type: ClassVar[EventType] = EventType.UPDATE_PROMPTS


@dataclass(frozen=True)
class RemovePrompts:
    prompt_ids: Tuple[PromptId, ...] = ()
    type: ClassVar[EventType] = EventType.REMOVE_PROMPTS


@dataclass(frozen=True)
class Answer:
    answer: Any = None
    type: ClassVar[EventType] = EventType.ANSWER


@dataclass(frozen=True)
class NextPrompt:
    type: ClassVar[EventType] = EventType.PROMPT


@dataclass(frozen=True)
class Restart:
    type: ClassVar[EventType] = EventType.RESTART


@dataclass(frozen=True)
class AnswerTimeout:
    presentation: int
    type: ClassVar[EventType] = EventType.ANSWER_TIMEOUT


ReviewEvent = Union[Start, AddPrompts, UpdatePrompts, RemovePrompts, Answer, NextPrompt, Restart, AnswerTimeout]


def event_from_dict(raw: Mapping[str, Any]) -> ReviewEvent:
    """
    Build an event from its structured form, e.g.
    ``{"type": "REMOVE_PROMPTS", "prompt_ids": ["1"]}``.

    Raises:
        UnknownEventError: If ``type`` is missing or not a host event.
    """
    kind = raw.get("type")
    if kind == EventType.START.value:
        return Start()
    if kind == EventType.ADD_PROMPTS.value:
        return AddPrompts(tuple(raw.get("prompts") or ()))
    if kind == EventType.UPDATE_PROMPTS.value:
        return UpdatePrompts(tuple(raw.get("prompts") or ()))
    if kind == EventType.REMOVE_PROMPTS.value:
        ids = raw.get("prompt_ids", raw.get("promptIds")) or ()
        return RemovePrompts(tuple(ids))
    if kind == EventType.ANSWER.value:
        return Answer(raw.get("answer"))
    if kind == EventType.PROMPT.value:
        return NextPrompt()
    if kind == EventType.RESTART.value:
        return Restart()
    raise UnknownEventError(
        kind,
        supported_events=[t.value for t in EventType if t is not EventType.ANSWER_TIMEOUT],
    )


# ═══════════════════════════════════════════════════════════════════════
# Effects
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ScheduleAnswerTimeout:
    presentation: int
    delay: float  # seconds


@dataclass(frozen=True)
class CancelAnswerTimeout:
    presentation: int


Effect = Union[ScheduleAnswerTimeout, CancelAnswerTimeout]


# ═══════════════════════════════════════════════════════════════════════
# Options & result
# ═══════════════════════════════════════════════════════════════════════

def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class MachineOptions:
    """
    Host policies and environment for the transition function.

    Fields:
        process_answer: Required answer policy.
        order_prompts: Ordering strategy applied on every rebuild.
        time_to_answer: Seconds before an unanswered prompt times out; None disables.
        on_conflict: How ADD_PROMPTS treats ids already in the store.
        clock: Epoch milliseconds, used for exposure timing.
        today: Returns the day used by the due filter; None means ``date.today()``.
    """
    process_answer: AnswerPolicy
    order_prompts: OrderingStrategy = shuffle_prompts
    time_to_answer: Optional[float] = None
    on_conflict: ConflictPolicy = ConflictPolicy.REJECT
    clock: Callable[[], float] = _now_ms
    today: Optional[Callable[[], date]] = None

    def current_day(self) -> Optional[date]:
        return self.today() if self.today is not None else None


@dataclass(frozen=True)
class Transition:
    state: ReviewState
    context: ReviewContext
    effects: Tuple[Effect, ...] = ()
    handled: bool = True


# ═══════════════════════════════════════════════════════════════════════
# Actions
# ═══════════════════════════════════════════════════════════════════════

def _rebuild(context: ReviewContext, options: MachineOptions) -> ReviewContext:
    queue = build_review_queue(context.prompts, options.order_prompts, options.current_day())
    return context.evolve(review_queue=queue)


def _add_prompts(context: ReviewContext, event: AddPrompts, options: MachineOptions) -> ReviewContext:
    prompts = context.prompts.add(event.prompts, options.on_conflict)
    return _rebuild(context.evolve(prompts=prompts), options)


def _update_prompts(context: ReviewContext, event: UpdatePrompts, options: MachineOptions) -> ReviewContext:
    prompts = context.prompts.update(event.prompts)
    return _rebuild(context.evolve(prompts=prompts), options)


def _remove_prompts(context: ReviewContext, event: RemovePrompts, options: MachineOptions) -> ReviewContext:
    removed = set(event.prompt_ids)
    context = context.evolve(
        prompts=context.prompts.remove(removed),
        review_queue=tuple(pid for pid in context.review_queue if pid not in removed),
    )
    return _rebuild(context, options)


def _enter_prompt(context: ReviewContext, options: MachineOptions) -> Transition:
    """Entry of ``session.prompt``: complete the review or present the queue head."""
    if is_review_complete(context):
        return Transition(ReviewState.COMPLETED, context)

    head, rest = context.review_queue[0], context.review_queue[1:]
    try:
        current = context.prompts[head]
    except KeyError:
        raise ValidationError(field="review_queue", reason=f"queued id '{head}' is not in the prompt store")

    presentation = context.presentation + 1
    context = context.evolve(
        current_prompt=current,
        review_queue=rest,
        prompt_first_displayed=options.clock(),
        presentation=presentation,
    )
    effects: Tuple[Effect, ...] = ()
    if options.time_to_answer:
        effects = (ScheduleAnswerTimeout(presentation, options.time_to_answer),)
    return Transition(ReviewState.SESSION_PROMPT, context, effects)


def _answer(context: ReviewContext, answer: Any, options: MachineOptions) -> Transition:
    context, _, statistics = process_answer(
        context,
        answer,
        options.process_answer,
        options.clock(),
        options.current_day(),
    )
    logger.debug(f"Processed answer after {statistics.time:.0f} ms.")
    presentation = context.presentation
    context = context.evolve(current_prompt=None, prompt_first_displayed=None)
    return Transition(
        ReviewState.SESSION_FEEDBACK,
        context,
        (CancelAnswerTimeout(presentation),),
    )


# ═══════════════════════════════════════════════════════════════════════
# Transition function
# ═══════════════════════════════════════════════════════════════════════

_PROMPT_EVENTS: Dict[EventType, Callable[[ReviewContext, Any, MachineOptions], ReviewContext]] = {
    EventType.ADD_PROMPTS: _add_prompts,
    EventType.UPDATE_PROMPTS: _update_prompts,
    EventType.REMOVE_PROMPTS: _remove_prompts,
}


def _ignored(state: ReviewState, context: ReviewContext) -> Transition:
    return Transition(state, context, handled=False)


def transition(
    state: ReviewState,
    context: ReviewContext,
    event: ReviewEvent,
    options: MachineOptions,
) -> Transition:
    """Compute the result of delivering ``event`` in ``state``."""
    kind = event.type

    if state in (ReviewState.IDLE, ReviewState.COMPLETED):
        action = _PROMPT_EVENTS.get(kind)
        if action is not None:
            return Transition(state, action(context, event, options))
        if state is ReviewState.IDLE and kind is EventType.START:
            return _enter_prompt(context, options)
        if state is ReviewState.COMPLETED and kind is EventType.RESTART:
            return Transition(ReviewState.IDLE, context)
        return _ignored(state, context)

    if state is ReviewState.SESSION_PROMPT:
        if kind is EventType.ANSWER:
            return _answer(context, event.answer, options)
        if kind is EventType.ANSWER_TIMEOUT and event.presentation == context.presentation:
            return _answer(context, None, options)
        return _ignored(state, context)

    if state is ReviewState.SESSION_FEEDBACK and kind is EventType.PROMPT:
        return _enter_prompt(context, options)

    return _ignored(state, context)
