"""
Review Scheduler Service
========================
Owns one review session: the current state, the context, the pending answer
timeout and the listeners.

Each ``send`` runs the pure transition function under a re-entrant lock,
commits the result only if it returned normally, applies the returned effects
and then notifies listeners. A timer firing from another thread therefore
never interleaves with a host event, and a policy failure leaves state and
context exactly as they were.

Usage:
    from recallcore import create_scheduler, boolean_answer_policy

    scheduler = create_scheduler(boolean_answer_policy, time_to_answer=10)
    scheduler.add_prompts([{"id": "1", "next_review_date": "2024-01-01", "front": "Q"}])
    scheduler.start()
    scheduler.answer(True)
    scheduler.next_prompt()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from loguru import logger

from .answer_pipeline import AnswerPolicy
from .config import RecallConfig, get_config
from .context import ReviewContext
from .machine import (
    AddPrompts,
    Answer,
    AnswerTimeout,
    CancelAnswerTimeout,
    MachineOptions,
    NextPrompt,
    RemovePrompts,
    Restart,
    ReviewEvent,
    ReviewState,
    ScheduleAnswerTimeout,
    Start,
    Transition,
    UpdatePrompts,
    event_from_dict,
    transition,
)
from .prompt_store import ConflictPolicy, Prompt, PromptId, PromptStore
from .review_queue import OrderingStrategy, build_review_queue, get_ordering_strategy
from .timers import TimerHandle, TimerScheduler, default_timer_scheduler


@dataclass(frozen=True)
class TransitionRecord:
    """What listeners receive after every handled event."""
    previous: ReviewState
    state: ReviewState
    event: ReviewEvent
    context: ReviewContext

    @property
    def changed(self) -> bool:
        return self.previous is not self.state


Listener = Callable[[TransitionRecord], None]


class ReviewScheduler:
    """
    Event-driven review session.

    Args:
        process_answer: Host policy ``(prompt, answer, statistics) -> prompt``.
        order_prompts_to_review: Ordering strategy; defaults to the configured
            one (a shuffle unless ``review.ordering`` says otherwise).
        time_to_answer: Seconds before an unanswered prompt times out.
        prompts: Initial batch, validated like ADD_PROMPTS.
        on_conflict: ADD_PROMPTS policy for ids already stored.
        config: RecallConfig; defaults to ``get_config()``.
        timers: Timer scheduler for the answer timeout.
        clock: Epoch-milliseconds clock used for exposure timing.
        today: Day provider for the due filter.
    """

    def __init__(
        self,
        process_answer: AnswerPolicy,
        order_prompts_to_review: Optional[OrderingStrategy] = None,
        time_to_answer: Optional[float] = None,
        *,
        prompts: Optional[Iterable[Mapping[str, Any]]] = None,
        on_conflict: Optional[Union[ConflictPolicy, str]] = None,
        config: Optional[RecallConfig] = None,
        timers: Optional[TimerScheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        if not callable(process_answer):
            raise TypeError("process_answer must be callable")

        review = (config or get_config()).review
        if order_prompts_to_review is None:
            order_prompts_to_review = get_ordering_strategy(review.ordering, review.shuffle_seed)
        if time_to_answer is None:
            time_to_answer = review.time_to_answer

        option_kwargs: Dict[str, Any] = {}
        if clock is not None:
            option_kwargs["clock"] = clock
        self._options = MachineOptions(
            process_answer=process_answer,
            order_prompts=order_prompts_to_review,
            time_to_answer=time_to_answer,
            on_conflict=ConflictPolicy(on_conflict or review.on_conflict),
            today=today,
            **option_kwargs,
        )

        self._lock = threading.RLock()
        self._timers = timers or default_timer_scheduler()
        self._timeout: Optional[Tuple[int, TimerHandle]] = None
        self._listeners: Dict[int, Listener] = {}
        self._next_listener_id = 0

        self._state = ReviewState.IDLE
        self._context = ReviewContext()
        if prompts is not None:
            self._context = transition(self._state, self._context, AddPrompts(tuple(prompts)), self._options).context

    # ══════════════════════════════════════════════════════════════════
    # Observable state
    # ══════════════════════════════════════════════════════════════════

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def context(self) -> ReviewContext:
        return self._context

    @property
    def options(self) -> MachineOptions:
        return self._options

    @property
    def prompts(self) -> PromptStore:
        return self._context.prompts

    @property
    def review_queue(self) -> Tuple[PromptId, ...]:
        return self._context.review_queue

    @property
    def current_prompt(self) -> Optional[Prompt]:
        return self._context.current_prompt

    def matches(self, value: Union[str, ReviewState]) -> bool:
        return self._state.matches(value)

    def snapshot(self) -> Dict[str, Any]:
        """State value plus a plain-data copy of the context."""
        with self._lock:
            return {"state": self._state.value, "context": self._context.to_dict()}

    # ══════════════════════════════════════════════════════════════════
    # Event delivery
    # ══════════════════════════════════════════════════════════════════

    def send(self, event: Union[ReviewEvent, Mapping[str, Any], str]) -> ReviewState:
        """
        Deliver one event and return the resulting state.

        Accepts event objects, structured dicts (``{"type": "ANSWER",
        "answer": True}``) or a bare type name for payload-less events.
        Events the current state does not handle are ignored.
        """
        if isinstance(event, str):
            event = event_from_dict({"type": event})
        elif isinstance(event, Mapping):
            event = event_from_dict(event)

        with self._lock:
            previous = self._state
            try:
                result = transition(previous, self._context, event, self._options)
            except Exception as e:
                logger.error(f"Event {event.type.value} failed in state '{previous.value}': {e}")
                raise

            if not result.handled:
                logger.debug(f"Ignored {event.type.value} in state '{previous.value}'.")
                return previous

            self._commit(result)
            record = TransitionRecord(previous, result.state, event, result.context)
            self._log_transition(record)
            listeners = list(self._listeners.values())

        for listener in listeners:
            try:
                listener(record)
            except Exception as e:
                logger.error(f"Review listener {listener!r} failed: {e}")

        return record.state

    def start(self) -> ReviewState:
        return self.send(Start())

    def add_prompts(self, prompts: Iterable[Mapping[str, Any]]) -> ReviewState:
        return self.send(AddPrompts(tuple(prompts)))

    def update_prompts(self, prompts: Iterable[Mapping[str, Any]]) -> ReviewState:
        return self.send(UpdatePrompts(tuple(prompts)))

    def remove_prompts(self, prompt_ids: Iterable[PromptId]) -> ReviewState:
        return self.send(RemovePrompts(tuple(prompt_ids)))

    def answer(self, answer: Any = None) -> ReviewState:
        return self.send(Answer(answer))

    def next_prompt(self) -> ReviewState:
        return self.send(NextPrompt())

    def restart(self) -> ReviewState:
        return self.send(Restart())

    # ══════════════════════════════════════════════════════════════════
    # Listeners
    # ══════════════════════════════════════════════════════════════════

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return unsubscribe

    # ══════════════════════════════════════════════════════════════════
    # Lifecycle
    # ══════════════════════════════════════════════════════════════════

    def stop(self) -> None:
        """Cancel a pending answer timeout, if any."""
        with self._lock:
            self._cancel_timeout()

    @classmethod
    def from_snapshot(cls, snapshot: Any, process_answer: AnswerPolicy, **kwargs: Any) -> "ReviewScheduler":
        """Restore a scheduler from a ``ReviewSnapshot`` (see ``recallcore.storage``)."""
        from recallcore.storage.snapshot import restore_context

        scheduler = cls(process_answer, **kwargs)
        state, context = restore_context(snapshot)
        with scheduler._lock:
            scheduler._state = state
            scheduler._context = context
        return scheduler

    def rebuild_queue(self) -> Tuple[PromptId, ...]:
        """Re-filter and re-order the whole store outside of a session."""
        with self._lock:
            if self._state.in_session:
                logger.debug("Queue rebuild skipped during an active session.")
                return self._context.review_queue
            queue = build_review_queue(
                self._context.prompts,
                self._options.order_prompts,
                self._options.current_day(),
            )
            self._context = self._context.evolve(review_queue=queue)
            return queue

    # ══════════════════════════════════════════════════════════════════
    # Internal
    # ══════════════════════════════════════════════════════════════════

    def _commit(self, result: Transition) -> None:
        """Install the new state and context, then apply effects (must hold lock)."""
        self._state = result.state
        self._context = result.context
        for effect in result.effects:
            if isinstance(effect, CancelAnswerTimeout):
                self._cancel_timeout(effect.presentation)
            elif isinstance(effect, ScheduleAnswerTimeout):
                self._schedule_timeout(effect)

    def _schedule_timeout(self, effect: ScheduleAnswerTimeout) -> None:
        self._cancel_timeout()
        presentation = effect.presentation
        handle = self._timers.call_later(effect.delay, lambda: self._fire_timeout(presentation))
        self._timeout = (presentation, handle)

    def _cancel_timeout(self, presentation: Optional[int] = None) -> None:
        if self._timeout is None:
            return
        pending, handle = self._timeout
        if presentation is not None and pending != presentation:
            return
        handle.cancel()
        self._timeout = None

    def _fire_timeout(self, presentation: int) -> None:
        with self._lock:
            if self._timeout is not None and self._timeout[0] == presentation:
                self._timeout = None
        logger.debug(f"Answer timeout fired for presentation {presentation}.")
        try:
            self.send(AnswerTimeout(presentation))
        except Exception:
            logger.opt(exception=True).error("Timed-out answer could not be processed.")
            raise

    def _log_transition(self, record: TransitionRecord) -> None:
        if record.previous is ReviewState.IDLE and record.state.in_session:
            logger.info(f"Review session started with {len(record.context.review_queue) + 1} prompt(s) due.")
        elif record.state is ReviewState.COMPLETED and record.changed:
            logger.info("Review session completed.")
        logger.debug(
            f"{record.event.type.value}: {record.previous.value} -> {record.state.value} "
            f"(queue={len(record.context.review_queue)})"
        )


def create_scheduler(
    process_answer: AnswerPolicy,
    order_prompts_to_review: Optional[OrderingStrategy] = None,
    time_to_answer: Optional[float] = None,
    **kwargs: Any,
) -> ReviewScheduler:
    """Build a ``ReviewScheduler``; keyword arguments are passed through."""
    return ReviewScheduler(process_answer, order_prompts_to_review, time_to_answer, **kwargs)
