"""
Review Queue Builder
====================
Turns the Prompt Store into the ordered list of ids to present.

Pipeline::

    PromptStore ──▶ due filter ──▶ sort by next_review_date ──▶ ordering strategy ──▶ queue

The ordering strategy is any callable taking the due prompts (earliest first)
and returning their ids in presentation order. It may reorder freely but must
neither invent nor drop ids; the builder checks this.
"""

from __future__ import annotations

import random
from collections import Counter
from datetime import date
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from .dates import date_already_passed, review_timestamp
from .exceptions import ConfigurationError, QueueOrderingError
from .prompt_store import NEXT_REVIEW_FIELD, Prompt, PromptId, PromptStore, get_prompt_id


class OrderingStrategy(Protocol):
    """Orders the due prompts; must return a permutation of their ids."""

    def __call__(self, prompts: Sequence[Prompt]) -> List[PromptId]:
        ...


def shuffle_prompts(prompts: Sequence[Prompt], rng: Optional[random.Random] = None) -> List[PromptId]:
    """Uniformly random permutation of the prompt ids (Fisher–Yates)."""
    rand = rng.random if rng is not None else random.random
    ids = [get_prompt_id(prompt) for prompt in prompts]

    for i in range(len(ids) - 1, 0, -1):
        j = int(rand() * (i + 1))
        ids[i], ids[j] = ids[j], ids[i]

    return ids


class ShuffleOrdering:
    """Seedable shuffle strategy. Without a seed it draws from the module RNG."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed) if seed is not None else None

    def __call__(self, prompts: Sequence[Prompt]) -> List[PromptId]:
        return shuffle_prompts(prompts, self._rng)

    def __repr__(self) -> str:
        return f"ShuffleOrdering(seed={self.seed!r})"


def preserve_order(prompts: Sequence[Prompt]) -> List[PromptId]:
    """Deterministic strategy: keep the earliest-due-first pre-ordering."""
    return [get_prompt_id(prompt) for prompt in prompts]


def get_ordering_strategy(name: str, seed: Optional[int] = None) -> OrderingStrategy:
    """Resolve a configured strategy name."""
    if name == "shuffle":
        return ShuffleOrdering(seed)
    if name == "date_ascending":
        return preserve_order
    raise ConfigurationError(
        config_key="review.ordering",
        reason=f"unknown ordering strategy {name!r}",
    )


def is_due(prompt: Prompt, today: Optional[date] = None) -> bool:
    return date_already_passed(prompt.get(NEXT_REVIEW_FIELD), today)


def due_prompts(store: PromptStore, today: Optional[date] = None) -> List[Prompt]:
    """Due prompts, earliest ``next_review_date`` first (stable for ties)."""
    due = [prompt for prompt in store.values() if is_due(prompt, today)]
    due.sort(key=lambda prompt: review_timestamp(prompt[NEXT_REVIEW_FIELD]))
    return due


def _strategy_name(strategy: Callable) -> str:
    return getattr(strategy, "__name__", type(strategy).__name__)


def build_review_queue(
    store: PromptStore,
    order_prompts: OrderingStrategy = shuffle_prompts,
    today: Optional[date] = None,
) -> Tuple[PromptId, ...]:
    """
    Rebuild the whole review queue from the store.

    Raises:
        QueueOrderingError: If ``order_prompts`` returns anything other than
            a permutation of the due ids.
    """
    due = due_prompts(store, today)
    ordered = list(order_prompts(due))

    expected = Counter(get_prompt_id(prompt) for prompt in due)
    actual = Counter(ordered)
    if expected != actual:
        raise QueueOrderingError(
            strategy=_strategy_name(order_prompts),
            missing=sorted((expected - actual).elements(), key=str),
            unexpected=sorted((actual - expected).elements(), key=str),
        )
    return tuple(ordered)
