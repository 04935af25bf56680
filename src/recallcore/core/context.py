"""
Review context: everything the state machine owns besides the state tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from .prompt_store import Prompt, PromptId, PromptStore


@dataclass(frozen=True)
class ReviewContext:
    """
    Immutable machine context.

    Fields:
        prompts: The Prompt Store.
        review_queue: Ids awaiting presentation, head first.
        current_prompt: Prompt being shown; None outside ``session.prompt``.
        prompt_first_displayed: Epoch milliseconds at which ``current_prompt``
            became current.
        presentation: Counter bumped on every dequeue; ties an answer timeout
            to the presentation that scheduled it.
    """
    prompts: PromptStore = field(default_factory=PromptStore)
    review_queue: Tuple[PromptId, ...] = ()
    current_prompt: Optional[Prompt] = None
    prompt_first_displayed: Optional[float] = None
    presentation: int = 0

    def evolve(self, **changes: Any) -> "ReviewContext":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompts": self.prompts.to_dict(),
            "review_queue": list(self.review_queue),
            "current_prompt": dict(self.current_prompt) if self.current_prompt is not None else None,
            "prompt_first_displayed": self.prompt_first_displayed,
        }


def is_review_complete(context: ReviewContext) -> bool:
    """Guard: nothing left to present and nothing being presented."""
    return not context.review_queue and context.current_prompt is None
