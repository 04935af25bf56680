"""
Reference answer policy.

Hosts normally bring their own spaced-repetition logic. This one is the
simple "remembered / forgot" rule used throughout the examples and tests:

- ``answer is True``: push ``next_review_date`` forward by ``iteration`` days
  and square ``iteration`` (2 → 4 → 16 ...).
- anything else (False, None on timeout): due again today.
"""

from __future__ import annotations

from typing import Any, Optional

from .answer_pipeline import AnswerStatistics
from .dates import change_date, get_todays_date, to_iso
from .prompt_store import NEXT_REVIEW_FIELD, Prompt


def boolean_answer_policy(prompt: Prompt, answer: Optional[Any], statistics: AnswerStatistics) -> Prompt:
    prompt = dict(prompt)

    if answer is True:
        iteration = prompt.get("iteration", 1)
        prompt[NEXT_REVIEW_FIELD] = to_iso(change_date(prompt[NEXT_REVIEW_FIELD], iteration))
        prompt["iteration"] = iteration ** 2
    else:
        prompt[NEXT_REVIEW_FIELD] = to_iso(get_todays_date())

    return prompt
