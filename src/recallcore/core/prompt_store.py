"""
Prompt Store
============
Mapping from prompt id to prompt record.

A prompt is a host-defined ``dict`` that carries at least ``id`` and
``next_review_date``. The store is copy-on-write: ``add``, ``update``,
``remove`` and ``put`` return a new store and leave the receiver untouched, so
the state machine can compute a complete next context before committing any
of it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from loguru import logger

from .exceptions import DuplicateIdentifierError, ValidationError

PromptId = str
Prompt = Dict[str, Any]

ID_FIELD = "id"
NEXT_REVIEW_FIELD = "next_review_date"


class ConflictPolicy(str, Enum):
    """What ``add`` does with an incoming id that is already stored."""
    REJECT = "reject"                # raise DuplicateIdentifierError
    KEEP_EXISTING = "keep_existing"  # stored entry wins, incoming is dropped
    REPLACE = "replace"              # incoming entry wins


def get_prompt_id(prompt: Mapping[str, Any]) -> PromptId:
    try:
        return prompt[ID_FIELD]
    except (KeyError, TypeError):
        raise ValidationError(field=ID_FIELD, reason="prompt has no id", value=prompt)


def get_prompt_map(prompts: Iterable[Mapping[str, Any]]) -> Dict[PromptId, Prompt]:
    """
    Index a batch of prompts by id.

    Raises:
        ValidationError: If a prompt lacks ``id`` or ``next_review_date``.
        DuplicateIdentifierError: If two prompts in the batch share an id.
    """
    prompt_map: Dict[PromptId, Prompt] = {}
    for prompt in prompts:
        prompt_id = get_prompt_id(prompt)
        if NEXT_REVIEW_FIELD not in prompt:
            raise ValidationError(
                field=NEXT_REVIEW_FIELD,
                reason=f"prompt '{prompt_id}' has no next review date",
            )
        if prompt_id in prompt_map:
            raise DuplicateIdentifierError(prompt_id, source="batch")
        prompt_map[prompt_id] = dict(prompt)
    return prompt_map


class PromptStore(Mapping[PromptId, Prompt]):
    """Read-only mapping of prompts; mutations return a new store."""

    __slots__ = ("_prompts",)

    def __init__(self, prompts: Optional[Mapping[PromptId, Prompt]] = None):
        self._prompts: Dict[PromptId, Prompt] = dict(prompts or {})

    @classmethod
    def from_prompts(cls, prompts: Iterable[Mapping[str, Any]]) -> "PromptStore":
        return cls(get_prompt_map(prompts))

    # ── Mapping protocol ─────────────────────────────────────────────

    def __getitem__(self, prompt_id: PromptId) -> Prompt:
        return self._prompts[prompt_id]

    def __iter__(self) -> Iterator[PromptId]:
        return iter(self._prompts)

    def __len__(self) -> int:
        return len(self._prompts)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PromptStore):
            return self._prompts == other._prompts
        if isinstance(other, Mapping):
            return self._prompts == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"PromptStore({len(self._prompts)} prompts)"

    # ── Mutations (copy-on-write) ────────────────────────────────────

    def add(
        self,
        prompts: Iterable[Mapping[str, Any]],
        on_conflict: Union[ConflictPolicy, str] = ConflictPolicy.REJECT,
    ) -> "PromptStore":
        """
        Insert a batch of prompts.

        Duplicates inside the batch always fail. Ids that already exist are
        handled by ``on_conflict``. Nothing is inserted when an error is raised.
        """
        policy = ConflictPolicy(on_conflict)
        incoming = get_prompt_map(prompts)
        collisions: List[PromptId] = [pid for pid in incoming if pid in self._prompts]

        if collisions and policy is ConflictPolicy.REJECT:
            raise DuplicateIdentifierError(collisions[0], source="store")

        merged = dict(self._prompts)
        for prompt_id, prompt in incoming.items():
            if policy is ConflictPolicy.KEEP_EXISTING:
                merged.setdefault(prompt_id, prompt)
            else:
                merged[prompt_id] = prompt

        if collisions:
            logger.debug(
                f"Resolved {len(collisions)} id collision(s) with policy '{policy.value}'."
            )
        return PromptStore(merged)

    def update(self, partials: Iterable[Mapping[str, Any]]) -> "PromptStore":
        """Shallow-merge each partial over the stored prompt with the same id."""
        prompts = dict(self._prompts)
        for partial in partials:
            prompt_id = get_prompt_id(partial)
            existing = prompts.get(prompt_id)
            if existing is None:
                logger.debug(f"Ignoring update for unknown prompt '{prompt_id}'.")
                continue
            prompts[prompt_id] = {**existing, **partial}
        return PromptStore(prompts)

    def remove(self, prompt_ids: Iterable[PromptId]) -> "PromptStore":
        prompts = dict(self._prompts)
        for prompt_id in prompt_ids:
            prompts.pop(prompt_id, None)
        return PromptStore(prompts)

    def put(self, prompt_id: PromptId, prompt: Prompt) -> "PromptStore":
        """Replace (or set) the record stored under ``prompt_id``."""
        prompts = dict(self._prompts)
        prompts[prompt_id] = prompt
        return PromptStore(prompts)

    def to_dict(self) -> Dict[PromptId, Prompt]:
        return {pid: dict(prompt) for pid, prompt in self._prompts.items()}
