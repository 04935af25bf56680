"""
Review Snapshots
================

Plain-data capture of a scheduler's Prompt Store and Review Queue, so a host
can persist them wherever it likes and restore a scheduler later.

Usage:
    ```python
    from recallcore.storage import export_snapshot, save_snapshot, load_snapshot

    save_snapshot(export_snapshot(scheduler), "./data/review.json")

    restored = ReviewScheduler.from_snapshot(load_snapshot("./data/review.json"), policy)
    ```

Restoring never resumes a presentation: a snapshot taken mid-session comes
back ``idle`` with its current prompt put back at the head of the queue. Queue
ids missing from the store are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from loguru import logger

from recallcore.core.context import ReviewContext
from recallcore.core.exceptions import RecallCoreError, SnapshotError
from recallcore.core.machine import ReviewState
from recallcore.core.prompt_store import Prompt, PromptId, PromptStore, get_prompt_map
from recallcore.utils.json_compat import JSONDecodeError, dump, dumps, load, loads

if TYPE_CHECKING:
    from recallcore.core.scheduler import ReviewScheduler

SNAPSHOT_VERSION = 1


@dataclass
class ReviewSnapshot:
    """Serializable view of a review session."""
    state: str = ReviewState.IDLE.value
    prompts: Dict[PromptId, Prompt] = field(default_factory=dict)
    review_queue: List[PromptId] = field(default_factory=list)
    current_prompt: Optional[Prompt] = None
    prompt_first_displayed: Optional[float] = None
    version: int = SNAPSHOT_VERSION
    exported_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "exported_at": self.exported_at,
            "state": self.state,
            "prompts": self.prompts,
            "review_queue": self.review_queue,
            "current_prompt": self.current_prompt,
            "prompt_first_displayed": self.prompt_first_displayed,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ReviewSnapshot":
        if not isinstance(data, dict):
            raise SnapshotError("snapshot must be a JSON object", {"type": type(data).__name__})
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise SnapshotError(f"unsupported snapshot version {version!r}", {"version": version})

        prompts = data.get("prompts") or {}
        queue = data.get("review_queue") or []
        if not isinstance(prompts, dict) or not isinstance(queue, list):
            raise SnapshotError("'prompts' must be an object and 'review_queue' a list")

        return cls(
            state=data.get("state", ReviewState.IDLE.value),
            prompts=prompts,
            review_queue=queue,
            current_prompt=data.get("current_prompt"),
            prompt_first_displayed=data.get("prompt_first_displayed"),
            version=version,
            exported_at=data.get("exported_at") or datetime.now(timezone.utc).isoformat(),
        )


def export_snapshot(scheduler: "ReviewScheduler") -> ReviewSnapshot:
    """Capture the scheduler's state and context."""
    captured = scheduler.snapshot()
    context = captured["context"]
    return ReviewSnapshot(
        state=captured["state"],
        prompts=context["prompts"],
        review_queue=context["review_queue"],
        current_prompt=context["current_prompt"],
        prompt_first_displayed=context["prompt_first_displayed"],
    )


def restore_context(snapshot: Union[ReviewSnapshot, Dict[str, Any]]) -> Tuple[ReviewState, ReviewContext]:
    """
    Rebuild a machine state and context from a snapshot.

    Raises:
        SnapshotError: If the snapshot is malformed.
    """
    if not isinstance(snapshot, ReviewSnapshot):
        snapshot = ReviewSnapshot.from_dict(snapshot)

    try:
        state = ReviewState(snapshot.state)
        prompt_map = get_prompt_map(snapshot.prompts.values())
    except (ValueError, RecallCoreError) as e:
        raise SnapshotError(str(e)) from e

    mismatched = [key for key, prompt in snapshot.prompts.items() if prompt.get("id") != key]
    if mismatched:
        raise SnapshotError("prompt keys do not match their ids", {"keys": mismatched})

    queue: List[PromptId] = list(snapshot.review_queue)
    if state.in_session:
        current = snapshot.current_prompt
        if current is not None and current.get("id") in prompt_map:
            queue.insert(0, current["id"])
        state = ReviewState.IDLE

    dropped = [pid for pid in queue if pid not in prompt_map]
    if dropped:
        logger.warning(f"Dropping {len(dropped)} queued id(s) missing from the snapshot store: {dropped}")
        queue = [pid for pid in queue if pid in prompt_map]

    context = ReviewContext(prompts=PromptStore(prompt_map), review_queue=tuple(queue))
    logger.debug(f"Restored snapshot: state={state.value}, prompts={len(prompt_map)}, queue={len(queue)}")
    return state, context


def dumps_snapshot(snapshot: ReviewSnapshot, indent: Optional[int] = None) -> str:
    kwargs = {"indent": indent} if indent else {}
    return dumps(snapshot.to_dict(), **kwargs)


def loads_snapshot(payload: Union[str, bytes]) -> ReviewSnapshot:
    try:
        data = loads(payload)
    except JSONDecodeError as e:
        raise SnapshotError(f"invalid JSON: {e}") from e
    return ReviewSnapshot.from_dict(data)


def save_snapshot(snapshot: ReviewSnapshot, path: Union[str, Path]) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        dump(snapshot.to_dict(), f, indent=2)
    logger.info(f"Saved review snapshot with {len(snapshot.prompts)} prompt(s) to {output}")
    return output


def load_snapshot(path: Union[str, Path]) -> ReviewSnapshot:
    source = Path(path)
    if not source.exists():
        raise SnapshotError(f"file not found: {source}", {"path": str(source)})
    try:
        with open(source, encoding="utf-8") as f:
            data = load(f)
    except JSONDecodeError as e:
        raise SnapshotError(f"invalid JSON in {source}: {e}", {"path": str(source)}) from e
    return ReviewSnapshot.from_dict(data)
