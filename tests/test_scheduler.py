"""
Tests for the Review Scheduler service (scheduler.py)
=====================================================
Covers event delivery, the answer timeout, listener notification and the
guarantee that a failed event leaves state and context untouched.
"""

from collections import Counter

import pytest

from recallcore import create_scheduler
from recallcore.core.config import RecallConfig, ReviewConfig
from recallcore.core.dates import get_todays_date
from recallcore.core.exceptions import (
    DuplicateIdentifierError,
    QueueOrderingError,
    UnknownEventError,
)
from recallcore.core.machine import AnswerTimeout, ReviewState
from recallcore.core.policies import boolean_answer_policy
from recallcore.core.review_queue import ShuffleOrdering, preserve_order


# ═══════════════════════════════════════════════════════════════════════
# Construction
# ═══════════════════════════════════════════════════════════════════════

class TestConstruction:

    def test_starts_idle_and_empty(self, make_scheduler):
        scheduler = make_scheduler()
        assert scheduler.state is ReviewState.IDLE
        assert len(scheduler.prompts) == 0
        assert scheduler.review_queue == ()
        assert scheduler.current_prompt is None

    def test_process_answer_required(self):
        with pytest.raises(TypeError):
            create_scheduler(None)

    def test_initial_prompts_build_queue(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        assert scheduler.review_queue == ("1", "4", "2")

    def test_initial_duplicates_raise(self, make_scheduler, prompt_factory):
        with pytest.raises(DuplicateIdentifierError):
            make_scheduler(prompts=[prompt_factory("a", 0), prompt_factory("a", 1)])

    def test_defaults_come_from_config(self, timers):
        config = RecallConfig(review=ReviewConfig(time_to_answer=7, on_conflict="replace", shuffle_seed=5))
        scheduler = create_scheduler(boolean_answer_policy, config=config, timers=timers)
        assert scheduler.options.time_to_answer == 7
        assert scheduler.options.on_conflict.value == "replace"
        assert isinstance(scheduler.options.order_prompts, ShuffleOrdering)

    def test_explicit_arguments_win(self, timers):
        config = RecallConfig(review=ReviewConfig(time_to_answer=7))
        scheduler = create_scheduler(boolean_answer_policy, preserve_order, 3, config=config, timers=timers)
        assert scheduler.options.time_to_answer == 3
        assert scheduler.options.order_prompts is preserve_order


# ═══════════════════════════════════════════════════════════════════════
# Prompt management
# ═══════════════════════════════════════════════════════════════════════

class TestPromptEvents:

    def test_add_excludes_future_prompts(self, sample_prompts):
        scheduler = create_scheduler(boolean_answer_policy)
        scheduler.add_prompts(sample_prompts)
        assert Counter(scheduler.review_queue) == Counter(["1", "2", "4"])

    def test_duplicate_add_rejected_and_state_kept(self, make_scheduler, sample_prompts, prompt_factory):
        scheduler = make_scheduler(prompts=sample_prompts)
        before = scheduler.context
        with pytest.raises(DuplicateIdentifierError):
            scheduler.add_prompts([prompt_factory("9", 0), prompt_factory("1", 0)])
        assert scheduler.context is before
        assert "9" not in scheduler.prompts

    def test_keep_existing_policy(self, make_scheduler, sample_prompts, prompt_factory):
        scheduler = make_scheduler(prompts=sample_prompts, on_conflict="keep_existing")
        scheduler.add_prompts([prompt_factory("1", 0, front="new")])
        assert scheduler.prompts["1"]["front"] == "Front"

    def test_update_changes_only_given_fields(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        before = dict(scheduler.prompts["1"])
        scheduler.update_prompts([{"id": "1", "front": "X"}])
        assert scheduler.prompts["1"] == {**before, "front": "X"}
        assert scheduler.review_queue == ("1", "4", "2")

    def test_update_rebuilds_queue(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.update_prompts([{"id": "1", "next_review_date": "2999-01-01"}])
        assert scheduler.review_queue == ("4", "2")

    def test_remove_purges_store_and_queue(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.remove_prompts(["4", "3"])
        assert set(scheduler.prompts) == {"1", "2"}
        assert scheduler.review_queue == ("1", "2")

    def test_structured_events(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler()
        scheduler.send({"type": "ADD_PROMPTS", "prompts": sample_prompts})
        scheduler.send({"type": "REMOVE_PROMPTS", "promptIds": ["1"]})
        assert scheduler.send("START") is ReviewState.SESSION_PROMPT
        assert scheduler.current_prompt["id"] == "4"

    def test_unknown_event_raises(self, make_scheduler):
        with pytest.raises(UnknownEventError):
            make_scheduler().send({"type": "SKIP"})

    def test_broken_ordering_strategy(self, sample_prompts, timers):
        scheduler = create_scheduler(boolean_answer_policy, lambda prompts: [], timers=timers)
        with pytest.raises(QueueOrderingError):
            scheduler.add_prompts(sample_prompts)
        assert len(scheduler.prompts) == 0

    def test_rebuild_queue(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        assert scheduler.rebuild_queue() == ("1", "4", "2")
        scheduler.start()
        assert scheduler.rebuild_queue() == ("4", "2")


# ═══════════════════════════════════════════════════════════════════════
# Session flow
# ═══════════════════════════════════════════════════════════════════════

class TestSession:

    def test_start_with_nothing_due_completes(self, make_scheduler, prompt_factory):
        scheduler = make_scheduler(prompts=[prompt_factory("a", 3)])
        assert scheduler.start() is ReviewState.COMPLETED

    def test_present_answer_advance(self, make_scheduler, sample_prompts, clock):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.start()
        assert scheduler.matches("session")
        assert scheduler.current_prompt["id"] == "1"

        assert scheduler.answer(True) is ReviewState.SESSION_FEEDBACK
        assert scheduler.current_prompt is None
        assert scheduler.next_prompt() is ReviewState.SESSION_PROMPT
        assert scheduler.current_prompt["id"] == "4"

    def test_wrong_answer_returns_in_same_session(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.start()
        scheduler.answer(False)
        assert scheduler.prompts["1"]["next_review_date"] == get_todays_date().isoformat()
        assert scheduler.review_queue == ("4", "2", "1")

    def test_statistics_time(self, make_scheduler, sample_prompts, clock):
        received = []

        def policy(prompt, answer, statistics):
            received.append(statistics.time)
            return boolean_answer_policy(prompt, answer, statistics)

        scheduler = make_scheduler(policy, prompts=sample_prompts)
        scheduler.start()
        clock.tick(2_750)
        scheduler.answer(True)
        assert received == [2_750]

    def test_invalid_events_are_ignored(self, make_scheduler, sample_prompts, prompt_factory):
        scheduler = make_scheduler(prompts=sample_prompts)
        assert scheduler.next_prompt() is ReviewState.IDLE
        assert scheduler.restart() is ReviewState.IDLE
        scheduler.start()
        before = scheduler.context
        assert scheduler.add_prompts([prompt_factory("9", 0)]) is ReviewState.SESSION_PROMPT
        assert scheduler.next_prompt() is ReviewState.SESSION_PROMPT
        assert scheduler.context is before

    def test_policy_failure_leaves_state_unchanged(self, make_scheduler, sample_prompts):
        def broken(prompt, answer, statistics):
            raise ValueError("cannot schedule")

        scheduler = make_scheduler(broken, prompts=sample_prompts)
        scheduler.start()
        before = scheduler.context
        with pytest.raises(ValueError):
            scheduler.answer(True)
        assert scheduler.state is ReviewState.SESSION_PROMPT
        assert scheduler.context is before

    def test_completes_and_restarts(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.start()
        answered = []
        while scheduler.state is not ReviewState.COMPLETED:
            answered.append(scheduler.current_prompt["id"])
            scheduler.answer(True)
            scheduler.next_prompt()
        # "1" was five days overdue: one correct answer still leaves it due
        assert answered == ["1", "4", "2", "1"]
        assert scheduler.state is ReviewState.COMPLETED
        assert scheduler.review_queue == ()

        scheduler.update_prompts([{"id": "3", "next_review_date": get_todays_date().isoformat()}])
        assert scheduler.review_queue == ("3",)
        assert scheduler.restart() is ReviewState.IDLE
        scheduler.start()
        assert scheduler.current_prompt["id"] == "3"


# ═══════════════════════════════════════════════════════════════════════
# Answer timeout
# ═══════════════════════════════════════════════════════════════════════

class TestAnswerTimeout:

    def test_no_timer_without_time_to_answer(self, make_scheduler, sample_prompts, timers):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.start()
        assert timers.handles == []

    def test_timeout_answers_with_none(self, make_scheduler, sample_prompts, timers):
        answers = []

        def policy(prompt, answer, statistics):
            answers.append(answer)
            return boolean_answer_policy(prompt, answer, statistics)

        scheduler = make_scheduler(policy, prompts=sample_prompts, time_to_answer=5)
        scheduler.start()
        assert timers.advance(4.9) == 0
        assert timers.advance(0.2) == 1
        assert answers == [None]
        assert scheduler.state is ReviewState.SESSION_FEEDBACK
        assert scheduler.review_queue == ("4", "2", "1")

    def test_answer_cancels_timeout(self, make_scheduler, sample_prompts, timers):
        scheduler = make_scheduler(prompts=sample_prompts, time_to_answer=5)
        scheduler.start()
        scheduler.answer(True)
        assert timers.pending == []
        assert timers.handles[0].cancelled

    def test_each_presentation_gets_its_own_timer(self, make_scheduler, sample_prompts, timers):
        scheduler = make_scheduler(prompts=sample_prompts, time_to_answer=5)
        scheduler.start()
        scheduler.answer(True)
        scheduler.next_prompt()
        assert len(timers.handles) == 2
        assert len(timers.pending) == 1

    def test_late_timer_is_ignored(self, make_scheduler, sample_prompts, timers):
        scheduler = make_scheduler(prompts=sample_prompts, time_to_answer=5)
        scheduler.start()
        first = timers.handles[0]
        scheduler.answer(True)
        scheduler.next_prompt()
        current = scheduler.context

        first.fire()
        assert scheduler.state is ReviewState.SESSION_PROMPT
        assert scheduler.context is current

    def test_stale_token_sent_directly_is_ignored(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts, time_to_answer=5)
        scheduler.start()
        assert scheduler.send(AnswerTimeout(presentation=99)) is ReviewState.SESSION_PROMPT

    def test_timer_failure_propagates_to_timer(self, make_scheduler, sample_prompts, timers):
        def broken(prompt, answer, statistics):
            raise RuntimeError("policy down")

        scheduler = make_scheduler(broken, prompts=sample_prompts, time_to_answer=1)
        scheduler.start()
        with pytest.raises(RuntimeError):
            timers.advance(1)
        assert scheduler.state is ReviewState.SESSION_PROMPT

    def test_stop_cancels_pending(self, make_scheduler, sample_prompts, timers):
        scheduler = make_scheduler(prompts=sample_prompts, time_to_answer=5)
        scheduler.start()
        scheduler.stop()
        assert timers.pending == []
        assert timers.advance(10) == 0


# ═══════════════════════════════════════════════════════════════════════
# Listeners
# ═══════════════════════════════════════════════════════════════════════

class TestListeners:

    def test_receives_handled_transitions(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        records = []
        scheduler.subscribe(records.append)

        scheduler.start()
        scheduler.next_prompt()  # ignored
        scheduler.answer(True)

        assert [(r.previous, r.state) for r in records] == [
            (ReviewState.IDLE, ReviewState.SESSION_PROMPT),
            (ReviewState.SESSION_PROMPT, ReviewState.SESSION_FEEDBACK),
        ]
        assert records[0].changed
        assert records[1].context is scheduler.context

    def test_unsubscribe(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        records = []
        unsubscribe = scheduler.subscribe(records.append)
        unsubscribe()
        scheduler.start()
        assert records == []

    def test_failing_listener_is_isolated(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        records = []

        def bad_listener(record):
            raise RuntimeError("listener bug")

        scheduler.subscribe(bad_listener)
        scheduler.subscribe(records.append)
        assert scheduler.start() is ReviewState.SESSION_PROMPT
        assert len(records) == 1

    def test_snapshot(self, make_scheduler, sample_prompts):
        scheduler = make_scheduler(prompts=sample_prompts)
        scheduler.start()
        snap = scheduler.snapshot()
        assert snap["state"] == "session.prompt"
        assert snap["context"]["review_queue"] == ["4", "2"]
        assert snap["context"]["current_prompt"]["id"] == "1"
