"""
Example: Review Session
=======================

Drives a scheduler through a short session with the reference
"remembered / forgot" policy: load a deck, edit a card, answer every due
prompt and persist the result.
"""

from pathlib import Path

from loguru import logger

from recallcore import (
    boolean_answer_policy,
    change_date,
    create_scheduler,
    get_todays_date,
)
from recallcore.core.logging_config import configure_logging
from recallcore.storage import export_snapshot, save_snapshot


def main():
    """Run one review session end to end."""

    configure_logging(level="DEBUG")
    today = get_todays_date()

    # -------------------------------------------------------------------------
    # 1. Load a deck
    # -------------------------------------------------------------------------

    scheduler = create_scheduler(boolean_answer_policy, time_to_answer=30)
    scheduler.subscribe(lambda record: logger.info(
        f"{record.event.type.value}: {record.previous.value} -> {record.state.value}"
    ))

    scheduler.add_prompts([
        {"id": "1", "next_review_date": change_date(today, -5).isoformat(), "front": "Front", "back": "Back", "iteration": 2},
        {"id": "2", "next_review_date": today.isoformat(), "front": "Front", "back": "Back", "iteration": 2},
        {"id": "3", "next_review_date": change_date(today, 2).isoformat(), "front": "Front", "back": "Back", "iteration": 2},
        {"id": "4", "next_review_date": change_date(today, -1).isoformat(), "front": "Front", "back": "Back", "iteration": 2},
    ])
    logger.info(f"Due: {list(scheduler.review_queue)}")

    # -------------------------------------------------------------------------
    # 2. Edit a card before starting
    # -------------------------------------------------------------------------

    scheduler.update_prompts([{"id": "1", "front": "Card 1 Front", "back": "Card 1 Back"}])

    # -------------------------------------------------------------------------
    # 3. Review: forget the first card once, remember everything else
    # -------------------------------------------------------------------------

    scheduler.start()
    forgotten = set()
    while scheduler.matches("session"):
        prompt = scheduler.current_prompt
        remembered = prompt["id"] != "1" or "1" in forgotten
        forgotten.add(prompt["id"])
        logger.info(f"Prompt {prompt['id']}: {prompt['front']} -> {'remembered' if remembered else 'forgot'}")
        scheduler.answer(remembered)
        scheduler.next_prompt()

    # -------------------------------------------------------------------------
    # 4. Persist
    # -------------------------------------------------------------------------

    path = save_snapshot(export_snapshot(scheduler), Path("./data/review_snapshot.json"))
    scheduler.stop()
    logger.info(f"Session {scheduler.state.value}; snapshot at {path}")


if __name__ == "__main__":
    main()
