import sys
import os
from pathlib import Path
from typing import Callable, Dict, List

import pytest


# Ensure local src/ package imports work without editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for path in (SRC, ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow-running (use pytest -m 'not slow' to skip)"
    )


# =============================================================================
# Configuration Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Reset config state and RECALL_* overrides between tests."""
    from recallcore.core.config import reset_config

    for key in list(os.environ):
        if key.startswith("RECALL_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


# =============================================================================
# Prompt Fixtures
# =============================================================================

def make_prompt(prompt_id: str, days: int, **data) -> Dict:
    """Prompt due ``days`` away from today (negative = overdue)."""
    from recallcore.core.dates import change_date, get_todays_date

    prompt = {
        "id": prompt_id,
        "next_review_date": change_date(get_todays_date(), days).isoformat(),
        "front": "Front",
        "back": "Back",
        "iteration": 2,
    }
    prompt.update(data)
    return prompt


@pytest.fixture
def prompt_factory() -> Callable[..., Dict]:
    return make_prompt


@pytest.fixture
def sample_prompts() -> List[Dict]:
    """The four-prompt deck: overdue by 5, due today, due in 2 days, overdue by 1."""
    return [
        make_prompt("1", -5),
        make_prompt("2", 0),
        make_prompt("3", 2),
        make_prompt("4", -1),
    ]


# =============================================================================
# Scheduler Fixtures
# =============================================================================

@pytest.fixture
def clock():
    from tests.mocks import FakeClock
    return FakeClock()


@pytest.fixture
def timers():
    from tests.mocks import ManualTimerScheduler
    return ManualTimerScheduler()


@pytest.fixture
def make_scheduler(clock, timers):
    """Factory for schedulers wired to the fake clock and manual timers."""
    from recallcore.core.policies import boolean_answer_policy
    from recallcore.core.review_queue import preserve_order
    from recallcore.core.scheduler import ReviewScheduler

    def _make(process_answer=boolean_answer_policy, order=preserve_order, **kwargs):
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("timers", timers)
        return ReviewScheduler(process_answer, order, **kwargs)

    return _make
