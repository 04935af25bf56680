"""
Test doubles for RecallCore
===========================
Deterministic stand-ins for the wall clock and the answer-timeout timers, so
timing statistics and timeouts can be driven step by step.

Usage:
    from tests.mocks import FakeClock, ManualTimerScheduler
"""

from .manual_timers import FakeClock, ManualTimerHandle, ManualTimerScheduler

__all__ = ["FakeClock", "ManualTimerHandle", "ManualTimerScheduler"]
