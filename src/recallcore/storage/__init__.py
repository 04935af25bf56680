"""
RecallCore Storage Layer
========================

Snapshot export and restore of the Prompt Store and Review Queue.

Modules:
    snapshot: ReviewSnapshot, JSON (de)serialization, file save/load
"""

from .snapshot import (
    ReviewSnapshot,
    export_snapshot,
    restore_context,
    dumps_snapshot,
    loads_snapshot,
    save_snapshot,
    load_snapshot,
)

__all__ = [
    "ReviewSnapshot",
    "export_snapshot",
    "restore_context",
    "dumps_snapshot",
    "loads_snapshot",
    "save_snapshot",
    "load_snapshot",
]
