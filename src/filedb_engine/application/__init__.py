"""Application layer for the document engine.

The application layer orchestrates domain logic to fulfill use cases.

Exports:
    DocumentStore:
        - DocumentStore: Owns one document, its locking and persistence
        - HistoryEntry: One executed operation in the store's history
        - ReadWriteLock: Writer-preferring readers/writer lock
    PlanRunner:
        - PlanRunner: Executes a planner-produced batch of operations
"""

from filedb_engine.application.document_store import (
    DocumentStore,
    HistoryEntry,
    ReadWriteLock,
)
from filedb_engine.application.plan_runner import PlanRunner

__all__ = [
    "DocumentStore",
    "HistoryEntry",
    "ReadWriteLock",
    "PlanRunner",
]
