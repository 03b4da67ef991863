"""Outbound adapters - implementations of outbound ports.

These adapters implement document persistence: a JSON file on disk and an
in-memory store for tests and ephemeral use.
"""

from filedb_engine.adapters.outbound.json_file_storage import JsonFileDocumentStorage
from filedb_engine.adapters.outbound.memory_storage import InMemoryDocumentStorage

__all__ = [
    "JsonFileDocumentStorage",
    "InMemoryDocumentStorage",
]
