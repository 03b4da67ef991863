"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: planner payload parsing and the REST API
- Outbound adapters: document persistence (JSON file, in-memory)
"""

from filedb_engine.adapters.outbound import (
    InMemoryDocumentStorage,
    JsonFileDocumentStorage,
)

__all__ = [
    # Outbound adapters
    "JsonFileDocumentStorage",
    "InMemoryDocumentStorage",
]
