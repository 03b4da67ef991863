"""Ports layer - interface contracts (hexagonal architecture).

Ports define the boundaries between the domain and the outside world:
- Inbound ports: what callers can ask of the engine
- Outbound ports: what the engine needs from its storage
"""

from filedb_engine.ports.inbound import (
    ConflictError,
    DocumentEngine,
    DocumentFormatError,
    EngineError,
    NotFoundError,
    PrivilegeError,
    SchemaError,
    StaleRevisionError,
    ValidationError,
)
from filedb_engine.ports.outbound import DocumentStorage

__all__ = [
    # Inbound
    "DocumentEngine",
    "EngineError",
    "SchemaError",
    "ConflictError",
    "NotFoundError",
    "PrivilegeError",
    "ValidationError",
    "StaleRevisionError",
    "DocumentFormatError",
    # Outbound
    "DocumentStorage",
]
