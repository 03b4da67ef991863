"""Inbound ports - API contracts for the document engine.

Inbound ports define the interfaces that the plan runner, the REST adapter
and other callers use to interact with a document, plus the errors those
calls report.
"""

from filedb_engine.ports.inbound.document_engine import (
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

__all__ = [
    # Document Engine
    "DocumentEngine",
    # Errors
    "EngineError",
    "SchemaError",
    "ConflictError",
    "NotFoundError",
    "PrivilegeError",
    "ValidationError",
    "StaleRevisionError",
    "DocumentFormatError",
]
