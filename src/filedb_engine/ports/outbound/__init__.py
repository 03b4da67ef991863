"""Outbound ports - contracts for external dependencies.

Outbound ports define the interfaces that the document store uses to talk to
its persistence layer.
"""

from filedb_engine.ports.outbound.document_storage import DocumentStorage

__all__ = [
    "DocumentStorage",
]
