"""In-memory implementation of the DocumentStorage port.

Used by tests and for ephemeral documents. Payloads are deep-copied in and
out so that callers never share state with the stored copy.
"""

from __future__ import annotations

import copy
import threading
from typing import Any

from filedb_engine.ports.inbound.document_engine import StaleRevisionError


class InMemoryDocumentStorage:
    """Dict-backed implementation of the DocumentStorage protocol."""

    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self._payload = copy.deepcopy(payload) if payload is not None else None
        self._lock = threading.Lock()
        self.save_count = 0

    @property
    def location(self) -> str:
        return "memory://"

    def load(self) -> dict[str, Any] | None:
        with self._lock:
            return copy.deepcopy(self._payload)

    def save(self, payload: dict[str, Any], expected_revision: int | None) -> None:
        with self._lock:
            if expected_revision is not None and self._payload is not None:
                actual = int(self._payload["meta"]["revision"])
                if actual != expected_revision:
                    raise StaleRevisionError(expected=expected_revision, actual=actual)
            self._payload = copy.deepcopy(payload)
            self.save_count += 1
