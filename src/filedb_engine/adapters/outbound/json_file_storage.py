"""JSON file implementation of the DocumentStorage port.

The whole document lives in one pretty-printed JSON file. There are no
secondary files besides the short-lived temp file of a save.

Write protocol:
    1. Re-read ``meta.revision`` from the current file and compare it with
       the revision the caller expects (lost-update guard).
    2. Write the payload to a temp file in the same directory.
    3. fsync the temp file (optional), then ``os.replace`` it over the
       document so readers see either the old or the new file, never a
       partial one.

Thread Safety:
    Saves within one process are serialized by an internal lock. Across
    processes the revision check turns a concurrent save into a
    StaleRevisionError instead of a silent overwrite.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from filedb_engine.ports.inbound.document_engine import DocumentFormatError, StaleRevisionError


class JsonFileDocumentStorage:
    """File-backed implementation of the DocumentStorage protocol.

    Attributes:
        path: Location of the JSON document.
    """

    def __init__(self, path: str | Path, fsync: bool = True) -> None:
        """Initialize the storage.

        Args:
            path: Path of the JSON document. The parent directory is created
                on first save.
            fsync: Whether to fsync the temp file before it replaces the
                document.
        """
        self._path = Path(path)
        self._fsync = fsync
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    def load(self) -> dict[str, Any] | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DocumentFormatError(f"Cannot decode {self._path}: {e}") from e
        if not isinstance(payload, dict):
            raise DocumentFormatError(f"{self._path} does not hold a JSON object.")
        return payload

    def _stored_revision(self) -> int | None:
        payload = self.load()
        if payload is None:
            return None
        try:
            return int(payload["meta"]["revision"])
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentFormatError(f"{self._path} has no readable revision.") from e

    def save(self, payload: dict[str, Any], expected_revision: int | None) -> None:
        with self._lock:
            if expected_revision is not None:
                actual = self._stored_revision()
                if actual is not None and actual != expected_revision:
                    raise StaleRevisionError(expected=expected_revision, actual=actual)

            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
                    f.flush()
                    if self._fsync:
                        os.fsync(f.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def __repr__(self) -> str:
        return f"JsonFileDocumentStorage(path={self._path!s}, fsync={self._fsync})"
