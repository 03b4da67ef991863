"""Document storage port for persisting the serialized document.

This outbound port defines the contract for wherever the document lives
between invocations. The persisted form is one JSON-compatible mapping per
logical database; there are no secondary files.

The storage is responsible for:
- Returning the last saved payload (or None when nothing was saved yet)
- Replacing the payload atomically
- Refusing a save when the stored revision is not the one the caller loaded
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DocumentStorage(Protocol):
    """Protocol for document persistence.

    Implementations have no knowledge of tables or rows; they move an opaque
    mapping and read only ``meta.revision`` for the optimistic concurrency
    check.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the document (path, URI, ...)."""
        ...

    @abstractmethod
    def load(self) -> dict[str, Any] | None:
        """Read the persisted document.

        Returns:
            The decoded payload, or None if no document has been saved.

        Raises:
            DocumentFormatError: If the stored content cannot be decoded.
        """
        ...

    @abstractmethod
    def save(self, payload: dict[str, Any], expected_revision: int | None) -> None:
        """Replace the persisted document.

        Args:
            payload: Serialized document.
            expected_revision: Revision the caller last loaded or saved.
                None skips the check (first save of a fresh document).

        Raises:
            StaleRevisionError: If the stored revision differs from
                expected_revision.
        """
        ...
