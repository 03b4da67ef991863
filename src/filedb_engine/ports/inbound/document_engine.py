"""Document engine port and the engine's error vocabulary.

This inbound port defines the contract that callers (the plan runner, the
REST adapter, in-process consumers such as exporters) use to run operations
against one document and to read its summary.

Error handling:
    Every failure an operation can legitimately hit is an EngineError
    subclass. The executor converts these into an ExecutionResult with
    status "error" and the exception's ``kind`` as ``error_kind``, so a
    malformed operation never aborts a plan. Anything that is not an
    EngineError (an object outside the closed operation set, an I/O
    failure) propagates to the caller.

Error kinds:
    - SchemaError: invalid or conflicting table/column definition
    - ConflictError: table already exists where uniqueness is required
    - NotFoundError: referenced table, column or role is absent
    - PrivilegeError: the acting role lacks the required privilege
    - ValidationError: row data or operation arguments violate constraints
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from filedb_engine.domain.entities import (
        DocumentSummary,
        ExecutionResult,
        Operation,
    )


class EngineError(Exception):
    """Base class for every recoverable engine failure."""

    @property
    def kind(self) -> str:
        """Name reported in ExecutionResult.error_kind."""
        return type(self).__name__


class SchemaError(EngineError):
    """Invalid or conflicting column/table definition."""


class ConflictError(EngineError):
    """An entity already exists where uniqueness is required."""


class NotFoundError(EngineError):
    """A referenced table, column or role does not exist."""


class PrivilegeError(EngineError):
    """The acting role lacks the privilege an operation requires."""


class ValidationError(EngineError):
    """Row data or operation arguments violate a constraint."""


class StaleRevisionError(ConflictError):
    """The persisted document moved on since it was loaded.

    Raised by storage when another writer saved a newer revision between our
    load and our save. The in-memory document must be reloaded.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Persisted revision is {actual}, expected {expected}; "
            "the document was modified by another writer."
        )


class DocumentFormatError(EngineError):
    """The persisted document cannot be decoded."""


@runtime_checkable
class DocumentEngine(Protocol):
    """Protocol for running operations against one document.

    Thread Safety:
        Implementations must serialise mutations (single writer) and may let
        read-only calls run concurrently with each other.
    """

    @abstractmethod
    def execute(self, operation: Operation, actor: str | None = None) -> ExecutionResult:
        """Run one operation and return its result.

        Args:
            operation: One member of the closed operation set.
            actor: Role the operation runs as. None means the trusted
                in-process caller and skips privilege checks.

        Returns:
            ExecutionResult with status success, skipped or error.

        Raises:
            TypeError: If operation is not a known operation type.
        """
        ...

    @abstractmethod
    def get_summary(self) -> DocumentSummary:
        """Return the read-only projection of the document."""
        ...

    @abstractmethod
    def get_prompt_digest(self, max_rows: int | None = None) -> str:
        """Return a textual digest of the document for planner context."""
        ...
