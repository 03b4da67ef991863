"""Document Store - owns one loaded document and its persistence lifecycle.

The store is the single entry point through which operations reach a
document. It is an explicitly owned object: callers open it at process or
session start, pass it to whoever needs it and close it at shutdown. There
is no process-wide "current document".

Usage:
    from filedb_engine.adapters.outbound import JsonFileDocumentStorage
    from filedb_engine.application import DocumentStore
    from filedb_engine.domain.entities import SelectOperation

    with DocumentStore(JsonFileDocumentStorage("data/database.json")) as store:
        result = store.execute(SelectOperation(table="users"))
        summary = store.get_summary()

Concurrency:
    One writer or many readers. ``select``, ``get_summary`` and
    ``get_prompt_digest`` take the shared lock; every other operation and
    ``batch()`` take the exclusive lock. Waiting writers block new readers,
    so a steady stream of selects cannot starve a mutation.

Persistence:
    Outside a batch every applied mutation is written back immediately.
    Inside ``batch()`` the ``persist_mode`` decides: "per_operation" writes
    after each applied mutation, "per_plan" writes once when the batch ends.
    Either way the revision grows by one per applied mutation, not per
    write. Each save carries the revision last read from or written to
    storage, so a concurrent writer in another process surfaces as a
    StaleRevisionError instead of a lost update. Before that error is
    raised the store reloads from storage, dropping the rejected changes,
    so the next call works against the persisted document.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Iterator, Literal

from filedb_engine.adapters.outbound.json_file_storage import JsonFileDocumentStorage
from filedb_engine.domain.entities import (
    Document,
    DocumentSummary,
    ExecutionResult,
    Operation,
)
from filedb_engine.domain.services import (
    OperationExecutor,
    format_prompt_digest,
    summarize_document,
)
from filedb_engine.domain.value_objects import (
    ExecutionStatus,
    OperationType,
    Revision,
    utc_now_iso,
)
from filedb_engine.infrastructure.logging import get_logger
from filedb_engine.infrastructure.metrics import MetricsRegistry, get_metrics
from filedb_engine.infrastructure.tracing import trace_span
from filedb_engine.ports.inbound.document_engine import StaleRevisionError
from filedb_engine.ports.outbound.document_storage import DocumentStorage

if TYPE_CHECKING:
    from filedb_engine.infrastructure.config import Config


logger = get_logger(__name__)

PersistMode = Literal["per_operation", "per_plan"]


class ReadWriteLock:
    """Writer-preferring readers/writer lock.

    The exclusive side is re-entrant for its owning thread, and the owner may
    also take the shared side. Shared acquisitions are not re-entrant while a
    writer is waiting.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: int | None = None
        self._writer_depth = 0
        self._waiting_writers = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        me = threading.get_ident()
        with self._cond:
            owner = self._writer == me
            if not owner:
                while self._writer is not None or self._waiting_writers:
                    self._cond.wait()
                self._readers += 1
        try:
            yield
        finally:
            if not owner:
                with self._cond:
                    self._readers -= 1
                    if self._readers == 0:
                        self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
            else:
                self._waiting_writers += 1
                try:
                    while self._writer is not None or self._readers:
                        self._cond.wait()
                finally:
                    self._waiting_writers -= 1
                self._writer = me
                self._writer_depth = 1
        try:
            yield
        finally:
            with self._cond:
                self._writer_depth -= 1
                if self._writer_depth == 0:
                    self._writer = None
                    self._cond.notify_all()


@dataclass
class HistoryEntry:
    """One executed operation as recorded in the store's history."""

    id: str
    query: str
    category: str
    status: str
    executed_at: str
    duration_ms: float
    affected_rows: int | None = None
    error: str | None = None
    tables: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "category": self.category,
            "status": self.status,
            "executedAt": self.executed_at,
            "durationMs": self.duration_ms,
            "affectedRows": self.affected_rows,
            "error": self.error,
            "tables": list(self.tables),
        }


class DocumentStore:
    """Owns a loaded document and serializes access to it.

    Thread Safety:
        All public methods are safe to call from multiple threads.
    """

    def __init__(
        self,
        storage: DocumentStorage,
        executor: OperationExecutor | None = None,
        *,
        admin_role: str = "admin",
        persist_mode: PersistMode = "per_plan",
        history_size: int = 500,
        digest_sample_rows: int = 2,
        metrics: MetricsRegistry | None = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        """Initialize the store. Nothing is read until ``open()``.

        Args:
            storage: Where the document is persisted.
            executor: Operation executor. Built from admin_role if None.
            admin_role: Role created with a fresh document; holds everything.
            persist_mode: Write policy inside ``batch()``.
            history_size: Number of executed operations kept in history.
            digest_sample_rows: Default sample rows per table in the digest.
            metrics: Metrics registry. Uses the process default if None.
            clock: Source of ISO timestamps.
        """
        if persist_mode not in ("per_operation", "per_plan"):
            raise ValueError(f"Unknown persist mode: {persist_mode}")
        self._storage = storage
        self._executor = executor or OperationExecutor(admin_role=admin_role, clock=clock)
        self._admin_role = self._executor.admin_role
        self._persist_mode = persist_mode
        self._digest_sample_rows = digest_sample_rows
        self._metrics = metrics or get_metrics()
        self._clock = clock

        self._lock = ReadWriteLock()
        self._history: deque[HistoryEntry] = deque(maxlen=history_size)
        self._history_lock = threading.Lock()

        self._document: Document | None = None
        self._persisted_revision: Revision | None = None
        self._dirty = False
        self._batch_depth = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        metrics: MetricsRegistry | None = None,
    ) -> DocumentStore:
        """Build a store over the JSON document named by the configuration."""
        storage = JsonFileDocumentStorage(
            config.storage.document_path,
            fsync=config.storage.fsync,
        )
        return cls(
            storage,
            admin_role=config.engine.admin_role,
            persist_mode=config.storage.persist_mode,
            history_size=config.engine.history_size,
            digest_sample_rows=config.engine.digest_sample_rows,
            metrics=metrics,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self._document is not None

    @property
    def location(self) -> str:
        return self._storage.location

    @property
    def persist_mode(self) -> PersistMode:
        return self._persist_mode

    @property
    def revision(self) -> Revision:
        with self._lock.read_locked():
            return self._require_document().revision

    def open(self) -> DocumentStore:
        """Load the document.

        Raises:
            RuntimeError: If the store is already open.
            DocumentFormatError: If the persisted document cannot be decoded.
        """
        with self._lock.write_locked():
            if self._document is not None:
                raise RuntimeError("Document store already open")
            self.load()
        return self

    def close(self) -> None:
        """Persist pending changes and release the document."""
        with self._lock.write_locked():
            if self._document is None:
                return
            self.persist()
            logger.info("document_store_closed", location=self.location)
            self._document = None
            self._persisted_revision = None

    def __enter__(self) -> DocumentStore:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    def load(self) -> None:
        """(Re)load the document from storage, discarding unsaved changes.

        A missing document is initialised empty (revision 0, bootstrap admin
        role) and saved immediately.
        """
        with self._lock.write_locked():
            payload = self._storage.load()
            if payload is None:
                self._document = Document.empty(self._admin_role, self._clock())
                self._persisted_revision = None
                self._dirty = True
                self.persist()
                logger.info("document_initialized", location=self.location)
            else:
                self._document = Document.from_dict(payload)
                self._persisted_revision = self._document.revision
                self._dirty = False
                logger.info(
                    "document_loaded",
                    location=self.location,
                    revision=self._document.revision,
                    tables=len(self._document.tables),
                )
            self._publish_document_gauges()

    def persist(self) -> bool:
        """Write the document back when it has unsaved changes.

        Returns:
            True if a write happened.

        Raises:
            StaleRevisionError: If storage moved on since the last load/save.
        """
        with self._lock.write_locked():
            document = self._require_document()
            if not self._dirty:
                return False
            with trace_span(
                "document.persist",
                {"document.location": self.location, "document.revision": document.revision},
            ):
                self._storage.save(document.to_dict(), expected_revision=self._persisted_revision)
            self._persisted_revision = document.revision
            self._dirty = False
            self._metrics.document_persists_total.inc()
            logger.debug("document_persisted", location=self.location, revision=document.revision)
            return True

    # =========================================================================
    # Operations
    # =========================================================================

    def execute(self, operation: Operation, actor: str | None = None) -> ExecutionResult:
        """Run one operation against the document.

        Args:
            operation: Member of the closed operation set.
            actor: Acting role, or None for the trusted in-process caller.

        Returns:
            The operation's ExecutionResult.

        Raises:
            TypeError: If the operation is not a known operation type.
            RuntimeError: If the store is not open.
            StaleRevisionError: If an immediate write finds storage moved on.
        """
        op_type = getattr(operation, "type", None)
        if not isinstance(op_type, OperationType):
            raise TypeError(f"Unsupported operation type: {type(operation).__name__}")

        if op_type is OperationType.SELECT:
            guard = self._lock.read_locked()
        else:
            guard = self._lock.write_locked()

        with guard:
            document = self._require_document()
            executed_at = self._clock()
            started = time.perf_counter()
            with trace_span(
                "operation.execute", {"operation.type": op_type.value, "actor": actor}
            ) as span:
                result = self._executor.execute(operation, document, actor)
                span.set_attribute("operation.status", result.status.value)
            duration = time.perf_counter() - started

            if result.status is ExecutionStatus.SUCCESS and op_type.is_mutating:
                self._dirty = True
                self._publish_document_gauges()
                if self._batch_depth == 0 or self._persist_mode == "per_operation":
                    try:
                        self._persist_or_reload()
                    except StaleRevisionError as e:
                        rejected = replace(
                            result,
                            status=ExecutionStatus.ERROR,
                            detail=str(e),
                            error_kind=e.kind,
                            affected_rows=None,
                        )
                        self._record(operation, rejected, executed_at, duration)
                        raise

            self._record(operation, result, executed_at, duration)

        return result

    @contextmanager
    def batch(self) -> Iterator[DocumentStore]:
        """Hold the exclusive lock across several operations.

        With ``persist_mode="per_plan"`` the document is written once when
        the outermost batch exits.
        """
        with self._lock.write_locked():
            self._require_document()
            self._batch_depth += 1
            try:
                yield self
            finally:
                self._batch_depth -= 1
                if self._batch_depth == 0:
                    self._persist_or_reload()

    def _persist_or_reload(self) -> None:
        # A rejected write leaves memory ahead of storage; resync before raising.
        try:
            self.persist()
        except StaleRevisionError as e:
            logger.warning(
                "document_reloaded_after_conflict",
                location=self.location,
                expected=e.expected,
                actual=e.actual,
            )
            self.load()
            raise

    def _record(
        self,
        operation: Operation,
        result: ExecutionResult,
        executed_at: str,
        duration: float,
    ) -> None:
        affected = result.affected_rows
        if affected is None and result.result_set is not None:
            affected = result.result_set.row_count
        entry = HistoryEntry(
            id=result.id,
            query=operation.describe(),
            category=result.category.value,
            status=result.status.value,
            executed_at=executed_at,
            duration_ms=round(duration * 1000, 3),
            affected_rows=affected,
            error=result.detail if result.status is ExecutionStatus.ERROR else None,
            tables=list(operation.tables),
        )
        with self._history_lock:
            self._history.append(entry)

        self._metrics.operations_total.labels(
            operation_type=result.type.value, status=result.status.value
        ).inc()
        self._metrics.operation_latency_seconds.labels(category=result.category.value).observe(
            duration
        )
        logger.info(
            "operation_executed",
            operation_type=result.type.value,
            status=result.status.value,
            error_kind=result.error_kind,
            affected_rows=affected,
            duration_ms=entry.duration_ms,
        )

    # =========================================================================
    # Read-only projections
    # =========================================================================

    def get_summary(self) -> DocumentSummary:
        """Return the summary projection; never the raw document."""
        with self._lock.read_locked():
            return summarize_document(self._require_document())

    def get_prompt_digest(self, max_rows: int | None = None) -> str:
        """Return the planner digest of the current document."""
        rows = self._digest_sample_rows if max_rows is None else max_rows
        with self._lock.read_locked():
            return format_prompt_digest(self._require_document(), rows)

    def history(self, limit: int | None = None) -> list[HistoryEntry]:
        """Executed operations, most recent first."""
        with self._history_lock:
            entries = list(reversed(self._history))
        if limit is not None:
            entries = entries[: max(limit, 0)]
        return entries

    def _require_document(self) -> Document:
        if self._document is None:
            raise RuntimeError("Document store is not open")
        return self._document

    def _publish_document_gauges(self) -> None:
        document = self._document
        if document is None:
            return
        self._metrics.document_revision.set(document.revision)
        self._metrics.document_tables.set(len(document.tables))
