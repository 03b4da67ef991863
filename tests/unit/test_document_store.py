"""Unit tests for the document store."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Callable

import pytest

from filedb_engine.adapters.outbound import InMemoryDocumentStorage, JsonFileDocumentStorage
from filedb_engine.application import DocumentStore, ReadWriteLock
from filedb_engine.domain.entities import (
    CreateTableOperation,
    CriteriaCondition,
    DeleteOperation,
    DropTableOperation,
    SelectOperation,
    UpdateOperation,
)
from filedb_engine.domain.value_objects import ExecutionStatus
from filedb_engine.infrastructure.config import Config
from filedb_engine.infrastructure.metrics import MetricsRegistry
from filedb_engine.ports.inbound import DocumentFormatError, StaleRevisionError


Seed = Callable[[DocumentStore], None]


@pytest.mark.unit
class TestLifecycle:
    def test_missing_document_is_initialized(
        self, memory_storage: InMemoryDocumentStorage, store: DocumentStore
    ) -> None:
        summary = store.get_summary()

        assert summary.meta.revision == 0
        assert summary.tables == []
        assert [r.name for r in summary.roles] == ["admin"]
        assert memory_storage.save_count == 1
        assert memory_storage.load()["meta"]["revision"] == 0

    def test_open_twice(self, store: DocumentStore) -> None:
        with pytest.raises(RuntimeError, match="already open"):
            store.open()

    def test_closed_store_rejects_calls(
        self, memory_storage: InMemoryDocumentStorage, metrics_registry: MetricsRegistry
    ) -> None:
        store = DocumentStore(memory_storage, metrics=metrics_registry)

        assert not store.is_open
        with pytest.raises(RuntimeError, match="not open"):
            store.execute(SelectOperation(table="users"))
        with pytest.raises(RuntimeError, match="not open"):
            store.get_summary()

    def test_invalid_persist_mode(self, memory_storage: InMemoryDocumentStorage) -> None:
        with pytest.raises(ValueError):
            DocumentStore(memory_storage, persist_mode="never")  # type: ignore[arg-type]

    def test_reopen_from_file(
        self, seed_users: Seed, test_config: Config, metrics_registry: MetricsRegistry
    ) -> None:
        with DocumentStore.from_config(test_config, metrics=metrics_registry) as store:
            seed_users(store)
            revision = store.revision

        path = test_config.storage.document_path
        assert json.loads(path.read_text())["meta"]["revision"] == revision

        with DocumentStore.from_config(test_config, metrics=metrics_registry) as store:
            assert store.revision == revision
            result = store.execute(SelectOperation(table="users"))
            assert result.result_set.row_count == 2

    def test_corrupt_file(self, temp_dir: Path, metrics_registry: MetricsRegistry) -> None:
        path = temp_dir / "db.json"
        path.write_text("{broken", encoding="utf-8")
        store = DocumentStore(JsonFileDocumentStorage(path), metrics=metrics_registry)

        with pytest.raises(DocumentFormatError):
            store.open()
        assert not store.is_open

    def test_foreign_operation(self, store: DocumentStore) -> None:
        with pytest.raises(TypeError):
            store.execute("DROP TABLE users")  # type: ignore[arg-type]


@pytest.mark.unit
class TestPersistence:
    def test_mutation_outside_batch_persists(
        self, seed_users: Seed, memory_storage: InMemoryDocumentStorage, store: DocumentStore
    ) -> None:
        seed_users(store)

        assert memory_storage.save_count == 3
        assert memory_storage.load()["meta"]["revision"] == 2

    def test_reads_and_failures_do_not_persist(
        self, seed_users: Seed, memory_storage: InMemoryDocumentStorage, store: DocumentStore
    ) -> None:
        seed_users(store)
        saves = memory_storage.save_count

        store.execute(SelectOperation(table="users"))
        store.execute(DropTableOperation(table="ghost"))
        store.execute(DropTableOperation(table="ghost", if_exists=True))

        assert memory_storage.save_count == saves
        assert store.revision == 2

    def test_per_plan_batch_writes_once(
        self, seed_users: Seed, memory_storage: InMemoryDocumentStorage, store: DocumentStore
    ) -> None:
        with store.batch():
            seed_users(store)
            store.execute(
                UpdateOperation(table="users", changes={"age": 5}, match_all=True)
            )
            assert memory_storage.save_count == 1

        assert memory_storage.save_count == 2
        assert memory_storage.load()["meta"]["revision"] == 3

    def test_per_operation_batch_writes_each_mutation(
        self,
        seed_users: Seed,
        memory_storage: InMemoryDocumentStorage,
        metrics_registry: MetricsRegistry,
    ) -> None:
        with DocumentStore(
            memory_storage, persist_mode="per_operation", metrics=metrics_registry
        ) as store:
            with store.batch():
                seed_users(store)
                assert memory_storage.save_count == 3
            assert store.revision == 2

    def test_nested_batches_write_at_outermost_exit(
        self, seed_users: Seed, memory_storage: InMemoryDocumentStorage, store: DocumentStore
    ) -> None:
        with store.batch():
            with store.batch():
                seed_users(store)
            assert memory_storage.save_count == 1
        assert memory_storage.save_count == 2

    def test_stale_revision_surfaces(
        self,
        memory_storage: InMemoryDocumentStorage,
        store: DocumentStore,
        create_users: CreateTableOperation,
    ) -> None:
        other = memory_storage.load()
        other["meta"]["revision"] = 7
        memory_storage.save(other, expected_revision=None)

        with pytest.raises(StaleRevisionError):
            store.execute(create_users)

        assert store.revision == 7
        assert store.get_summary().tables == []
        rejected = store.history(limit=1)[0]
        assert rejected.status == "error"
        assert "another writer" in rejected.error

        result = store.execute(create_users)
        assert result.status is ExecutionStatus.SUCCESS
        assert memory_storage.load()["meta"]["revision"] == 8
        assert list(memory_storage.load()["tables"]) == ["users"]

    def test_stale_revision_at_batch_exit_drops_the_batch(
        self, seed_users: Seed, memory_storage: InMemoryDocumentStorage, store: DocumentStore
    ) -> None:
        with pytest.raises(StaleRevisionError):
            with store.batch():
                seed_users(store)
                other = memory_storage.load()
                other["meta"]["revision"] = 7
                memory_storage.save(other, expected_revision=None)

        assert store.revision == 7
        assert store.get_summary().tables == []
        assert store.execute(SelectOperation(table="users")).status is ExecutionStatus.ERROR

    def test_revision_changes_only_when_summary_changes(
        self, seed_users: Seed, store: DocumentStore
    ) -> None:
        seed_users(store)
        first = store.get_summary()

        store.execute(SelectOperation(table="users"))
        again = store.get_summary()
        assert again.meta.revision == first.meta.revision
        assert again.to_dict() == first.to_dict()

        store.execute(DeleteOperation(table="users", criteria=(CriteriaCondition("id", 2),)))
        after = store.get_summary()
        assert after.meta.revision == first.meta.revision + 1
        assert after.table("users").row_count == 1


@pytest.mark.unit
class TestHistory:
    def test_history_is_most_recent_first(
        self, seed_users: Seed, store: DocumentStore
    ) -> None:
        seed_users(store)
        store.execute(DropTableOperation(table="ghost"))

        entries = store.history()

        assert [e.status for e in entries] == ["error", "success", "success"]
        assert entries[0].query == "DROP TABLE ghost"
        assert entries[0].error is not None
        assert entries[0].tables == ["ghost"]
        assert entries[1].affected_rows == 2
        assert entries[1].category == "dml"
        assert entries[2].category == "ddl"
        assert store.history(limit=1) == entries[:1]

    def test_select_records_row_count(
        self, seed_users: Seed, store: DocumentStore
    ) -> None:
        seed_users(store)
        store.execute(SelectOperation(table="users", limit=1))

        assert store.history(limit=1)[0].affected_rows == 1

    def test_history_is_bounded(
        self, memory_storage: InMemoryDocumentStorage, metrics_registry: MetricsRegistry
    ) -> None:
        with DocumentStore(memory_storage, history_size=3, metrics=metrics_registry) as store:
            for _ in range(5):
                store.execute(SelectOperation(table="ghost"))
            assert len(store.history()) == 3

    def test_to_dict_is_camel_case(self, store: DocumentStore) -> None:
        store.execute(SelectOperation(table="ghost"))

        data = store.history()[0].to_dict()

        assert {"executedAt", "durationMs", "affectedRows"} <= set(data)


@pytest.mark.unit
class TestMetrics:
    def test_operation_counters(
        self, seed_users: Seed, store: DocumentStore, metrics_registry: MetricsRegistry
    ) -> None:
        seed_users(store)
        store.execute(DropTableOperation(table="ghost"))

        registry = metrics_registry.registry
        assert (
            registry.get_sample_value(
                "filedb_operations_total",
                {"operation_type": "dml.insert", "status": "success"},
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "filedb_operations_total",
                {"operation_type": "ddl.drop_table", "status": "error"},
            )
            == 1.0
        )
        assert registry.get_sample_value("filedb_document_revision") == 2.0
        assert registry.get_sample_value("filedb_document_tables") == 1.0


@pytest.mark.unit
class TestProjections:
    def test_summary_is_detached(
        self, seed_users: Seed, store: DocumentStore
    ) -> None:
        seed_users(store)
        summary = store.get_summary()

        summary.meta.revision = 99
        summary.table("users").columns[0].name = "changed"

        fresh = store.get_summary()
        assert fresh.meta.revision == 2
        assert fresh.table("users").columns[0].name == "id"

    def test_prompt_digest_uses_configured_sample_rows(
        self,
        seed_users: Seed,
        memory_storage: InMemoryDocumentStorage,
        metrics_registry: MetricsRegistry,
    ) -> None:
        with DocumentStore(
            memory_storage, digest_sample_rows=1, metrics=metrics_registry
        ) as store:
            seed_users(store)
            default = store.get_prompt_digest()
            none = store.get_prompt_digest(max_rows=0)

        assert '"Ann"' in default
        assert '"Bo"' not in default
        assert "Sample rows" not in none


@pytest.mark.unit
class TestReadWriteLock:
    def test_readers_share(self) -> None:
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=5)

        def reader() -> None:
            with lock.read_locked():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert not any(t.is_alive() for t in threads)

    def test_writer_excludes_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []

        def reader() -> None:
            with lock.read_locked():
                events.append("read")

        with lock.write_locked():
            t = threading.Thread(target=reader)
            t.start()
            time.sleep(0.05)
            events.append("write-done")
        t.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_writer_is_reentrant_and_may_read(self) -> None:
        lock = ReadWriteLock()
        with lock.write_locked():
            with lock.write_locked():
                with lock.read_locked():
                    pass
        with lock.write_locked():
            pass
