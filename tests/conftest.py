"""Pytest configuration and fixtures for filedb_engine tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from prometheus_client import CollectorRegistry

from filedb_engine.adapters.outbound import InMemoryDocumentStorage
from filedb_engine.application import DocumentStore
from filedb_engine.domain.entities import (
    ColumnBlueprint,
    CreateTableOperation,
    Document,
    InsertOperation,
)
from filedb_engine.domain.services import OperationExecutor
from filedb_engine.infrastructure.config import Config, EngineConfig, StorageConfig
from filedb_engine.infrastructure.metrics import MetricsRegistry


FIXED_NOW = "2024-01-01T00:00:00.000+00:00"


class TickingClock:
    """Deterministic clock: every call returns a later timestamp."""

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        return f"2024-01-01T00:00:{self.ticks:02d}.000+00:00"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with a temporary document path."""
    return Config(
        storage=StorageConfig(
            document_path=temp_dir / "data" / "database.json",
            persist_mode="per_plan",
            fsync=False,  # Faster for tests
        ),
        engine=EngineConfig(history_size=50),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def executor(clock: TickingClock) -> OperationExecutor:
    return OperationExecutor(admin_role="admin", clock=clock)


@pytest.fixture
def document() -> Document:
    """A fresh document holding only the admin role."""
    return Document.empty("admin", FIXED_NOW)


def users_table() -> CreateTableOperation:
    """users(id integer primary key, name text not null, age integer nullable)."""
    return CreateTableOperation(
        table="users",
        columns=(
            ColumnBlueprint(name="id", data_type="integer", is_primary_key=True),
            ColumnBlueprint(name="name", data_type="text", nullable=False),
            ColumnBlueprint(name="age", data_type="integer", nullable=True),
        ),
    )


@pytest.fixture
def create_users() -> CreateTableOperation:
    return users_table()


@pytest.fixture
def users_document(document: Document, executor: OperationExecutor) -> Document:
    """Document with a users table holding Ann (30) and Bo (age omitted)."""
    executor.execute(users_table(), document)
    executor.execute(
        InsertOperation(
            table="users",
            rows=({"id": 1, "name": "Ann", "age": 30}, {"id": 2, "name": "Bo"}),
        ),
        document,
    )
    return document


@pytest.fixture
def seed_users() -> Callable[[DocumentStore], None]:
    """Populate a store the same way ``users_document`` is populated."""

    def seed(store: DocumentStore) -> None:
        store.execute(users_table())
        store.execute(
            InsertOperation(
                table="users",
                rows=({"id": 1, "name": "Ann", "age": 30}, {"id": 2, "name": "Bo"}),
            )
        )

    return seed


@pytest.fixture
def memory_storage() -> InMemoryDocumentStorage:
    return InMemoryDocumentStorage()


@pytest.fixture
def store(
    memory_storage: InMemoryDocumentStorage,
    metrics_registry: MetricsRegistry,
    clock: TickingClock,
) -> Generator[DocumentStore, None, None]:
    """An open document store over in-memory storage."""
    s = DocumentStore(memory_storage, metrics=metrics_registry, clock=clock)
    s.open()
    yield s
    s.close()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "slow: Slow tests")
