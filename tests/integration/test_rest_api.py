"""Integration tests for the REST API adapter."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from filedb_engine import __version__
from filedb_engine.adapters.inbound.plan_parser import parse_operation
from filedb_engine.adapters.inbound.rest_api import create_app
from filedb_engine.adapters.outbound import InMemoryDocumentStorage
from filedb_engine.application import DocumentStore, PlanRunner
from filedb_engine.infrastructure.metrics import MetricsRegistry


CREATE_USERS = {
    "type": "ddl.create_table",
    "table": "users",
    "columns": [
        {"name": "id", "dataType": "integer", "isPrimaryKey": True},
        {"name": "name", "nullable": False},
        {"name": "age", "dataType": "integer"},
    ],
}

INSERT_USERS = {
    "type": "dml.insert",
    "table": "users",
    "rows": [{"id": 1, "name": "Ann", "age": 30}, {"id": 2, "name": "Bo"}],
}


@pytest.fixture
def client(store: DocumentStore, metrics_registry: MetricsRegistry) -> TestClient:
    app = create_app(store, PlanRunner(store, metrics=metrics_registry))
    return TestClient(app)


@pytest.mark.integration
class TestRestApi:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__, "revision": 0}

    def test_health_when_closed(
        self, memory_storage: InMemoryDocumentStorage, metrics_registry: MetricsRegistry
    ) -> None:
        closed = DocumentStore(memory_storage, metrics=metrics_registry)
        client = TestClient(create_app(closed, PlanRunner(closed, metrics=metrics_registry)))

        assert client.get("/health").json()["status"] == "unhealthy"
        assert client.get("/summary").status_code == 503

    def test_operation_round_trip(self, client: TestClient) -> None:
        assert client.post("/operations", json=CREATE_USERS).json()["status"] == "success"
        inserted = client.post("/operations", json=INSERT_USERS).json()
        assert inserted["affectedRows"] == 2

        response = client.post(
            "/operations",
            json={
                "type": "select",
                "table": "users",
                "criteria": [{"column": "age", "operator": "gte", "value": 18}],
            },
        )

        body = response.json()
        assert response.status_code == 200
        assert body["category"] == "dql"
        assert body["resultSet"]["rowCount"] == 1
        assert body["resultSet"]["rows"] == [{"id": 1, "name": "Ann", "age": 30}]

    def test_engine_error_is_a_result(self, client: TestClient) -> None:
        response = client.post("/operations", json={"type": "dropTable", "table": "ghost"})

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["errorKind"] == "NotFoundError"

    def test_unparseable_operation(self, client: TestClient) -> None:
        response = client.post("/operations", json={"type": "truncate", "table": "users"})
        assert response.status_code == 422

    def test_actor_must_be_a_string(self, client: TestClient) -> None:
        response = client.post(
            "/operations", json={"type": "select", "table": "users", "actor": 5}
        )
        assert response.status_code == 422

    def test_plan(self, client: TestClient) -> None:
        response = client.post(
            "/plans",
            json={
                "thought": "seed",
                "operations": [
                    CREATE_USERS,
                    {"type": "insert", "table": "nope", "rows": [{"a": 1}]},
                    INSERT_USERS,
                ],
                "finalResponse": "Seeded users.",
            },
        )

        body = response.json()
        assert response.status_code == 200
        assert [r["status"] for r in body["results"]] == ["success", "error", "success"]
        assert body["finalResponse"] == "Seeded users."
        assert len(body["warnings"]) == 1
        assert body["snapshot"]["meta"]["revision"] == 2
        assert body["snapshot"]["tables"][0]["rowCount"] == 2

    def test_plan_actor(self, client: TestClient) -> None:
        client.post("/plans", json={"operations": [CREATE_USERS]})

        response = client.post(
            "/plans", json={"actor": "nobody", "operations": [INSERT_USERS]}
        )

        assert response.json()["results"][0]["errorKind"] == "PrivilegeError"

    def test_summary_digest_history(self, client: TestClient) -> None:
        client.post("/plans", json={"operations": [CREATE_USERS, INSERT_USERS]})

        summary = client.get("/summary").json()
        assert summary["tables"][0]["name"] == "users"
        assert summary["tables"][0]["columnCount"] == 3

        digest = client.get("/digest", params={"max_rows": 0}).json()["digest"]
        assert digest.startswith('Table "users" (2 row(s), 3 column(s))')
        assert "Sample rows" not in digest

        history = client.get("/history", params={"limit": 1}).json()
        assert len(history) == 1
        assert history[0]["query"] == "INSERT INTO users VALUES (2 row(s))"

    def test_negative_query_parameters(self, client: TestClient) -> None:
        assert client.get("/digest", params={"max_rows": -1}).status_code == 422
        assert client.get("/history", params={"limit": -1}).status_code == 422

    def test_conflict_then_recovery(
        self,
        client: TestClient,
        memory_storage: InMemoryDocumentStorage,
        metrics_registry: MetricsRegistry,
    ) -> None:
        with DocumentStore(memory_storage, metrics=metrics_registry) as other:
            other.execute(parse_operation({**CREATE_USERS, "table": "accounts"}))

        response = client.post("/operations", json=CREATE_USERS)
        assert response.status_code == 409

        tables = [t["name"] for t in client.get("/summary").json()["tables"]]
        assert tables == ["accounts"]

        retried = client.post("/operations", json=CREATE_USERS)
        assert retried.status_code == 200
        assert retried.json()["status"] == "success"
        assert memory_storage.load()["meta"]["revision"] == 2
