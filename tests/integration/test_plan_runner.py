"""Integration tests for PlanRunner over a file-backed store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Generator

import pytest

from filedb_engine.adapters.inbound.plan_parser import parse_plan
from filedb_engine.application import DocumentStore, PlanRunner
from filedb_engine.domain.entities import (
    ColumnBlueprint,
    CreateTableOperation,
    DropTableOperation,
    InsertOperation,
    Plan,
    SelectOperation,
)
from filedb_engine.domain.value_objects import ExecutionStatus
from filedb_engine.infrastructure.config import Config
from filedb_engine.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def file_store(
    test_config: Config, metrics_registry: MetricsRegistry
) -> Generator[DocumentStore, None, None]:
    with DocumentStore.from_config(test_config, metrics=metrics_registry) as store:
        yield store


@pytest.fixture
def runner(file_store: DocumentStore, metrics_registry: MetricsRegistry) -> PlanRunner:
    return PlanRunner(file_store, metrics=metrics_registry)


def stored_revision(config: Config) -> int:
    return json.loads(Path(config.storage.document_path).read_text())["meta"]["revision"]


@pytest.mark.integration
class TestPlanRunner:
    """Plans are independent statements, not transactions."""

    def test_failed_operation_does_not_stop_the_plan(
        self, runner: PlanRunner, test_config: Config, metrics_registry: MetricsRegistry
    ) -> None:
        plan = Plan(
            operations=(
                CreateTableOperation(
                    table="t", columns=(ColumnBlueprint(name="a", data_type="integer"),)
                ),
                InsertOperation(table="missing", rows=({"a": 1},)),
                InsertOperation(table="t", rows=({"a": 1},)),
            ),
            thought="seed t",
            final_response="done",
        )

        response = runner.run(plan)

        assert [r.status for r in response.results] == [
            ExecutionStatus.SUCCESS,
            ExecutionStatus.ERROR,
            ExecutionStatus.SUCCESS,
        ]
        assert response.results[1].error_kind == "NotFoundError"
        assert len(response.warnings) == 1
        assert response.warnings[0].startswith("Operation 2 (dml.insert) failed:")
        assert response.failed == [response.results[1]]
        assert response.thought == "seed t"
        assert response.final_response == "done"

        snapshot = response.snapshot
        assert snapshot.meta.revision == 2
        assert snapshot.table("t").row_count == 1
        assert stored_revision(test_config) == 2
        assert (
            metrics_registry.registry.get_sample_value(
                "filedb_plans_total", {"outcome": "partial"}
            )
            == 1.0
        )

    def test_planner_warnings_are_kept_and_deduplicated(self, runner: PlanRunner) -> None:
        plan = Plan(
            operations=(DropTableOperation(table="ghost"), DropTableOperation(table="ghost")),
            warnings=("check the table name", "check the table name"),
        )

        response = runner.run(plan)

        assert response.warnings[0] == "check the table name"
        assert len(response.warnings) == 3
        assert response.warnings[1].startswith("Operation 1 (ddl.drop_table)")
        assert response.warnings[2].startswith("Operation 2 (ddl.drop_table)")

    def test_empty_plan(self, runner: PlanRunner, metrics_registry: MetricsRegistry) -> None:
        response = runner.run(Plan(operations=()))

        assert response.results == []
        assert response.warnings == []
        assert response.snapshot.meta.revision == 0
        assert (
            metrics_registry.registry.get_sample_value("filedb_plans_total", {"outcome": "clean"})
            == 1.0
        )

    def test_parsed_plan_end_to_end(self, runner: PlanRunner, test_config: Config) -> None:
        runner.run(
            parse_plan(
                {
                    "operations": [
                        {
                            "type": "createTable",
                            "table": "users",
                            "columns": [
                                {"name": "id", "dataType": "integer", "isPrimaryKey": True},
                                {"name": "name", "nullable": False},
                            ],
                        },
                        {
                            "type": "insert",
                            "table": "users",
                            "rows": [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bo"}],
                        },
                        {"type": "select", "table": "users", "criteria": [
                            {"column": "id", "operator": "gt", "value": 1}
                        ]},
                    ]
                }
            )
        )

        assert stored_revision(test_config) == 2
        assert runner.store.history(limit=1)[0].affected_rows == 1

    def test_actor_is_applied_to_every_operation(
        self, runner: PlanRunner, file_store: DocumentStore
    ) -> None:
        runner.run(
            parse_plan(
                {
                    "operations": [
                        {"type": "createTable", "table": "t", "columns": [{"name": "a"}]},
                        {"type": "grant", "role": "analyst", "table": "t",
                         "privileges": ["select"]},
                    ]
                }
            )
        )

        response = runner.run(
            Plan(
                operations=(
                    SelectOperation(table="t"),
                    InsertOperation(table="t", rows=({"a": "x"},)),
                )
            ),
            actor="analyst",
        )

        assert [r.status for r in response.results] == [
            ExecutionStatus.SUCCESS,
            ExecutionStatus.ERROR,
        ]
        assert response.results[1].error_kind == "PrivilegeError"
        assert file_store.revision == 2

    def test_reopen_sees_plan_results(
        self, test_config: Config, metrics_registry: MetricsRegistry
    ) -> None:
        with DocumentStore.from_config(test_config, metrics=metrics_registry) as store:
            PlanRunner(store, metrics=metrics_registry).run(
                Plan(
                    operations=(
                        CreateTableOperation(table="t", columns=(ColumnBlueprint(name="a"),)),
                        InsertOperation(table="t", rows=({"a": "x"}, {"a": "y"})),
                    )
                )
            )

        with DocumentStore.from_config(test_config, metrics=metrics_registry) as store:
            result = store.execute(SelectOperation(table="t"))
            assert [row["a"] for row in result.result_set.rows] == ["x", "y"]
