"""Result and summary types returned to callers.

Callers never see the raw Document. They get an ExecutionResult per
operation, a DocumentSummary projection, or a PlanResponse combining both.
All types serialize to the camelCase shape consumed by external
collaborators (exporters, charts, planner context).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from filedb_engine.domain.entities.document import ColumnDefinition, DocumentMeta, Table
from filedb_engine.domain.value_objects import (
    ExecutionId,
    ExecutionStatus,
    OperationCategory,
    OperationType,
    Privilege,
)


@dataclass
class QueryResultSet:
    """Rows returned by a select.

    ``row_count`` always equals ``len(rows)``. ``limit`` is the limit that
    was applied, None when the read was unbounded.
    """

    columns: list[str]
    rows: list[dict[str, Any]]
    limit: int | None = None
    title: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": list(self.columns),
            "rows": [dict(row) for row in self.rows],
            "rowCount": self.row_count,
            "limit": self.limit,
            "title": self.title,
        }


@dataclass
class ExecutionResult:
    """Outcome of one operation."""

    id: ExecutionId
    type: OperationType
    status: ExecutionStatus
    detail: str
    result_set: QueryResultSet | None = None
    error_kind: str | None = None
    affected_rows: int | None = None

    @property
    def category(self) -> OperationCategory:
        return self.type.category

    @property
    def ok(self) -> bool:
        return self.status is not ExecutionStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "category": self.category.value,
            "status": self.status.value,
            "detail": self.detail,
        }
        if self.result_set is not None:
            data["resultSet"] = self.result_set.to_dict()
        if self.error_kind is not None:
            data["errorKind"] = self.error_kind
        if self.affected_rows is not None:
            data["affectedRows"] = self.affected_rows
        return data


@dataclass
class PermissionSummary:
    role: str
    privileges: tuple[Privilege, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "privileges": [p.value for p in self.privileges]}


@dataclass
class TableSummary:
    """Read-only projection of one table."""

    name: str
    description: str | None
    primary_key: str | None
    columns: list[ColumnDefinition]
    row_count: int
    updated_at: str
    permissions: list[PermissionSummary] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @classmethod
    def from_table(cls, table: Table) -> TableSummary:
        return cls(
            name=table.name,
            description=table.description,
            primary_key=table.primary_key,
            columns=[
                ColumnDefinition(
                    name=c.name,
                    data_type=c.data_type,
                    nullable=c.nullable,
                    default_value=c.default_value,
                    is_primary_key=c.is_primary_key,
                )
                for c in table.ordered_columns()
            ],
            row_count=len(table.rows),
            updated_at=table.updated_at,
            permissions=[
                PermissionSummary(role=p.role, privileges=p.privileges)
                for p in table.permissions.values()
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "primaryKey": self.primary_key,
            "columnCount": self.column_count,
            "rowCount": self.row_count,
            "updatedAt": self.updated_at,
            "columns": [c.to_dict() for c in self.columns],
            "permissions": [p.to_dict() for p in self.permissions],
        }


@dataclass
class RoleSummary:
    name: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass
class DocumentSummary:
    """Projection of the whole document: meta, tables and roles."""

    meta: DocumentMeta
    tables: list[TableSummary]
    roles: list[RoleSummary]

    def table(self, name: str) -> TableSummary | None:
        for summary in self.tables:
            if summary.name == name:
                return summary
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "tables": [t.to_dict() for t in self.tables],
            "roles": [r.to_dict() for r in self.roles],
        }


@dataclass
class PlanResponse:
    """Aggregated outcome of a plan run."""

    results: list[ExecutionResult]
    warnings: list[str]
    snapshot: DocumentSummary
    thought: str | None = None
    final_response: str | None = None

    @property
    def failed(self) -> list[ExecutionResult]:
        return [r for r in self.results if r.status is ExecutionStatus.ERROR]

    def to_dict(self) -> dict[str, Any]:
        return {
            "thought": self.thought,
            "finalResponse": self.final_response,
            "results": [r.to_dict() for r in self.results],
            "warnings": list(self.warnings),
            "snapshot": self.snapshot.to_dict(),
        }
