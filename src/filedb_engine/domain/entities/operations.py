"""Operations: the closed set of typed requests against a document.

Every operation is a frozen dataclass tagged with its OperationType. The set
is closed: the executor dispatches exhaustively over ``OPERATION_CLASSES``
and treats anything else as a contract violation.

| Category | Operations                                                   |
|----------|--------------------------------------------------------------|
| DDL      | create_table, drop_table, alter_table_add_column,            |
|          | alter_table_drop_column                                      |
| DML      | insert, update, delete                                       |
| DQL      | select                                                       |
| DCL      | grant, revoke                                                |

Destructive filters:
    UpdateOperation and DeleteOperation with no criteria do not touch every
    row by accident. The caller states the intent with ``match_all=True``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Union

from filedb_engine.domain.value_objects import (
    ComparisonOperator,
    IfExistsPolicy,
    OperationCategory,
    OperationType,
    SortDirection,
)


_OPERATOR_SYMBOLS = {
    ComparisonOperator.EQ: "=",
    ComparisonOperator.NEQ: "<>",
    ComparisonOperator.GT: ">",
    ComparisonOperator.GTE: ">=",
    ComparisonOperator.LT: "<",
    ComparisonOperator.LTE: "<=",
    ComparisonOperator.CONTAINS: "LIKE",
    ComparisonOperator.IN: "IN",
}


@dataclass(frozen=True, slots=True)
class ColumnBlueprint:
    """Requested column definition, validated before it becomes a column."""

    name: str
    data_type: str = "text"
    nullable: bool = True
    default_value: Any = None
    is_primary_key: bool = False


@dataclass(frozen=True, slots=True)
class CriteriaCondition:
    """One ``column <operator> value`` filter condition."""

    column: str
    value: Any = None
    operator: ComparisonOperator = ComparisonOperator.EQ

    def describe(self) -> str:
        value = self.value
        if self.operator is ComparisonOperator.CONTAINS:
            value = f"%{value}%"
        return f"{self.column} {_OPERATOR_SYMBOLS[self.operator]} {json.dumps(value, default=str)}"


@dataclass(frozen=True, slots=True)
class OrderByClause:
    column: str
    direction: SortDirection = SortDirection.ASC


def _where(criteria: tuple[CriteriaCondition, ...]) -> str:
    if not criteria:
        return ""
    return " WHERE " + " AND ".join(c.describe() for c in criteria)


class _OperationMixin:
    """Shared behaviour of every operation class."""

    type: ClassVar[OperationType]

    @property
    def category(self) -> OperationCategory:
        return self.type.category

    @property
    def tables(self) -> tuple[str, ...]:
        """Tables this operation touches."""
        return (getattr(self, "table"),)


# =============================================================================
# DDL
# =============================================================================


@dataclass(frozen=True)
class CreateTableOperation(_OperationMixin):
    table: str
    columns: tuple[ColumnBlueprint, ...]
    description: str | None = None
    if_exists: IfExistsPolicy = IfExistsPolicy.ABORT

    type: ClassVar[OperationType] = OperationType.CREATE_TABLE

    def describe(self) -> str:
        cols = ", ".join(f"{c.name} {c.data_type}" for c in self.columns)
        return f"CREATE TABLE {self.table} ({cols})"


@dataclass(frozen=True)
class DropTableOperation(_OperationMixin):
    table: str
    if_exists: bool = False

    type: ClassVar[OperationType] = OperationType.DROP_TABLE

    def describe(self) -> str:
        guard = "IF EXISTS " if self.if_exists else ""
        return f"DROP TABLE {guard}{self.table}"


@dataclass(frozen=True)
class AddColumnOperation(_OperationMixin):
    table: str
    column: ColumnBlueprint
    position: int | None = None

    type: ClassVar[OperationType] = OperationType.ADD_COLUMN

    def describe(self) -> str:
        return f"ALTER TABLE {self.table} ADD COLUMN {self.column.name} {self.column.data_type}"


@dataclass(frozen=True)
class DropColumnOperation(_OperationMixin):
    table: str
    column: str

    type: ClassVar[OperationType] = OperationType.DROP_COLUMN

    def describe(self) -> str:
        return f"ALTER TABLE {self.table} DROP COLUMN {self.column}"


# =============================================================================
# DML
# =============================================================================


@dataclass(frozen=True)
class InsertOperation(_OperationMixin):
    table: str
    rows: tuple[Mapping[str, Any], ...]

    type: ClassVar[OperationType] = OperationType.INSERT

    def describe(self) -> str:
        return f"INSERT INTO {self.table} VALUES ({len(self.rows)} row(s))"


@dataclass(frozen=True)
class UpdateOperation(_OperationMixin):
    table: str
    changes: Mapping[str, Any]
    criteria: tuple[CriteriaCondition, ...] = ()
    match_all: bool = False

    type: ClassVar[OperationType] = OperationType.UPDATE

    def describe(self) -> str:
        sets = ", ".join(
            f"{col} = {json.dumps(val, default=str)}" for col, val in self.changes.items()
        )
        return f"UPDATE {self.table} SET {sets}{_where(self.criteria)}"


@dataclass(frozen=True)
class DeleteOperation(_OperationMixin):
    table: str
    criteria: tuple[CriteriaCondition, ...] = ()
    match_all: bool = False

    type: ClassVar[OperationType] = OperationType.DELETE

    def describe(self) -> str:
        return f"DELETE FROM {self.table}{_where(self.criteria)}"


# =============================================================================
# DQL
# =============================================================================


@dataclass(frozen=True)
class SelectOperation(_OperationMixin):
    table: str
    columns: tuple[str, ...] | None = None
    criteria: tuple[CriteriaCondition, ...] = ()
    order_by: tuple[OrderByClause, ...] = ()
    limit: int | None = None

    type: ClassVar[OperationType] = OperationType.SELECT

    def describe(self) -> str:
        projection = ", ".join(self.columns) if self.columns else "*"
        text = f"SELECT {projection} FROM {self.table}{_where(self.criteria)}"
        if self.order_by:
            text += " ORDER BY " + ", ".join(
                f"{o.column} {o.direction.value.upper()}" for o in self.order_by
            )
        if self.limit is not None:
            text += f" LIMIT {self.limit}"
        return text


# =============================================================================
# DCL
# =============================================================================


@dataclass(frozen=True)
class GrantOperation(_OperationMixin):
    role: str
    table: str
    privileges: tuple[str, ...]
    description: str | None = None

    type: ClassVar[OperationType] = OperationType.GRANT

    def describe(self) -> str:
        return f"GRANT {', '.join(self.privileges)} ON {self.table} TO {self.role}"


@dataclass(frozen=True)
class RevokeOperation(_OperationMixin):
    role: str
    table: str
    privileges: tuple[str, ...]

    type: ClassVar[OperationType] = OperationType.REVOKE

    def describe(self) -> str:
        return f"REVOKE {', '.join(self.privileges)} ON {self.table} FROM {self.role}"


Operation = Union[
    CreateTableOperation,
    DropTableOperation,
    AddColumnOperation,
    DropColumnOperation,
    InsertOperation,
    UpdateOperation,
    DeleteOperation,
    SelectOperation,
    GrantOperation,
    RevokeOperation,
]

OPERATION_CLASSES: dict[OperationType, type] = {
    cls.type: cls
    for cls in (
        CreateTableOperation,
        DropTableOperation,
        AddColumnOperation,
        DropColumnOperation,
        InsertOperation,
        UpdateOperation,
        DeleteOperation,
        SelectOperation,
        GrantOperation,
        RevokeOperation,
    )
}


@dataclass(frozen=True)
class Plan:
    """An ordered batch of operations produced by an external planner."""

    operations: tuple[Operation, ...]
    thought: str | None = None
    final_response: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
