"""Enumerations shared by the document engine.

These types form the closed vocabularies of the engine: the operation tags a
plan may contain, the privileges a role may hold on a table, the comparison
operators understood by criteria, and the column data types a table may
declare.
"""

from __future__ import annotations

from enum import Enum


class OperationCategory(str, Enum):
    """Statement family an operation belongs to."""

    DDL = "DDL"
    DML = "DML"
    DQL = "DQL"
    DCL = "DCL"


class OperationType(str, Enum):
    """Tag of every operation the executor understands.

    The set is closed: adding a member requires a matching operation class
    and executor handler.
    """

    CREATE_TABLE = "ddl.create_table"
    DROP_TABLE = "ddl.drop_table"
    ADD_COLUMN = "ddl.alter_table_add_column"
    DROP_COLUMN = "ddl.alter_table_drop_column"
    INSERT = "dml.insert"
    UPDATE = "dml.update"
    DELETE = "dml.delete"
    SELECT = "dql.select"
    GRANT = "dcl.grant"
    REVOKE = "dcl.revoke"

    @property
    def category(self) -> OperationCategory:
        """Category derived from the tag prefix."""
        return OperationCategory(self.value.split(".", 1)[0].upper())

    @property
    def is_mutating(self) -> bool:
        """Whether a successful run changes the document."""
        return self is not OperationType.SELECT


class ExecutionStatus(str, Enum):
    """Outcome of a single operation."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class Privilege(str, Enum):
    """Actions a role may be granted on a table.

    Declaration order is the canonical order used whenever privileges are
    listed or persisted.
    """

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    ALTER = "alter"
    DROP = "drop"
    MANAGE_PERMISSIONS = "manage_permissions"

    @classmethod
    def canonical(cls, privileges: set[Privilege] | frozenset[Privilege]) -> tuple[Privilege, ...]:
        """Order a privilege set by declaration order."""
        return tuple(p for p in cls if p in privileges)


class ComparisonOperator(str, Enum):
    """Operators available to a criteria condition."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    IN = "in"

    @property
    def is_numeric(self) -> bool:
        return self in (
            ComparisonOperator.GT,
            ComparisonOperator.GTE,
            ComparisonOperator.LT,
            ComparisonOperator.LTE,
        )


class SortDirection(str, Enum):
    """Direction of an ORDER BY clause."""

    ASC = "asc"
    DESC = "desc"


class IfExistsPolicy(str, Enum):
    """What create_table does when the table already exists."""

    ABORT = "abort"
    SKIP = "skip"
    REPLACE = "replace"


class DataType(str, Enum):
    """Column data types recognised by the engine."""

    TEXT = "text"
    STRING = "string"
    UUID = "uuid"
    INTEGER = "integer"
    NUMBER = "number"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    JSON = "json"

    @classmethod
    def parse(cls, tag: str) -> DataType | None:
        """Resolve a free-form type tag, or None when it is not recognised."""
        normalized = tag.strip().lower()
        normalized = _DATA_TYPE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return None

    @property
    def is_textual(self) -> bool:
        return self in (DataType.TEXT, DataType.STRING, DataType.UUID)

    @property
    def is_numeric(self) -> bool:
        return self in (DataType.INTEGER, DataType.NUMBER, DataType.FLOAT, DataType.DECIMAL)

    @property
    def is_temporal(self) -> bool:
        return self in (DataType.DATE, DataType.DATETIME)


_DATA_TYPE_ALIASES = {
    "int": "integer",
    "bigint": "integer",
    "varchar": "text",
    "bool": "boolean",
    "timestamp": "datetime",
}
