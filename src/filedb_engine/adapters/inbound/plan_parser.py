"""Planner payload parser.

Turns the JSON produced by an external planner (or posted to the REST
adapter) into domain operations. The wire format uses camelCase keys:

    {
      "thought": "Create a users table and seed it.",
      "operations": [
        {"type": "ddl.create_table", "table": "users", "ifExists": "skip",
         "columns": [{"name": "id", "dataType": "integer", "isPrimaryKey": true},
                     {"name": "name"}]},
        {"type": "dml.insert", "table": "users", "rows": [{"id": 1, "name": "Ann"}]},
        {"type": "dml.delete", "table": "users", "matchAll": true}
      ],
      "finalResponse": "Done.",
      "warnings": []
    }

Planners are sloppy, so the parser is lenient where it is safe to be:
    - A fenced code block or chatter around the outermost braces is stripped.
    - Operation types are normalised: "createTable", "create-table",
      "create_table" and "ddl.create_table" all name the same operation.
    - Column blueprints default to dataType "text" and nullable true.

Semantic checks (empty column lists, negative limits, unknown privileges,
...) are left to the executor so that one bad operation fails on its own
instead of rejecting the whole plan.
"""

from __future__ import annotations

import json
import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from filedb_engine.domain.entities import (
    AddColumnOperation,
    ColumnBlueprint,
    CreateTableOperation,
    CriteriaCondition,
    DeleteOperation,
    DropColumnOperation,
    DropTableOperation,
    GrantOperation,
    InsertOperation,
    Operation,
    OrderByClause,
    Plan,
    RevokeOperation,
    SelectOperation,
    UpdateOperation,
)
from filedb_engine.domain.value_objects import (
    ComparisonOperator,
    IfExistsPolicy,
    OperationType,
    SortDirection,
)


class PlanParseError(ValueError):
    """The payload is not a valid plan or operation."""


_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_DELIMITERS = re.compile(r"[\s\-]+")

_TYPE_BY_NAME: dict[str, str] = {}
for _member in OperationType:
    _TYPE_BY_NAME[_member.value] = _member.value
    _TYPE_BY_NAME[_member.value.split(".", 1)[1]] = _member.value
_TYPE_BY_NAME["add_column"] = OperationType.ADD_COLUMN.value
_TYPE_BY_NAME["drop_column"] = OperationType.DROP_COLUMN.value


# =============================================================================
# Wire models
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ColumnBlueprintModel(_WireModel):
    name: str = Field(..., min_length=1)
    data_type: str = Field("text", alias="dataType")
    nullable: bool = True
    default_value: Any = Field(None, alias="defaultValue")
    is_primary_key: bool = Field(False, alias="isPrimaryKey")

    def to_domain(self) -> ColumnBlueprint:
        return ColumnBlueprint(
            name=self.name,
            data_type=self.data_type,
            nullable=self.nullable,
            default_value=self.default_value,
            is_primary_key=self.is_primary_key,
        )


class CriteriaConditionModel(_WireModel):
    column: str = Field(..., min_length=1)
    operator: ComparisonOperator = ComparisonOperator.EQ
    value: Any = None

    def to_domain(self) -> CriteriaCondition:
        return CriteriaCondition(column=self.column, value=self.value, operator=self.operator)


class OrderByModel(_WireModel):
    column: str = Field(..., min_length=1)
    direction: SortDirection = SortDirection.ASC

    def to_domain(self) -> OrderByClause:
        return OrderByClause(column=self.column, direction=self.direction)


def _criteria(models: list[CriteriaConditionModel]) -> tuple[CriteriaCondition, ...]:
    return tuple(m.to_domain() for m in models)


class CreateTableModel(_WireModel):
    type: Literal["ddl.create_table"]
    table: str = Field(..., min_length=1)
    columns: list[ColumnBlueprintModel] = Field(default_factory=list)
    description: str | None = None
    if_exists: IfExistsPolicy = Field(IfExistsPolicy.ABORT, alias="ifExists")

    def to_domain(self) -> CreateTableOperation:
        return CreateTableOperation(
            table=self.table,
            columns=tuple(c.to_domain() for c in self.columns),
            description=self.description,
            if_exists=self.if_exists,
        )


class DropTableModel(_WireModel):
    type: Literal["ddl.drop_table"]
    table: str = Field(..., min_length=1)
    if_exists: bool = Field(False, alias="ifExists")

    def to_domain(self) -> DropTableOperation:
        return DropTableOperation(table=self.table, if_exists=self.if_exists)


class AddColumnModel(_WireModel):
    type: Literal["ddl.alter_table_add_column"]
    table: str = Field(..., min_length=1)
    column: ColumnBlueprintModel
    position: int | None = None

    def to_domain(self) -> AddColumnOperation:
        return AddColumnOperation(
            table=self.table, column=self.column.to_domain(), position=self.position
        )


class DropColumnModel(_WireModel):
    type: Literal["ddl.alter_table_drop_column"]
    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)

    def to_domain(self) -> DropColumnOperation:
        return DropColumnOperation(table=self.table, column=self.column)


class InsertModel(_WireModel):
    type: Literal["dml.insert"]
    table: str = Field(..., min_length=1)
    rows: list[dict[str, Any]] = Field(default_factory=list)

    def to_domain(self) -> InsertOperation:
        return InsertOperation(table=self.table, rows=tuple(dict(r) for r in self.rows))


class UpdateModel(_WireModel):
    type: Literal["dml.update"]
    table: str = Field(..., min_length=1)
    changes: dict[str, Any] = Field(default_factory=dict)
    criteria: list[CriteriaConditionModel] = Field(default_factory=list)
    match_all: bool = Field(False, alias="matchAll")

    def to_domain(self) -> UpdateOperation:
        return UpdateOperation(
            table=self.table,
            changes=dict(self.changes),
            criteria=_criteria(self.criteria),
            match_all=self.match_all,
        )


class DeleteModel(_WireModel):
    type: Literal["dml.delete"]
    table: str = Field(..., min_length=1)
    criteria: list[CriteriaConditionModel] = Field(default_factory=list)
    match_all: bool = Field(False, alias="matchAll")

    def to_domain(self) -> DeleteOperation:
        return DeleteOperation(
            table=self.table, criteria=_criteria(self.criteria), match_all=self.match_all
        )


class SelectModel(_WireModel):
    type: Literal["dql.select"]
    table: str = Field(..., min_length=1)
    columns: list[str] | None = None
    criteria: list[CriteriaConditionModel] = Field(default_factory=list)
    order_by: list[OrderByModel] = Field(default_factory=list, alias="orderBy")
    limit: int | None = None

    def to_domain(self) -> SelectOperation:
        return SelectOperation(
            table=self.table,
            columns=tuple(self.columns) if self.columns else None,
            criteria=_criteria(self.criteria),
            order_by=tuple(o.to_domain() for o in self.order_by),
            limit=self.limit,
        )


class GrantModel(_WireModel):
    type: Literal["dcl.grant"]
    role: str = Field(..., min_length=1)
    table: str = Field(..., min_length=1)
    privileges: list[str] = Field(default_factory=list)
    description: str | None = None

    def to_domain(self) -> GrantOperation:
        return GrantOperation(
            role=self.role,
            table=self.table,
            privileges=tuple(self.privileges),
            description=self.description,
        )


class RevokeModel(_WireModel):
    type: Literal["dcl.revoke"]
    role: str = Field(..., min_length=1)
    table: str = Field(..., min_length=1)
    privileges: list[str] = Field(default_factory=list)

    def to_domain(self) -> RevokeOperation:
        return RevokeOperation(role=self.role, table=self.table, privileges=tuple(self.privileges))


OperationModel = Annotated[
    Union[
        CreateTableModel,
        DropTableModel,
        AddColumnModel,
        DropColumnModel,
        InsertModel,
        UpdateModel,
        DeleteModel,
        SelectModel,
        GrantModel,
        RevokeModel,
    ],
    Field(discriminator="type"),
]


class PlanModel(_WireModel):
    operations: list[OperationModel] = Field(default_factory=list)
    thought: str | None = None
    final_response: str | None = Field(None, alias="finalResponse")
    warnings: list[str] = Field(default_factory=list)

    def to_domain(self) -> Plan:
        return Plan(
            operations=tuple(op.to_domain() for op in self.operations),
            thought=self.thought,
            final_response=self.final_response,
            warnings=tuple(self.warnings),
        )


_OPERATION_ADAPTER: TypeAdapter[Any] = TypeAdapter(OperationModel)


# =============================================================================
# Normalisation
# =============================================================================


def sanitize_response(raw: str) -> str:
    """Strip a fenced code block and anything around the outermost braces."""
    candidate = raw.strip()
    if not candidate:
        return candidate
    fenced = _CODE_FENCE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    first = candidate.find("{")
    last = candidate.rfind("}")
    if first != -1 and last >= first:
        candidate = candidate[first : last + 1]
    return candidate


def normalize_operation_type(value: Any) -> str | None:
    """Map a loosely spelled operation type onto its canonical tag."""
    if not isinstance(value, str) or not value.strip():
        return None
    spelled = _CAMEL_BOUNDARY.sub(r"\1_\2", value.strip())
    spelled = _DELIMITERS.sub("_", spelled).lower()
    return _TYPE_BY_NAME.get(spelled, spelled)


def _normalize_column(column: Any) -> Any:
    if not isinstance(column, dict):
        return column
    blueprint = dict(column)
    data_type = blueprint.pop("data_type", None) or blueprint.get("dataType")
    if isinstance(data_type, str) and data_type.strip():
        blueprint["dataType"] = data_type.strip()
    else:
        blueprint["dataType"] = "text"
    if not isinstance(blueprint.get("nullable"), bool):
        blueprint["nullable"] = True
    return blueprint


def _normalize_operation(operation: Any) -> Any:
    if not isinstance(operation, dict):
        return operation
    entry = dict(operation)
    normalized = normalize_operation_type(entry.get("type"))
    if normalized:
        entry["type"] = normalized
    if entry.get("type") == OperationType.CREATE_TABLE.value and isinstance(
        entry.get("columns"), list
    ):
        entry["columns"] = [_normalize_column(c) for c in entry["columns"]]
    if entry.get("type") == OperationType.ADD_COLUMN.value and entry.get("column"):
        entry["column"] = _normalize_column(entry["column"])
    return entry


def _decode(raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PlanParseError(f"Plan payload was not valid UTF-8: {e}") from e
    try:
        payload = json.loads(sanitize_response(raw))
    except json.JSONDecodeError as e:
        raise PlanParseError(f"Plan payload was not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise PlanParseError("Plan payload must be a JSON object.")
    return payload


# =============================================================================
# Public API
# =============================================================================


def parse_operation(payload: dict[str, Any]) -> Operation:
    """Parse one operation payload.

    Raises:
        PlanParseError: If the payload does not describe a known operation.
    """
    try:
        model = _OPERATION_ADAPTER.validate_python(_normalize_operation(payload))
    except PydanticValidationError as e:
        raise PlanParseError(str(e)) from e
    return model.to_domain()


def parse_plan(raw: str | bytes | dict[str, Any]) -> Plan:
    """Parse a planner response (JSON text or decoded mapping) into a Plan.

    Raises:
        PlanParseError: If the payload is not valid JSON or not a valid plan.
    """
    payload = dict(_decode(raw))
    operations = payload.get("operations")
    if operations is None:
        operations = []
    elif not isinstance(operations, list):
        raise PlanParseError("Plan operations must be a list.")
    payload["operations"] = [_normalize_operation(op) for op in operations]
    try:
        model = PlanModel.model_validate(payload)
    except PydanticValidationError as e:
        raise PlanParseError(str(e)) from e
    return model.to_domain()
