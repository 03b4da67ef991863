"""Schema and privilege model: pure validation and lookup, no I/O.

This module turns column blueprints into column definitions, coerces row
values to their column's data type, normalises privilege lists and answers
"may this role do that on this table".

Privilege rules:
    - The admin role holds every privilege on every table.
    - Any other role holds exactly the privileges of its TablePermission on
      the table; no entry means no privileges.
    - Granting or revoking needs manage_permissions, which covers every
      privilege including manage_permissions itself.
    - Creating a table needs the admin role (there is no table to hold a
      permission entry yet).
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime, timezone
from typing import Any, Iterable

from filedb_engine.domain.entities import (
    AddColumnOperation,
    ColumnBlueprint,
    ColumnDefinition,
    CreateTableOperation,
    DeleteOperation,
    Document,
    DropColumnOperation,
    DropTableOperation,
    GrantOperation,
    InsertOperation,
    Operation,
    RevokeOperation,
    SelectOperation,
    UpdateOperation,
)
from filedb_engine.domain.value_objects import DataType, Privilege
from filedb_engine.ports.inbound.document_engine import SchemaError, ValidationError


# =============================================================================
# Column blueprints
# =============================================================================


def validate_column_blueprint(
    blueprint: ColumnBlueprint,
    existing_names: Iterable[str] = (),
) -> ColumnDefinition:
    """Validate a blueprint against the names already taken in the table.

    Primary-key columns are forced non-nullable. The data type is stored in
    its canonical spelling ("int" becomes "integer").

    Raises:
        SchemaError: Empty or duplicated name, unrecognised data type, or a
            default value that does not fit the data type.
    """
    name = blueprint.name.strip()
    if not name:
        raise SchemaError("Column name cannot be empty.")
    if name in set(existing_names):
        raise SchemaError(f'Duplicate column name "{name}".')

    data_type = DataType.parse(blueprint.data_type or "")
    if data_type is None:
        raise SchemaError(
            f'Column "{name}" has unrecognised data type "{blueprint.data_type}".'
        )

    column = ColumnDefinition(
        name=name,
        data_type=data_type.value,
        nullable=blueprint.nullable and not blueprint.is_primary_key,
        is_primary_key=blueprint.is_primary_key,
    )

    if blueprint.default_value is not None:
        try:
            column.default_value = coerce_value(column, blueprint.default_value)
        except ValidationError as e:
            raise SchemaError(f'Invalid default for column "{name}": {e}') from e

    return column


def validate_column_blueprints(blueprints: Iterable[ColumnBlueprint]) -> list[ColumnDefinition]:
    """Validate the full column list of a new table.

    Raises:
        SchemaError: No columns, a bad blueprint, or more than one
            primary key.
    """
    columns: list[ColumnDefinition] = []
    for blueprint in blueprints:
        columns.append(validate_column_blueprint(blueprint, (c.name for c in columns)))

    if not columns:
        raise SchemaError("Cannot create a table without columns.")
    if sum(1 for c in columns if c.is_primary_key) > 1:
        raise SchemaError("Multiple primary keys are not supported.")
    return columns


def next_column_order(order: list[str], name: str, position: int | None = None) -> list[str]:
    """Return a new column order with ``name`` appended or inserted.

    Positions past the end append; later names shift right.

    Raises:
        SchemaError: If position is negative.
    """
    if position is None:
        return [*order, name]
    if position < 0:
        raise SchemaError(f"Column position must be non-negative, got {position}.")
    index = min(position, len(order))
    return [*order[:index], name, *order[index:]]


# =============================================================================
# Value coercion
# =============================================================================


def _coerce_number(column: ColumnDefinition, value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValidationError(f'Value for column "{column.name}" must be numeric.')
    number: int | float
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise ValidationError(
                    f'Value for column "{column.name}" must be numeric.'
                ) from None
    else:
        raise ValidationError(f'Value for column "{column.name}" must be numeric.')

    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationError(f'Value for column "{column.name}" must be a finite number.')

    if column.data_type == DataType.INTEGER.value:
        if isinstance(number, float):
            if not number.is_integer():
                raise ValidationError(
                    f'Value for column "{column.name}" must be an integer.'
                )
            number = int(number)
    return number


def _coerce_boolean(column: ColumnDefinition, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    raise ValidationError(f'Value for column "{column.name}" must be boolean.')


def _coerce_temporal(column: ColumnDefinition, value: Any) -> str:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(
                f'Value for column "{column.name}" must be a valid date.'
            ) from None
    else:
        raise ValidationError(f'Value for column "{column.name}" must be a valid date.')

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def coerce_value(column: ColumnDefinition, value: Any) -> Any:
    """Coerce a value to the column's data type.

    Raises:
        ValidationError: If the value is None for a non-nullable column or
            cannot be represented in the column's type.
    """
    if value is None:
        if not column.nullable:
            raise ValidationError(f'Column "{column.name}" does not allow null values.')
        return None

    data_type = DataType.parse(column.data_type)
    if data_type is None:
        return value
    if data_type.is_textual:
        return str(value)
    if data_type.is_numeric:
        return _coerce_number(column, value)
    if data_type is DataType.BOOLEAN:
        return _coerce_boolean(column, value)
    if data_type.is_temporal:
        return _coerce_temporal(column, value)
    if data_type is DataType.JSON and isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValidationError(f'Invalid JSON for column "{column.name}": {e}') from e
    return value


# =============================================================================
# Privileges
# =============================================================================


def normalize_privileges(values: Iterable[str | Privilege]) -> tuple[Privilege, ...]:
    """Parse privilege names into a canonical, duplicate-free tuple.

    Raises:
        ValidationError: Unknown privilege name, or nothing to grant.
    """
    found: set[Privilege] = set()
    for entry in values:
        name = entry.value if isinstance(entry, Privilege) else str(entry).strip().lower()
        if not name:
            continue
        try:
            found.add(Privilege(name))
        except ValueError:
            raise ValidationError(f'Privilege "{name}" is not supported.') from None
    if not found:
        raise ValidationError("At least one privilege is required.")
    return Privilege.canonical(found)


def resolve_privilege(
    document: Document,
    role: str,
    table: str,
    action: Privilege,
    admin_role: str = "admin",
) -> bool:
    """Return whether ``role`` holds ``action`` on ``table``."""
    if role == admin_role:
        return True
    owner = document.tables.get(table)
    if owner is None:
        return False
    permission = owner.permissions.get(role)
    if permission is None:
        return False
    return permission.holds(action)


def required_privilege(operation: Operation) -> Privilege | None:
    """Privilege an operation needs on its table.

    Returns None for create_table, which is reserved to the admin role.
    """
    if isinstance(operation, CreateTableOperation):
        return None
    if isinstance(operation, DropTableOperation):
        return Privilege.DROP
    if isinstance(operation, (AddColumnOperation, DropColumnOperation)):
        return Privilege.ALTER
    if isinstance(operation, InsertOperation):
        return Privilege.INSERT
    if isinstance(operation, UpdateOperation):
        return Privilege.UPDATE
    if isinstance(operation, DeleteOperation):
        return Privilege.DELETE
    if isinstance(operation, SelectOperation):
        return Privilege.SELECT
    if isinstance(operation, (GrantOperation, RevokeOperation)):
        return Privilege.MANAGE_PERMISSIONS
    raise TypeError(f"Unsupported operation type: {type(operation).__name__}")
