"""Operation executor: applies one operation to one document.

The executor is the only code that mutates a Document. It holds no state of
its own besides configuration; the document is passed in on every call.

Execution contract:
    1. The operation is dispatched over the closed operation set. An object
       outside that set raises TypeError.
    2. The acting role (if any) must exist. Table lookups happen before
       privilege checks, so a missing table reports NotFoundError (or a
       skip under if_exists) rather than a privilege failure.
    3. The handler validates everything before touching the document.
       A failing operation leaves the document exactly as it was.
    4. A successful mutation calls ``Document.mark_mutated`` exactly once.
       Skipped, failed and read-only operations never change the revision.
    5. EngineError subclasses become an ExecutionResult with status "error".

Destructive filters:
    update/delete with empty criteria are rejected unless the operation sets
    ``match_all=True``. Setting ``match_all`` together with criteria is also
    rejected, since the intent is ambiguous.

Select pipeline:
    filter -> stable sort -> limit -> projection, always in that order.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from filedb_engine.domain.entities import (
    AddColumnOperation,
    CreateTableOperation,
    DeleteOperation,
    Document,
    DropColumnOperation,
    DropTableOperation,
    ExecutionResult,
    GrantOperation,
    InsertOperation,
    Operation,
    QueryResultSet,
    RevokeOperation,
    SelectOperation,
    Table,
    TablePermission,
    UpdateOperation,
)
from filedb_engine.domain.services.criteria import build_predicate, to_number
from filedb_engine.domain.services.schema_model import (
    coerce_value,
    next_column_order,
    normalize_privileges,
    required_privilege,
    resolve_privilege,
    validate_column_blueprint,
    validate_column_blueprints,
)
from filedb_engine.domain.value_objects import (
    ExecutionStatus,
    IfExistsPolicy,
    Privilege,
    SortDirection,
    new_execution_id,
    utc_now_iso,
)
from filedb_engine.ports.inbound.document_engine import (
    ConflictError,
    EngineError,
    NotFoundError,
    PrivilegeError,
    SchemaError,
    ValidationError,
)


@dataclass
class _Outcome:
    """What a handler reports back to ``execute``."""

    detail: str
    status: ExecutionStatus = ExecutionStatus.SUCCESS
    result_set: QueryResultSet | None = None
    affected_rows: int | None = None


def _row_key(value: Any) -> Any:
    """Hashable identity of a primary key value."""
    try:
        hash(value)
    except TypeError:
        return json.dumps(value, sort_keys=True, default=str)
    return value


def _sort_key(value: Any) -> tuple[int, Any]:
    """Total order over mixed row values: None, then numbers, then text."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    number = to_number(value) if isinstance(value, (int, float)) else None
    if number is not None:
        return (1, number)
    return (2, str(value))


class OperationExecutor:
    """Applies operations to a document and reports an ExecutionResult each.

    Example:
        >>> executor = OperationExecutor()
        >>> doc = Document.empty("admin", utc_now_iso())
        >>> result = executor.execute(DropTableOperation("ghost", if_exists=True), doc)
        >>> result.status
        <ExecutionStatus.SKIPPED: 'skipped'>
    """

    def __init__(
        self,
        admin_role: str = "admin",
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._admin_role = admin_role
        self._clock = clock
        self._handlers: dict[type, Callable[[Any, Document, str | None], _Outcome]] = {
            CreateTableOperation: self._create_table,
            DropTableOperation: self._drop_table,
            AddColumnOperation: self._add_column,
            DropColumnOperation: self._drop_column,
            InsertOperation: self._insert,
            UpdateOperation: self._update,
            DeleteOperation: self._delete,
            SelectOperation: self._select,
            GrantOperation: self._grant,
            RevokeOperation: self._revoke,
        }

    @property
    def admin_role(self) -> str:
        return self._admin_role

    def execute(
        self,
        operation: Operation,
        document: Document,
        actor: str | None = None,
    ) -> ExecutionResult:
        """Apply one operation.

        Args:
            operation: Member of the closed operation set.
            document: Document to read or mutate in place.
            actor: Acting role, or None for the trusted in-process caller.

        Returns:
            ExecutionResult describing the outcome.

        Raises:
            TypeError: If the operation is not a known operation type.
        """
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise TypeError(f"Unsupported operation type: {type(operation).__name__}")

        execution_id = new_execution_id()
        try:
            if actor is not None and actor not in document.roles:
                raise PrivilegeError(f'Role "{actor}" is not defined.')
            outcome = handler(operation, document, actor)
        except EngineError as e:
            return ExecutionResult(
                id=execution_id,
                type=operation.type,
                status=ExecutionStatus.ERROR,
                detail=str(e),
                error_kind=e.kind,
            )

        return ExecutionResult(
            id=execution_id,
            type=operation.type,
            status=outcome.status,
            detail=outcome.detail,
            result_set=outcome.result_set,
            affected_rows=outcome.affected_rows,
        )

    # =========================================================================
    # Shared checks
    # =========================================================================

    def _require_table(self, document: Document, name: str) -> Table:
        table = document.tables.get(name)
        if table is None:
            raise NotFoundError(f'Table "{name}" does not exist.')
        return table

    def _authorize(self, document: Document, actor: str | None, operation: Operation) -> None:
        if actor is None:
            return
        privilege = required_privilege(operation)
        if privilege is None:
            if actor != self._admin_role:
                raise PrivilegeError(
                    f'Role "{actor}" cannot {operation.type.value}; '
                    f'only "{self._admin_role}" may create tables.'
                )
            return
        if not resolve_privilege(document, actor, operation.table, privilege, self._admin_role):
            raise PrivilegeError(
                f'Role "{actor}" lacks the {privilege.value} privilege '
                f'on table "{operation.table}".'
            )

    @staticmethod
    def _check_filter_intent(operation: UpdateOperation | DeleteOperation) -> None:
        verb = "update" if isinstance(operation, UpdateOperation) else "delete"
        if operation.criteria and operation.match_all:
            raise ValidationError(
                f"Cannot {verb} with both criteria and match_all; choose one."
            )
        if not operation.criteria and not operation.match_all:
            raise ValidationError(
                f"Refusing to {verb} every row of \"{operation.table}\" without "
                "criteria; set match_all to confirm."
            )

    def _commit(self, document: Document, table: Table | None = None) -> None:
        now = self._clock()
        if table is not None:
            table.touch(now)
        document.mark_mutated(now)

    # =========================================================================
    # DDL
    # =========================================================================

    def _create_table(
        self, op: CreateTableOperation, document: Document, actor: str | None
    ) -> _Outcome:
        self._authorize(document, actor, op)
        if not op.table.strip():
            raise SchemaError("Table name cannot be empty.")

        existing = document.tables.get(op.table)
        if existing is not None:
            if op.if_exists is IfExistsPolicy.SKIP:
                return _Outcome(
                    detail=f'Table "{op.table}" already exists; skipping creation as requested.',
                    status=ExecutionStatus.SKIPPED,
                )
            if op.if_exists is IfExistsPolicy.ABORT:
                raise ConflictError(f'Table "{op.table}" already exists.')

        columns = validate_column_blueprints(op.columns)
        now = self._clock()
        table = Table(
            name=op.table,
            description=op.description,
            primary_key=next((c.name for c in columns if c.is_primary_key), None),
            columns={c.name: c for c in columns},
            column_order=[c.name for c in columns],
            created_at=now,
            updated_at=now,
        )
        table.check_invariants()

        document.tables[op.table] = table
        self._commit(document)
        verb = "Replaced" if existing is not None else "Created"
        return _Outcome(detail=f'{verb} table "{op.table}" with {len(columns)} column(s).')

    def _drop_table(
        self, op: DropTableOperation, document: Document, actor: str | None
    ) -> _Outcome:
        table = document.tables.get(op.table)
        if table is None:
            if op.if_exists:
                return _Outcome(
                    detail=f'Table "{op.table}" does not exist; skipping drop as requested.',
                    status=ExecutionStatus.SKIPPED,
                )
            raise NotFoundError(f'Table "{op.table}" does not exist.')
        self._authorize(document, actor, op)

        del document.tables[op.table]
        self._commit(document)
        return _Outcome(
            detail=f'Dropped table "{op.table}" (removed {len(table.rows)} row(s)).',
            affected_rows=len(table.rows),
        )

    def _add_column(
        self, op: AddColumnOperation, document: Document, actor: str | None
    ) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)

        column = validate_column_blueprint(op.column, table.column_order)
        if column.is_primary_key and table.primary_key is not None:
            raise SchemaError(
                f'Table "{op.table}" already has primary key "{table.primary_key}".'
            )
        if table.rows:
            if column.is_primary_key:
                raise ValidationError(
                    f'Cannot add primary key column "{column.name}" to non-empty '
                    f'table "{op.table}".'
                )
            if column.is_required:
                raise ValidationError(
                    f'Cannot add non-nullable column "{column.name}" without a default '
                    f'to non-empty table "{op.table}".'
                )
        order = next_column_order(table.column_order, column.name, op.position)

        table.columns[column.name] = column
        table.column_order = order
        if column.is_primary_key:
            table.primary_key = column.name
        if column.has_default:
            for row in table.rows:
                row[column.name] = copy.deepcopy(column.default_value)
        self._commit(document, table)
        return _Outcome(detail=f'Added column "{column.name}" to table "{op.table}".')

    def _drop_column(
        self, op: DropColumnOperation, document: Document, actor: str | None
    ) -> _Outcome:
        table = self._require_table(document, op.table)
        if op.column not in table.columns:
            raise NotFoundError(f'Column "{op.column}" does not exist on table "{op.table}".')
        self._authorize(document, actor, op)
        if table.columns[op.column].is_primary_key or table.primary_key == op.column:
            raise SchemaError(
                f'Cannot drop primary key column "{op.column}" from table "{op.table}".'
            )

        del table.columns[op.column]
        table.column_order = [name for name in table.column_order if name != op.column]
        for row in table.rows:
            row.pop(op.column, None)
        self._commit(document, table)
        return _Outcome(detail=f'Dropped column "{op.column}" from table "{op.table}".')

    # =========================================================================
    # DML
    # =========================================================================

    def _prepare_row(self, table: Table, payload: Mapping[str, Any], index: int) -> dict[str, Any]:
        for name in payload:
            if name not in table.columns:
                raise ValidationError(
                    f'Row {index}: unknown column "{name}" on table "{table.name}".'
                )

        row: dict[str, Any] = {}
        for column in table.ordered_columns():
            if column.name in payload:
                try:
                    row[column.name] = coerce_value(column, payload[column.name])
                except ValidationError as e:
                    raise ValidationError(f"Row {index}: {e}") from e
            elif column.has_default:
                row[column.name] = copy.deepcopy(column.default_value)
            elif not column.nullable:
                raise ValidationError(
                    f'Row {index}: column "{column.name}" is required.'
                )
        return row

    def _insert(self, op: InsertOperation, document: Document, actor: str | None) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)
        if not op.rows:
            raise ValidationError("Insert requires at least one row.")

        prepared = [self._prepare_row(table, payload, i) for i, payload in enumerate(op.rows)]

        pk = table.primary_key
        if pk is not None:
            seen = {_row_key(row.get(pk)) for row in table.rows}
            for index, row in enumerate(prepared):
                value = row.get(pk)
                if value is None:
                    raise ValidationError(
                        f'Row {index}: primary key column "{pk}" is required.'
                    )
                key = _row_key(value)
                if key in seen:
                    raise ValidationError(
                        f'Row {index}: duplicate primary key value {value!r} '
                        f'for column "{pk}".'
                    )
                seen.add(key)

        table.rows.extend(prepared)
        self._commit(document, table)
        return _Outcome(
            detail=f'Inserted {len(prepared)} row(s) into "{op.table}".',
            affected_rows=len(prepared),
        )

    def _update(self, op: UpdateOperation, document: Document, actor: str | None) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)
        if not op.changes:
            raise ValidationError("Update requires at least one column change.")
        self._check_filter_intent(op)

        changes: dict[str, Any] = {}
        for name, value in op.changes.items():
            column = table.columns.get(name)
            if column is None:
                raise ValidationError(f'Unknown column "{name}" on table "{op.table}".')
            changes[name] = coerce_value(column, value)

        predicate = build_predicate(op.criteria)
        targets = [row for row in table.rows if predicate(row)]

        pk = table.primary_key
        if pk is not None and pk in changes and targets:
            key = _row_key(changes[pk])
            if len(targets) > 1:
                raise ValidationError(
                    f'Update would give {len(targets)} rows the same primary key '
                    f'value {changes[pk]!r}.'
                )
            target = targets[0]
            if any(
                _row_key(row.get(pk)) == key for row in table.rows if row is not target
            ):
                raise ValidationError(
                    f'Duplicate primary key value {changes[pk]!r} for column "{pk}".'
                )

        for row in targets:
            for name, value in changes.items():
                row[name] = copy.deepcopy(value)
        self._commit(document, table)
        return _Outcome(
            detail=f'Updated {len(targets)} row(s) in "{op.table}".',
            affected_rows=len(targets),
        )

    def _delete(self, op: DeleteOperation, document: Document, actor: str | None) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)
        self._check_filter_intent(op)

        predicate = build_predicate(op.criteria)
        kept = [row for row in table.rows if not predicate(row)]
        removed = len(table.rows) - len(kept)

        table.rows = kept
        self._commit(document, table)
        return _Outcome(
            detail=f'Deleted {removed} row(s) from "{op.table}".',
            affected_rows=removed,
        )

    # =========================================================================
    # DQL
    # =========================================================================

    def _select(self, op: SelectOperation, document: Document, actor: str | None) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)

        projection = list(op.columns) if op.columns else list(table.column_order)
        for name in [*projection, *(clause.column for clause in op.order_by)]:
            if name not in table.columns:
                raise NotFoundError(f'Column "{name}" does not exist on table "{op.table}".')
        if op.limit is not None and op.limit < 0:
            raise ValidationError(f"Limit must be non-negative, got {op.limit}.")

        predicate = build_predicate(op.criteria)
        rows = [row for row in table.rows if predicate(row)]

        # successive stable sorts, least significant key first
        for clause in reversed(op.order_by):
            rows.sort(
                key=lambda row, col=clause.column: _sort_key(row.get(col)),
                reverse=clause.direction is SortDirection.DESC,
            )

        if op.limit is not None:
            rows = rows[: op.limit]

        result_rows = [
            {name: copy.deepcopy(row[name]) for name in projection if name in row}
            for row in rows
        ]
        result_set = QueryResultSet(
            columns=projection,
            rows=result_rows,
            limit=op.limit,
            title=op.table,
        )
        return _Outcome(
            detail=f'Returned {result_set.row_count} row(s) from "{op.table}".',
            result_set=result_set,
        )

    # =========================================================================
    # DCL
    # =========================================================================

    def _grant(self, op: GrantOperation, document: Document, actor: str | None) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)
        role = op.role.strip()
        if not role:
            raise ValidationError("Role name cannot be empty.")
        privileges = normalize_privileges(op.privileges)

        now = self._clock()
        document.ensure_role(role, op.description, now)
        existing = table.permissions.get(role)
        merged = set(privileges) | set(existing.privileges if existing else ())
        table.permissions[role] = TablePermission(
            role=role,
            privileges=Privilege.canonical(merged),
            granted_at=now,
        )
        self._commit(document, table)
        granted = ", ".join(p.value for p in privileges)
        return _Outcome(detail=f'Granted {granted} on "{op.table}" to role "{role}".')

    def _revoke(self, op: RevokeOperation, document: Document, actor: str | None) -> _Outcome:
        table = self._require_table(document, op.table)
        self._authorize(document, actor, op)
        role = op.role.strip()
        privileges = normalize_privileges(op.privileges)
        existing = table.permissions.get(role)
        if existing is None:
            raise NotFoundError(f'Role "{role}" has no privileges on table "{op.table}".')

        remaining = set(existing.privileges) - set(privileges)
        if remaining:
            table.permissions[role] = TablePermission(
                role=role,
                privileges=Privilege.canonical(remaining),
                granted_at=existing.granted_at,
            )
        else:
            del table.permissions[role]
        self._commit(document, table)
        revoked = ", ".join(p.value for p in privileges)
        return _Outcome(detail=f'Revoked {revoked} on "{op.table}" from role "{role}".')
