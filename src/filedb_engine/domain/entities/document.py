"""Document entities: the persisted database state.

A document is the root persisted unit. It holds every table (columns, rows,
per-role permissions), every role, and a meta block carrying the schema
version and the revision counter.

Persisted format (JSON, camelCase keys):
    {
      "meta": {"version": 1, "revision": 3, "createdAt": ..., "updatedAt": ...},
      "tables": {
        "users": {
          "name": "users", "description": null, "primaryKey": "id",
          "columns": {"id": {"name": "id", "dataType": "integer",
                             "nullable": false, "isPrimaryKey": true}},
          "columnOrder": ["id"],
          "permissions": {"analyst": {"role": "analyst",
                                      "privileges": ["select"],
                                      "grantedAt": ...}},
          "rows": [{"id": 1}],
          "createdAt": ..., "updatedAt": ...
        }
      },
      "roles": {"admin": {"name": "admin", "description": ...,
                          "createdAt": ..., "updatedAt": ...}}
    }

Invariants:
    - ``meta.revision`` grows by exactly one per applied mutation and
      ``meta.updatedAt`` changes exactly when it does.
    - ``Table.columns`` and ``Table.column_order`` hold the same key set.
    - At most one column is a primary key and it equals ``Table.primary_key``.
    - A TablePermission never holds an empty privilege set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from filedb_engine.domain.value_objects import INITIAL_REVISION, Privilege, Revision
from filedb_engine.ports.inbound.document_engine import DocumentFormatError, SchemaError


SCHEMA_VERSION = 1

ADMIN_ROLE_DESCRIPTION = "Full access to every table and privilege."


@dataclass
class ColumnDefinition:
    """Definition of one table column.

    ``default_value`` of None means the column has no default.
    """

    name: str
    data_type: str
    nullable: bool = True
    default_value: Any = None
    is_primary_key: bool = False

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @property
    def is_required(self) -> bool:
        """Whether an inserted row must supply this column."""
        return not self.nullable and not self.has_default

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "dataType": self.data_type,
            "nullable": self.nullable,
            "isPrimaryKey": self.is_primary_key,
        }
        if self.has_default:
            data["defaultValue"] = self.default_value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnDefinition:
        return cls(
            name=data["name"],
            data_type=data["dataType"],
            nullable=data.get("nullable", True),
            default_value=data.get("defaultValue"),
            is_primary_key=data.get("isPrimaryKey", False),
        )


@dataclass
class TablePermission:
    """Privileges one role holds on one table."""

    role: str
    privileges: tuple[Privilege, ...]
    granted_at: str

    def __post_init__(self) -> None:
        self.privileges = Privilege.canonical(frozenset(self.privileges))

    def holds(self, privilege: Privilege) -> bool:
        return privilege in self.privileges

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "privileges": [p.value for p in self.privileges],
            "grantedAt": self.granted_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TablePermission:
        return cls(
            role=data["role"],
            privileges=tuple(Privilege(p) for p in data["privileges"]),
            granted_at=data["grantedAt"],
        )


@dataclass
class Table:
    """A table: ordered columns, ordered rows and per-role permissions.

    Rows are plain dicts keyed by column name. Insertion order of ``rows`` is
    the iteration order of unfiltered reads.
    """

    name: str
    created_at: str
    updated_at: str
    columns: dict[str, ColumnDefinition] = field(default_factory=dict)
    column_order: list[str] = field(default_factory=list)
    permissions: dict[str, TablePermission] = field(default_factory=dict)
    rows: list[dict[str, Any]] = field(default_factory=list)
    description: str | None = None
    primary_key: str | None = None

    def ordered_columns(self) -> list[ColumnDefinition]:
        """Columns in display order."""
        return [self.columns[name] for name in self.column_order]

    def touch(self, now: str) -> None:
        self.updated_at = now

    def check_invariants(self) -> None:
        """Raise SchemaError if the column or permission bookkeeping is inconsistent."""
        if set(self.columns) != set(self.column_order) or len(self.column_order) != len(
            set(self.column_order)
        ):
            raise SchemaError(
                f'Table "{self.name}" has mismatched columns and column order.'
            )
        flagged = [c.name for c in self.columns.values() if c.is_primary_key]
        if len(flagged) > 1:
            raise SchemaError(f'Table "{self.name}" declares more than one primary key.')
        if (flagged[0] if flagged else None) != self.primary_key:
            raise SchemaError(
                f'Table "{self.name}" primary key does not match its column flags.'
            )
        for role, permission in self.permissions.items():
            if not permission.privileges:
                raise SchemaError(f'Table "{self.name}" grants role "{role}" no privileges.')

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "primaryKey": self.primary_key,
            "columns": {name: col.to_dict() for name, col in self.columns.items()},
            "columnOrder": list(self.column_order),
            "permissions": {role: perm.to_dict() for role, perm in self.permissions.items()},
            "rows": [dict(row) for row in self.rows],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Table:
        return cls(
            name=data["name"],
            description=data.get("description"),
            primary_key=data.get("primaryKey"),
            columns={
                name: ColumnDefinition.from_dict(col)
                for name, col in data.get("columns", {}).items()
            },
            column_order=list(data.get("columnOrder", [])),
            permissions={
                role: TablePermission.from_dict(perm)
                for role, perm in data.get("permissions", {}).items()
            },
            rows=[dict(row) for row in data.get("rows", [])],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
        )


@dataclass
class Role:
    """A named role that can be granted table privileges."""

    name: str
    created_at: str
    updated_at: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Role:
        return cls(
            name=data["name"],
            description=data.get("description"),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
        )


@dataclass
class DocumentMeta:
    """Schema version and revision bookkeeping."""

    version: int
    revision: Revision
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "revision": self.revision,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentMeta:
        return cls(
            version=int(data["version"]),
            revision=Revision(int(data["revision"])),
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
        )


@dataclass
class Document:
    """The complete database state.

    Only the operation executor mutates a document. Every applied mutation
    ends with exactly one call to ``mark_mutated``.

    Example:
        >>> doc = Document.empty("admin", "2024-01-01T00:00:00.000+00:00")
        >>> doc.meta.revision
        0
        >>> doc.mark_mutated("2024-01-01T00:00:01.000+00:00")
        >>> doc.meta.revision
        1
    """

    meta: DocumentMeta
    tables: dict[str, Table] = field(default_factory=dict)
    roles: dict[str, Role] = field(default_factory=dict)

    SUPPORTED_VERSION: ClassVar[int] = SCHEMA_VERSION

    @classmethod
    def empty(cls, admin_role: str, now: str) -> Document:
        """Create a fresh document holding only the bootstrap admin role."""
        return cls(
            meta=DocumentMeta(
                version=SCHEMA_VERSION,
                revision=INITIAL_REVISION,
                created_at=now,
                updated_at=now,
            ),
            roles={
                admin_role: Role(
                    name=admin_role,
                    description=ADMIN_ROLE_DESCRIPTION,
                    created_at=now,
                    updated_at=now,
                )
            },
        )

    @property
    def revision(self) -> Revision:
        return self.meta.revision

    def mark_mutated(self, now: str) -> None:
        """Record one applied mutation."""
        self.meta.revision = Revision(self.meta.revision + 1)
        self.meta.updated_at = now

    def ensure_role(self, name: str, description: str | None, now: str) -> Role:
        """Return the named role, creating it if needed.

        A non-empty description that differs from the stored one replaces it.
        """
        role = self.roles.get(name)
        if role is None:
            role = Role(name=name, description=description, created_at=now, updated_at=now)
            self.roles[name] = role
        elif description and description != role.description:
            role.description = description
            role.updated_at = now
        return role

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "tables": {name: table.to_dict() for name, table in self.tables.items()},
            "roles": {name: role.to_dict() for name, role in self.roles.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Decode a persisted document.

        Raises:
            DocumentFormatError: If required fields are missing or malformed,
                or the document declares a newer schema version.
        """
        try:
            meta = DocumentMeta.from_dict(data["meta"])
            if meta.version > cls.SUPPORTED_VERSION:
                raise DocumentFormatError(
                    f"Document schema version {meta.version} is newer than "
                    f"supported version {cls.SUPPORTED_VERSION}."
                )
            document = cls(
                meta=meta,
                tables={
                    name: Table.from_dict(table)
                    for name, table in data.get("tables", {}).items()
                },
                roles={
                    name: Role.from_dict(role) for name, role in data.get("roles", {}).items()
                },
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DocumentFormatError(f"Malformed document: {e!r}") from e

        for table in document.tables.values():
            try:
                table.check_invariants()
            except SchemaError as e:
                raise DocumentFormatError(str(e)) from e
        return document
