"""Read-only projections of a document: summary and planner digest."""

from __future__ import annotations

import copy
import json

from filedb_engine.domain.entities import (
    Document,
    DocumentSummary,
    RoleSummary,
    TableSummary,
)


def summarize_document(document: Document) -> DocumentSummary:
    """Build the summary projection. Shares no mutable state with the document."""
    return DocumentSummary(
        meta=copy.copy(document.meta),
        tables=[TableSummary.from_table(table) for table in document.tables.values()],
        roles=[
            RoleSummary(name=role.name, description=role.description)
            for role in document.roles.values()
        ],
    )


def format_prompt_digest(document: Document, max_rows: int = 2) -> str:
    """Render tables, columns, sample rows, permissions and roles as text.

    The digest is the context handed to an external planner so that it can
    produce operations against the current schema.
    """
    lines: list[str] = []

    if not document.tables:
        lines.append("No tables are currently defined.")

    for table in document.tables.values():
        lines.append(
            f'Table "{table.name}" ({len(table.rows)} row(s), '
            f"{len(table.column_order)} column(s))"
        )
        if table.description:
            lines.append(f"  Description: {table.description}")
        lines.append("  Columns:")
        for column in table.ordered_columns():
            line = f"    - {column.name}: {column.data_type}"
            if column.is_primary_key:
                line += " PRIMARY KEY"
            if not column.nullable:
                line += " NOT NULL"
            if column.has_default:
                line += f" DEFAULT {json.dumps(column.default_value, default=str)}"
            lines.append(line)
        if table.rows and max_rows > 0:
            lines.append("  Sample rows:")
            for row in table.rows[:max_rows]:
                lines.append(f"    {json.dumps(row, default=str)}")
        if table.permissions:
            lines.append("  Permissions:")
            for permission in table.permissions.values():
                privileges = ", ".join(p.value for p in permission.privileges)
                lines.append(f"    - {permission.role}: {privileges}")

    if document.roles:
        lines.append("Roles:")
        for role in document.roles.values():
            suffix = f" ({role.description})" if role.description else ""
            lines.append(f"  - {role.name}{suffix}")

    return "\n".join(lines)
