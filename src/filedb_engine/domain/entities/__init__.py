"""Domain entities for the document engine.

Entities:
    Document:
        - Document, DocumentMeta: Root persisted unit and its revision
        - Table, ColumnDefinition, TablePermission, Role

    Operations:
        - The ten operation classes, Operation union, OPERATION_CLASSES
        - ColumnBlueprint, CriteriaCondition, OrderByClause
        - Plan: ordered batch from an external planner

    Results:
        - ExecutionResult, QueryResultSet
        - DocumentSummary, TableSummary, RoleSummary, PermissionSummary
        - PlanResponse
"""

from filedb_engine.domain.entities.document import (
    ADMIN_ROLE_DESCRIPTION,
    SCHEMA_VERSION,
    ColumnDefinition,
    Document,
    DocumentMeta,
    Role,
    Table,
    TablePermission,
)
from filedb_engine.domain.entities.operations import (
    OPERATION_CLASSES,
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
from filedb_engine.domain.entities.results import (
    DocumentSummary,
    ExecutionResult,
    PermissionSummary,
    PlanResponse,
    QueryResultSet,
    RoleSummary,
    TableSummary,
)

__all__ = [
    # Document
    "SCHEMA_VERSION",
    "ADMIN_ROLE_DESCRIPTION",
    "Document",
    "DocumentMeta",
    "Table",
    "ColumnDefinition",
    "TablePermission",
    "Role",
    # Operations
    "Operation",
    "OPERATION_CLASSES",
    "ColumnBlueprint",
    "CriteriaCondition",
    "OrderByClause",
    "CreateTableOperation",
    "DropTableOperation",
    "AddColumnOperation",
    "DropColumnOperation",
    "InsertOperation",
    "UpdateOperation",
    "DeleteOperation",
    "SelectOperation",
    "GrantOperation",
    "RevokeOperation",
    "Plan",
    # Results
    "ExecutionResult",
    "QueryResultSet",
    "DocumentSummary",
    "TableSummary",
    "RoleSummary",
    "PermissionSummary",
    "PlanResponse",
]
