"""Value objects for the document engine domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Engine types:
        - OperationType, OperationCategory: Closed operation vocabulary
        - ExecutionStatus: success / skipped / error
        - Privilege: Table-level actions a role may hold
        - ComparisonOperator, SortDirection: Criteria and ordering
        - IfExistsPolicy: create_table conflict policy
        - DataType: Recognised column types

    Identifiers:
        - ExecutionId, Revision, INITIAL_REVISION
        - new_execution_id, utc_now_iso
"""

from filedb_engine.domain.value_objects.engine_types import (
    ComparisonOperator,
    DataType,
    ExecutionStatus,
    IfExistsPolicy,
    OperationCategory,
    OperationType,
    Privilege,
    SortDirection,
)
from filedb_engine.domain.value_objects.identifiers import (
    INITIAL_REVISION,
    ExecutionId,
    Revision,
    new_execution_id,
    utc_now_iso,
)

__all__ = [
    # Engine types
    "OperationType",
    "OperationCategory",
    "ExecutionStatus",
    "Privilege",
    "ComparisonOperator",
    "SortDirection",
    "IfExistsPolicy",
    "DataType",
    # Identifiers
    "ExecutionId",
    "Revision",
    "INITIAL_REVISION",
    "new_execution_id",
    "utc_now_iso",
]
