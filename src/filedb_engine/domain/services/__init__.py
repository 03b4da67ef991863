"""Domain services - core engine logic.

Services:
    - criteria: Row-filter evaluation (loose equality, numeric comparison)
    - schema_model: Column validation, value coercion, privilege lookup
    - operation_executor: Applies one operation to a document
    - document_digest: Summary projection and planner digest
"""

from filedb_engine.domain.services.criteria import (
    build_predicate,
    evaluate_condition,
    loose_equals,
    matches,
    to_number,
)
from filedb_engine.domain.services.document_digest import (
    format_prompt_digest,
    summarize_document,
)
from filedb_engine.domain.services.operation_executor import OperationExecutor
from filedb_engine.domain.services.schema_model import (
    coerce_value,
    next_column_order,
    normalize_privileges,
    required_privilege,
    resolve_privilege,
    validate_column_blueprint,
    validate_column_blueprints,
)

__all__ = [
    # Criteria
    "build_predicate",
    "evaluate_condition",
    "loose_equals",
    "matches",
    "to_number",
    # Schema model
    "coerce_value",
    "next_column_order",
    "normalize_privileges",
    "required_privilege",
    "resolve_privilege",
    "validate_column_blueprint",
    "validate_column_blueprints",
    # Executor
    "OperationExecutor",
    # Digest
    "format_prompt_digest",
    "summarize_document",
]
