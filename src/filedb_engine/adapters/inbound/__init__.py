"""Inbound adapters - entry points into the document engine.

These adapters translate external requests into domain operations:
- plan_parser: planner JSON wire format into operations and plans
- rest_api: FastAPI surface over a document store
"""

from filedb_engine.adapters.inbound.plan_parser import (
    PlanParseError,
    normalize_operation_type,
    parse_operation,
    parse_plan,
    sanitize_response,
)
from filedb_engine.adapters.inbound.rest_api import create_app, run_server

__all__ = [
    "PlanParseError",
    "normalize_operation_type",
    "parse_operation",
    "parse_plan",
    "sanitize_response",
    "create_app",
    "run_server",
]
