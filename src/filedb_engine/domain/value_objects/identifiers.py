"""Identifiers and timestamps used throughout the engine."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import NewType


ExecutionId = NewType("ExecutionId", str)
"""Identifier of one operation execution. Unique within a plan run."""

Revision = NewType("Revision", int)
"""Document mutation counter. Starts at 0 and grows by one per applied mutation."""

INITIAL_REVISION = Revision(0)


def new_execution_id() -> ExecutionId:
    """Generate a fresh execution identifier."""
    return ExecutionId(uuid.uuid4().hex)


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")
