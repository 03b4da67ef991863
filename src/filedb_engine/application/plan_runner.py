"""Plan Runner - executes a planner-produced batch of operations.

A plan is a sequence of independent statements, not a transaction. Every
operation is attempted in order; a failing operation is reported and the
next one still runs. The response carries one ExecutionResult per
operation, the planner's warnings plus one warning per failed operation,
and a summary snapshot taken after the batch.

Usage:
    runner = PlanRunner(store)
    response = runner.run(plan, actor="analyst")
    for result in response.results:
        print(result.status, result.detail)
"""

from __future__ import annotations

import time

from filedb_engine.application.document_store import DocumentStore
from filedb_engine.domain.entities import ExecutionResult, Plan, PlanResponse
from filedb_engine.domain.value_objects import ExecutionStatus, new_execution_id
from filedb_engine.infrastructure.logging import (
    bind_plan_context,
    clear_plan_context,
    get_logger,
)
from filedb_engine.infrastructure.metrics import MetricsRegistry, get_metrics
from filedb_engine.infrastructure.tracing import trace_span


logger = get_logger(__name__)


def _dedupe(messages: list[str]) -> list[str]:
    seen: set[str] = set()
    unique = []
    for message in messages:
        if message not in seen:
            seen.add(message)
            unique.append(message)
    return unique


class PlanRunner:
    """Runs plans against one document store."""

    def __init__(self, store: DocumentStore, metrics: MetricsRegistry | None = None) -> None:
        self._store = store
        self._metrics = metrics or get_metrics()

    @property
    def store(self) -> DocumentStore:
        return self._store

    def run(self, plan: Plan, actor: str | None = None) -> PlanResponse:
        """Execute every operation of the plan in order.

        Args:
            plan: Operations plus planner metadata.
            actor: Role every operation runs as, or None for trusted.

        Returns:
            PlanResponse with per-operation results, warnings and snapshot.
        """
        plan_id = new_execution_id()
        bind_plan_context(plan_id, actor)
        started = time.perf_counter()
        try:
            with trace_span(
                "plan.run",
                {"plan.id": plan_id, "plan.operations": len(plan.operations), "actor": actor},
            ) as span:
                results: list[ExecutionResult] = []
                warnings = list(plan.warnings)

                with self._store.batch():
                    for index, operation in enumerate(plan.operations, start=1):
                        result = self._store.execute(operation, actor)
                        results.append(result)
                        if result.status is ExecutionStatus.ERROR:
                            warnings.append(
                                f"Operation {index} ({result.type.value}) failed: {result.detail}"
                            )

                snapshot = self._store.get_summary()
                failed = sum(1 for r in results if r.status is ExecutionStatus.ERROR)
                span.set_attribute("plan.failed", failed)
        finally:
            clear_plan_context()

        outcome = "partial" if failed else "clean"
        self._metrics.plans_total.labels(outcome=outcome).inc()
        logger.info(
            "plan_completed",
            plan_id=plan_id,
            operations=len(results),
            failed=failed,
            revision=snapshot.meta.revision,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )

        return PlanResponse(
            results=results,
            warnings=_dedupe(warnings),
            snapshot=snapshot,
            thought=plan.thought,
            final_response=plan.final_response,
        )
