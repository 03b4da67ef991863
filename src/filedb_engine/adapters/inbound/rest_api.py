"""REST API adapter for the document engine.

A thin FastAPI surface over one DocumentStore. Operation and plan bodies use
the planner wire format parsed by ``plan_parser``; an optional ``actor``
field names the role the request runs as.

Endpoints:
    GET  /health      - Health check
    GET  /summary     - Document summary (tables, roles, meta)
    GET  /digest      - Planner digest text
    GET  /history     - Executed operations, most recent first
    POST /operations  - Execute one operation
    POST /plans       - Execute a plan

Usage:
    from filedb_engine.adapters.inbound.rest_api import create_app
    from filedb_engine.application import DocumentStore

    store = DocumentStore.from_config(get_config()).open()
    app = create_app(store)
    # Run with uvicorn: uvicorn app:app --host 0.0.0.0 --port 8000

References:
    - FastAPI documentation: https://fastapi.tiangolo.com/
"""

from __future__ import annotations

from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from filedb_engine import __version__
from filedb_engine.adapters.inbound.plan_parser import PlanParseError, parse_operation, parse_plan
from filedb_engine.application import DocumentStore, PlanRunner
from filedb_engine.ports.inbound.document_engine import StaleRevisionError


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    revision: int | None = Field(None, description="Current document revision")


class DigestResponse(BaseModel):
    """Response model for the planner digest."""

    digest: str = Field(..., description="Textual digest of the document")


def _split_actor(body: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    payload = dict(body)
    actor = payload.pop("actor", None)
    if actor is not None and not isinstance(actor, str):
        raise HTTPException(status_code=422, detail="actor must be a string")
    return payload, actor


def create_app(store: DocumentStore, runner: PlanRunner | None = None) -> FastAPI:
    """Create a FastAPI application for a document store.

    Args:
        store: An open document store.
        runner: Plan runner. Built over ``store`` if None.

    Returns:
        A configured FastAPI application.
    """
    runner = runner or PlanRunner(store)

    app = FastAPI(
        title="File DB Engine API",
        description="REST API for running operations and plans against a document",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def require_open() -> None:
        if not store.is_open:
            raise HTTPException(status_code=503, detail="Document store not open")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        if not store.is_open:
            return HealthResponse(status="unhealthy", version=__version__)
        return HealthResponse(status="healthy", version=__version__, revision=store.revision)

    @app.get("/summary", tags=["Document"])
    def get_summary() -> dict[str, Any]:
        """Document summary projection."""
        require_open()
        return store.get_summary().to_dict()

    @app.get("/digest", response_model=DigestResponse, tags=["Document"])
    def get_digest(max_rows: int | None = Query(None, ge=0)) -> DigestResponse:
        """Planner digest of the document."""
        require_open()
        return DigestResponse(digest=store.get_prompt_digest(max_rows))

    @app.get("/history", tags=["Document"])
    def get_history(limit: int | None = Query(None, ge=0)) -> list[dict[str, Any]]:
        """Executed operations, most recent first."""
        require_open()
        return [entry.to_dict() for entry in store.history(limit)]

    @app.post("/operations", tags=["Operations"])
    def execute_operation(body: dict[str, Any] = Body(...)) -> dict[str, Any]:
        """Execute one operation.

        Engine errors are reported in the result body with status "error";
        only unparseable payloads are rejected with 422.
        """
        require_open()
        payload, actor = _split_actor(body)
        try:
            operation = parse_operation(payload)
        except PlanParseError as e:
            raise HTTPException(status_code=422, detail=str(e))
        try:
            result = store.execute(operation, actor)
        except StaleRevisionError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return result.to_dict()

    @app.post("/plans", tags=["Operations"])
    def execute_plan(body: dict[str, Any] = Body(...)) -> dict[str, Any]:
        """Execute a plan; failed operations do not stop later ones."""
        require_open()
        payload, actor = _split_actor(body)
        try:
            plan = parse_plan(payload)
        except PlanParseError as e:
            raise HTTPException(status_code=422, detail=str(e))
        try:
            response = runner.run(plan, actor)
        except StaleRevisionError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return response.to_dict()

    return app


def run_server(
    store: DocumentStore,
    host: str = "0.0.0.0",
    port: int = 8000,
) -> None:
    """Run the REST API server.

    Args:
        store: An open document store.
        host: Host to bind to.
        port: Port to bind to.
    """
    import uvicorn

    app = create_app(store)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    from filedb_engine.infrastructure.config import get_config
    from filedb_engine.infrastructure.logging import setup_logging_from_config
    from filedb_engine.infrastructure.metrics import setup_metrics
    from filedb_engine.infrastructure.tracing import setup_tracing

    config = get_config()
    config.ensure_directories()
    setup_logging_from_config(config.observability)
    setup_tracing(config.observability)
    metrics = setup_metrics(port=config.observability.metrics_port)
    with DocumentStore.from_config(config, metrics=metrics) as store:
        run_server(store, host=config.server.host, port=config.server.port)
