"""
HTTP transport for the gateway.

Routes:
- POST /v1/query: screen a prompt and forward it upstream
- GET /health: liveness check
- GET /metrics: gateway counters in Prometheus text format
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from guard_proxy.errors import ValidationError
from guard_proxy.gateway import Blocked, Completed, RequestOrchestrator, UpstreamFailed
from guard_proxy.guardrails import build_rule_set
from guard_proxy.telemetry import GatewayMetrics, get_logger
from guard_proxy.upstream import OpenAIChatClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from guard_proxy.config import GatewayConfig
    from guard_proxy.upstream import TextGenerationClient

logger = get_logger(__name__)

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class QueryRequest(BaseModel):
    """Body of POST /v1/query."""

    prompt: str = Field(..., min_length=1, description="Prompt to screen and forward")
    model_params: dict[str, Any] | None = Field(
        default=None, description="Optional model, temperature and max_tokens overrides"
    )


class QueryResponse(BaseModel):
    """Successful response of POST /v1/query."""

    completion: str


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    orchestrator: RequestOrchestrator,
    client: TextGenerationClient | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        orchestrator: Request orchestrator shared by all requests
        client: Upstream client to close on shutdown

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if client is not None:
            await client.close()

    app = FastAPI(title="guard-proxy", lifespan=lifespan)
    metrics = orchestrator.metrics

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.error("Invalid request", errors=str(exc.errors()))
        return _error(400, "Invalid request")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/metrics")
    async def export_metrics() -> PlainTextResponse:
        return PlainTextResponse(metrics.to_prometheus(), media_type=PROMETHEUS_CONTENT_TYPE)

    @app.post("/v1/query", response_model=QueryResponse)
    async def query(req: QueryRequest) -> Any:
        try:
            result = await orchestrator.handle_query(req.prompt, req.model_params)
        except ValidationError as e:
            logger.error("Invalid request", error=e.message)
            return _error(400, "Invalid request")

        if isinstance(result, Blocked):
            return _error(400, f"Request blocked by guardrail: {result.reason}")
        if isinstance(result, UpstreamFailed):
            return _error(500, result.message)
        if isinstance(result, Completed):
            return QueryResponse(completion=result.text)

        raise TypeError(f"unexpected query result: {result!r}")

    return app


def build_app(config: GatewayConfig) -> FastAPI:
    """Wire rule set, upstream client, metrics and routes from configuration.

    Args:
        config: Loaded gateway configuration

    Returns:
        Configured FastAPI app
    """
    evaluator = build_rule_set(config.guardrails)
    client = OpenAIChatClient(
        config.llm.url,
        api_key=config.llm.api_key,
        timeout=config.llm.timeout_seconds,
    )
    orchestrator = RequestOrchestrator(evaluator, client, GatewayMetrics())
    return create_app(orchestrator, client)
