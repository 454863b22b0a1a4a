"""Root pytest fixtures for guard-proxy tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from guard_proxy.errors import UpstreamError, UpstreamFailureKind
from guard_proxy.gateway import RequestOrchestrator
from guard_proxy.guardrails import CompositeEvaluator
from guard_proxy.telemetry import GatewayMetrics
from guard_proxy.upstream import Completion, ModelParams, TextGenerationClient

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from guard_proxy.guardrails import Guardrail


class FakeClient(TextGenerationClient):
    """Upstream client returning a fixed completion or raising a fixed error."""

    def __init__(
        self,
        text: str = "Mock LLM response",
        tokens: int = 10,
        error: Exception | None = None,
    ) -> None:
        self.text = text
        self.tokens = tokens
        self.error = error
        self.calls: list[tuple[str, ModelParams | None]] = []
        self.closed = False

    async def query(self, prompt: str, model_params: ModelParams | None = None) -> Completion:
        self.calls.append((prompt, model_params))
        if self.error is not None:
            raise self.error
        return Completion(text=self.text, total_tokens=self.tokens)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_client() -> Callable[..., FakeClient]:
    """Factory for fake upstream clients."""
    return FakeClient


@pytest.fixture
def upstream_error() -> Callable[..., UpstreamError]:
    """Factory for the error the HTTP client raises on a non-200 status."""

    def _make(status_code: int = 500, body: str = "internal error") -> UpstreamError:
        return UpstreamError(
            f"LLM API returned non-200 status: {status_code}",
            kind=UpstreamFailureKind.HTTP_STATUS,
            status_code=status_code,
            body=body,
        )

    return _make


@pytest.fixture
def metrics() -> GatewayMetrics:
    """Fresh gateway counters."""
    return GatewayMetrics()


@pytest.fixture
def make_orchestrator(metrics: GatewayMetrics) -> Callable[..., RequestOrchestrator]:
    """Factory building an orchestrator over the given rules and client."""

    def _make(rules: Iterable[Guardrail] = (), client: Any = None) -> RequestOrchestrator:
        return RequestOrchestrator(CompositeEvaluator(rules), client or FakeClient(), metrics)

    return _make


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as exercising the HTTP app end to end",
    )
