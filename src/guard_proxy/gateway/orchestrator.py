"""
Request orchestration.

Each prompt runs through a small state machine::

    RECEIVED -> SCREENING -> REJECTED
                          -> FORWARDING -> UPSTREAM_FAILED
                                        -> COMPLETED

Screening uses the shared guardrail evaluator; forwarding makes exactly
one upstream attempt. Every terminal state records one metric.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Union

from guard_proxy.errors import (
    InvalidTransitionError,
    UpstreamError,
    UpstreamFailureKind,
    ValidationError,
)
from guard_proxy.telemetry import LogContext, get_logger, log_context
from guard_proxy.upstream import ModelParams

if TYPE_CHECKING:
    from collections.abc import Mapping

    from guard_proxy.guardrails import CompositeEvaluator
    from guard_proxy.telemetry import GatewayMetrics
    from guard_proxy.upstream import TextGenerationClient

logger = get_logger(__name__)

UPSTREAM_FAILURE_MESSAGE = "Error communicating with LLM"


class RequestState(str, Enum):
    """States of a single request."""

    RECEIVED = "received"
    SCREENING = "screening"
    REJECTED = "rejected"
    FORWARDING = "forwarding"
    UPSTREAM_FAILED = "upstream_failed"
    COMPLETED = "completed"


TERMINAL_STATES: frozenset[RequestState] = frozenset(
    {RequestState.REJECTED, RequestState.UPSTREAM_FAILED, RequestState.COMPLETED}
)

ALLOWED_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.RECEIVED: frozenset({RequestState.SCREENING}),
    RequestState.SCREENING: frozenset({RequestState.REJECTED, RequestState.FORWARDING}),
    RequestState.FORWARDING: frozenset(
        {RequestState.UPSTREAM_FAILED, RequestState.COMPLETED}
    ),
    RequestState.REJECTED: frozenset(),
    RequestState.UPSTREAM_FAILED: frozenset(),
    RequestState.COMPLETED: frozenset(),
}


@dataclass
class RequestExecution:
    """State of one request as it moves through the orchestrator."""

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: RequestState = RequestState.RECEIVED
    history: list[RequestState] = field(default_factory=lambda: [RequestState.RECEIVED])

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, target: RequestState) -> None:
        """Move to ``target``.

        Raises:
            InvalidTransitionError: If the current state does not allow it
        """
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state.value, target.value)
        self.state = target
        self.history.append(target)


@dataclass(frozen=True)
class Blocked:
    """The prompt was rejected by a guardrail."""

    reason: str
    rule_id: str | None = None

    state: ClassVar[RequestState] = RequestState.REJECTED


@dataclass(frozen=True)
class UpstreamFailed:
    """The upstream attempt failed.

    ``detail`` is for server-side logs; clients only see ``message``.
    """

    detail: str
    kind: UpstreamFailureKind | None = None

    state: ClassVar[RequestState] = RequestState.UPSTREAM_FAILED

    @property
    def message(self) -> str:
        return UPSTREAM_FAILURE_MESSAGE


@dataclass(frozen=True)
class Completed:
    """The upstream service returned a completion."""

    text: str
    token_count: int = 0

    state: ClassVar[RequestState] = RequestState.COMPLETED


QueryResult = Union[Blocked, UpstreamFailed, Completed]


class RequestOrchestrator:
    """Screens prompts, forwards the ones that pass, and records metrics.

    The evaluator and the client are shared by all requests; every call to
    :meth:`handle_query` gets its own :class:`RequestExecution`.

    Example:
        >>> orchestrator = RequestOrchestrator(evaluator, client, metrics)
        >>> result = await orchestrator.handle_query("Tell me a joke")
        >>> if isinstance(result, Completed):
        ...     print(result.text)
    """

    def __init__(
        self,
        evaluator: CompositeEvaluator,
        client: TextGenerationClient,
        metrics: GatewayMetrics,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            evaluator: Guardrail evaluator built at startup
            client: Upstream text-generation client
            metrics: Gateway counters
        """
        self._evaluator = evaluator
        self._client = client
        self._metrics = metrics

    @property
    def evaluator(self) -> CompositeEvaluator:
        return self._evaluator

    @property
    def metrics(self) -> GatewayMetrics:
        return self._metrics

    async def handle_query(
        self,
        prompt: Any,
        model_params: Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Handle one prompt.

        Args:
            prompt: Prompt text
            model_params: Optional model overrides (model, temperature, max_tokens)

        Returns:
            Blocked, UpstreamFailed or Completed

        Raises:
            ValidationError: If the prompt is missing, not a string, or empty
        """
        if not isinstance(prompt, str):
            raise ValidationError(
                "prompt is required",
                field="prompt",
                expected="string",
                actual=type(prompt).__name__,
            )
        if not prompt:
            raise ValidationError("prompt must not be empty", field="prompt")

        execution = RequestExecution()
        params = ModelParams.from_raw(model_params)
        with log_context(LogContext(request_id=execution.request_id, model=params.model)):
            return await self._run(execution, prompt, params)

    async def _run(
        self,
        execution: RequestExecution,
        prompt: str,
        params: ModelParams,
    ) -> QueryResult:
        execution.advance(RequestState.SCREENING)
        outcome = self._evaluator.evaluate(prompt)

        if outcome.is_blocked:
            execution.advance(RequestState.REJECTED)
            self._metrics.record_block()
            logger.warning(
                "Guardrail blocked request",
                rule=outcome.rule_id,
                reason=outcome.reason,
            )
            return Blocked(reason=outcome.reason, rule_id=outcome.rule_id)

        execution.advance(RequestState.FORWARDING)
        self._metrics.record_request()

        try:
            completion = await self._client.query(prompt, params)
        except UpstreamError as e:
            execution.advance(RequestState.UPSTREAM_FAILED)
            self._metrics.record_error()
            logger.error(
                "LLM error",
                error=str(e),
                kind=e.kind.value,
                status_code=e.status_code,
                body=e.body,
            )
            return UpstreamFailed(detail=str(e), kind=e.kind)
        except Exception as e:
            execution.advance(RequestState.UPSTREAM_FAILED)
            self._metrics.record_error()
            logger.exception("LLM error", error=repr(e))
            return UpstreamFailed(detail=repr(e))

        execution.advance(RequestState.COMPLETED)
        self._metrics.record_tokens(completion.total_tokens)
        return Completed(text=completion.text, token_count=completion.total_tokens)
