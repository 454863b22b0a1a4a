"""
Gateway counters.

Four process-wide counters recorded by the request orchestrator and
exported in Prometheus text format.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from guard_proxy.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time copy of the gateway counters.

    Attributes:
        requests_total: Requests forwarded to the upstream service
        errors_total: Upstream attempts that failed
        tokens_total: Tokens reported by successful completions
        guardrail_blocks_total: Requests rejected by a guardrail
    """

    requests_total: int = 0
    errors_total: int = 0
    tokens_total: int = 0
    guardrail_blocks_total: int = 0

    @property
    def error_rate(self) -> float:
        """Fraction of forwarded requests that failed upstream."""
        if self.requests_total == 0:
            return 0.0
        return self.errors_total / self.requests_total


# (attribute, metric name, help text)
_COUNTERS: tuple[tuple[str, str, str], ...] = (
    ("requests_total", "llm_requests_total", "Total number of LLM requests processed"),
    ("errors_total", "llm_errors_total", "Total number of errors from LLM calls"),
    ("tokens_total", "llm_tokens_total", "Total number of tokens used in LLM calls"),
    (
        "guardrail_blocks_total",
        "guardrail_blocks_total",
        "Total number of requests blocked by guardrails",
    ),
)


class GatewayMetrics:
    """Thread-safe gateway counters.

    Created once at startup and handed to the orchestrator; every
    increment takes the internal lock, so callers need no locking of
    their own.

    Example:
        >>> metrics = GatewayMetrics()
        >>> metrics.record_request()
        >>> metrics.record_tokens(12)
        >>> metrics.snapshot().tokens_total
        12
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests = 0
        self._errors = 0
        self._tokens = 0
        self._blocks = 0
        self._callbacks: list[Callable[[str, int], None]] = []

    def record_request(self) -> None:
        """Count a request forwarded to the upstream service."""
        with self._lock:
            self._requests += 1
        self._notify("request", 1)

    def record_error(self) -> None:
        """Count a failed upstream attempt."""
        with self._lock:
            self._errors += 1
        self._notify("error", 1)

    def record_tokens(self, count: int) -> None:
        """Add tokens reported by a completion.

        Args:
            count: Token count, must be non-negative
        """
        if count < 0:
            raise ValueError("token count must be non-negative")
        with self._lock:
            self._tokens += count
        self._notify("tokens", count)

    def record_block(self) -> None:
        """Count a request rejected by a guardrail."""
        with self._lock:
            self._blocks += 1
        self._notify("block", 1)

    def snapshot(self) -> MetricsSnapshot:
        """Get current counter values."""
        with self._lock:
            return MetricsSnapshot(
                requests_total=self._requests,
                errors_total=self._errors,
                tokens_total=self._tokens,
                guardrail_blocks_total=self._blocks,
            )

    def reset(self) -> None:
        """Reset all counters."""
        with self._lock:
            self._requests = 0
            self._errors = 0
            self._tokens = 0
            self._blocks = 0

    def add_callback(self, callback: Callable[[str, int], None]) -> None:
        """Add a callback invoked with (event, amount) after each increment."""
        with self._lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[str, int], None]) -> None:
        """Remove a callback."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _notify(self, event: str, amount: int) -> None:
        with self._lock:
            callbacks = tuple(self._callbacks)
        for callback in callbacks:
            try:
                callback(event, amount)
            except Exception:
                logger.exception("Metrics callback failed", event=event)

    def to_prometheus(self) -> str:
        """Export counters in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        snapshot = self.snapshot()
        lines: list[str] = []
        for attr, name, help_text in _COUNTERS:
            lines.append(f"# HELP {name} {help_text}")
            lines.append(f"# TYPE {name} counter")
            lines.append(f"{name} {getattr(snapshot, attr)}")
        return "\n".join(lines) + "\n"
