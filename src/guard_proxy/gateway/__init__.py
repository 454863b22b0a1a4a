"""
Gateway layer - per-request orchestration of screening and forwarding.
"""

from guard_proxy.gateway.orchestrator import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    UPSTREAM_FAILURE_MESSAGE,
    Blocked,
    Completed,
    QueryResult,
    RequestExecution,
    RequestOrchestrator,
    RequestState,
    UpstreamFailed,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Blocked",
    "Completed",
    "QueryResult",
    "RequestExecution",
    "RequestOrchestrator",
    "RequestState",
    "TERMINAL_STATES",
    "UPSTREAM_FAILURE_MESSAGE",
    "UpstreamFailed",
]
