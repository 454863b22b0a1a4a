"""内容审查网关：在文本生成服务之前执行可配置的安全规则。

guard-proxy: content-screening gateway for a text-generation service.

Prompts are screened by an ordered set of guardrail rules; prompts that
pass are forwarded upstream and outcomes are counted.
"""
from __future__ import annotations

__version__ = "0.3.0"

from guard_proxy.errors import (  # noqa: E402
    ConfigurationError,
    GuardProxyError,
    UpstreamError,
    ValidationError,
)
from guard_proxy.gateway import (  # noqa: E402
    Blocked,
    Completed,
    QueryResult,
    RequestOrchestrator,
    UpstreamFailed,
)
from guard_proxy.guardrails import (  # noqa: E402
    CompositeEvaluator,
    Outcome,
    RuleSetBuilder,
    build_rule_set,
)
from guard_proxy.telemetry import GatewayMetrics  # noqa: E402

__all__ = [
    # Orchestration
    "Blocked",
    "Completed",
    "QueryResult",
    "RequestOrchestrator",
    "UpstreamFailed",
    # Guardrails
    "CompositeEvaluator",
    "Outcome",
    "RuleSetBuilder",
    "build_rule_set",
    # Metrics
    "GatewayMetrics",
    # Errors
    "ConfigurationError",
    "GuardProxyError",
    "UpstreamError",
    "ValidationError",
    # Version
    "__version__",
]
