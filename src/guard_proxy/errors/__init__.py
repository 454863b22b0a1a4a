"""错误体系：网关的结构化错误类型。

Error hierarchy for guard-proxy.
"""

from guard_proxy.errors.base import (
    ConfigLoadError,
    ConfigurationError,
    ErrorContext,
    GuardProxyError,
    InvalidPatternError,
    InvalidTransitionError,
    UnknownRuleKindError,
    UpstreamError,
    ValidationError,
)
from guard_proxy.errors.classification import UpstreamFailureKind, classify_status

__all__ = [
    "ConfigLoadError",
    "ConfigurationError",
    "ErrorContext",
    "GuardProxyError",
    "InvalidPatternError",
    "InvalidTransitionError",
    "UnknownRuleKindError",
    "UpstreamError",
    "UpstreamFailureKind",
    "ValidationError",
    "classify_status",
]
