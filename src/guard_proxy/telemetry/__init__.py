"""
Telemetry module for guard-proxy.

Provides structured logging and the gateway counters.
"""

from guard_proxy.telemetry.logger import (
    GatewayLogger,
    LogContext,
    LogLevel,
    SecretMasker,
    configure_logging,
    get_log_context,
    get_logger,
    log_context,
)
from guard_proxy.telemetry.metrics import GatewayMetrics, MetricsSnapshot

__all__ = [
    # Logger
    "GatewayLogger",
    "LogContext",
    "LogLevel",
    "SecretMasker",
    "configure_logging",
    "get_log_context",
    "get_logger",
    "log_context",
    # Metrics
    "GatewayMetrics",
    "MetricsSnapshot",
]
