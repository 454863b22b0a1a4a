"""Upstream failure classification.

Maps the ways a text-generation call can fail onto a small set of kinds,
and labels HTTP status failures for logs.
"""

from __future__ import annotations

from enum import Enum


class UpstreamFailureKind(str, Enum):
    """How an upstream attempt failed."""

    TRANSPORT = "transport"
    """Connection refused, DNS failure, protocol error."""

    TIMEOUT = "timeout"
    """No response within the configured timeout."""

    HTTP_STATUS = "http_status"
    """The service answered with a non-success status."""

    MALFORMED_RESPONSE = "malformed_response"
    """The body is not JSON or lacks the expected fields."""

    EMPTY_COMPLETION = "empty_completion"
    """The body parsed but contained no completion choices."""


# Default HTTP status to label mapping
_STATUS_LABELS: dict[int, str] = {
    400: "invalid_request",
    401: "authentication",
    403: "permission_denied",
    404: "not_found",
    408: "timeout",
    413: "request_too_large",
    422: "invalid_request",
    429: "rate_limited",
    500: "server_error",
    502: "server_error",
    503: "overloaded",
    504: "timeout",
}


def classify_status(status_code: int) -> str:
    """Label an HTTP status code returned by the upstream service.

    Args:
        status_code: HTTP status code

    Returns:
        A short label such as ``rate_limited`` or ``server_error``
    """
    if status_code in _STATUS_LABELS:
        return _STATUS_LABELS[status_code]

    if 400 <= status_code < 500:
        return "client_error"
    if 500 <= status_code < 600:
        return "server_error"

    return "other"
