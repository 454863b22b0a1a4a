"""
Typed accessors for custom rule parameters.

Custom rule parameters arrive as an untyped mapping straight from YAML.
Every rule kind reads them through these helpers so that numeric
coercion happens in one place.
"""

from __future__ import annotations

import math
import numbers
from typing import TYPE_CHECKING, Any

from guard_proxy.errors import ConfigurationError, ErrorContext

if TYPE_CHECKING:
    from collections.abc import Mapping


class ParameterError(ConfigurationError):
    """A custom rule parameter is missing or has the wrong type."""

    def __init__(
        self,
        key: str,
        expected: str,
        actual: Any,
        *,
        rule: str | None = None,
    ) -> None:
        actual_type = "missing" if actual is _MISSING else type(actual).__name__
        ctx = ErrorContext(source="configuration", field_path=f"parameters.{key}")
        ctx.details["expected"] = expected
        ctx.details["actual"] = actual_type
        super().__init__(
            f"invalid {key} parameter type: {actual_type} (expected {expected})",
            ctx,
            rule=rule,
        )
        self.key = key
        self.expected = expected
        self.actual = actual_type


_MISSING = object()


def get_int(parameters: Mapping[str, Any] | None, key: str, *, rule: str | None = None) -> int:
    """Read a numeric parameter as an int.

    Any real number is accepted (Python int/float, numpy int64/float32, ...)
    and truncated toward zero. Booleans are rejected even though Python
    treats them as integers.

    Args:
        parameters: Parameter mapping from configuration
        key: Parameter name
        rule: Rule name for error reporting

    Returns:
        The truncated integer value

    Raises:
        ParameterError: If the value is absent, not numeric, or not finite
    """
    value = (parameters or {}).get(key, _MISSING)

    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ParameterError(key, "number", value, rule=rule)

    if isinstance(value, numbers.Integral):
        return int(value)

    if not math.isfinite(float(value)):
        raise ParameterError(key, "finite number", value, rule=rule)

    return int(value)


def get_string(parameters: Mapping[str, Any] | None, key: str, *, rule: str | None = None) -> str:
    """Read a string parameter.

    Args:
        parameters: Parameter mapping from configuration
        key: Parameter name
        rule: Rule name for error reporting

    Returns:
        The string value

    Raises:
        ParameterError: If the value is absent or not a string
    """
    value = (parameters or {}).get(key, _MISSING)

    if not isinstance(value, str):
        raise ParameterError(key, "string", value, rule=rule)

    return value
