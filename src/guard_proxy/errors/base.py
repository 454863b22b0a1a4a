"""错误基类：提供分层错误体系和结构化错误上下文。

Base error classes for guard-proxy.

- GuardProxyError: root of every gateway error
- ConfigurationError: one guardrail rule cannot be built (the rule is skipped)
- ConfigLoadError: the configuration file cannot be read or parsed
- ValidationError: malformed input reaching the request core
- UpstreamError: a failed attempt against the text-generation service
- InvalidTransitionError: request state machine misuse
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from guard_proxy.errors.classification import UpstreamFailureKind


@dataclass
class ErrorContext:
    """Where an error came from and what was involved.

    Attributes:
        source: Subsystem that raised it (configuration, upstream, ...)
        field_path: Configuration or request field at fault,
            e.g. ``guardrails.custom_rules[2]``
        details: Loggable key/value pairs
        hint: Suggestion for fixing the problem
    """

    source: str | None = None
    field_path: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    hint: str | None = None

    def describe(self) -> str:
        """Render as ``[source] at 'path' (hint: ...)``, omitting empty parts."""
        parts = [
            f"[{self.source}]" if self.source else "",
            f"at '{self.field_path}'" if self.field_path else "",
            f"(hint: {self.hint})" if self.hint else "",
        ]
        return " ".join(p for p in parts if p)

    def __str__(self) -> str:
        return self.describe()


class GuardProxyError(Exception):
    """Root of the guard-proxy error hierarchy.

    ``message`` is the bare description; ``str(error)`` appends the
    rendered context.
    """

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        self.message = message
        self.context = context if context is not None else ErrorContext()
        super().__init__(" ".join(filter(None, (message, self.context.describe()))))

    def with_hint(self, hint: str) -> GuardProxyError:
        """Attach a hint and return the same error."""
        self.context.hint = hint
        return self


class ConfigurationError(GuardProxyError):
    """A single guardrail rule could not be constructed.

    Raised when:
    - A regular expression fails to compile
    - A custom rule names an unknown kind
    - A custom rule parameter is missing or has the wrong type

    The rule set builder catches these, logs them and drops the rule.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        rule: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="configuration")
        if rule:
            ctx.details["rule"] = rule
        super().__init__(message, ctx)
        self.rule = rule


class InvalidPatternError(ConfigurationError):
    """A configured regular expression does not compile."""

    def __init__(
        self,
        pattern: str,
        compiler_message: str,
        *,
        rule: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="configuration")
        ctx.details["pattern"] = pattern
        super().__init__(
            f"invalid regex pattern '{pattern}': {compiler_message}",
            ctx,
            rule=rule,
        )
        self.pattern = pattern
        self.compiler_message = compiler_message


class UnknownRuleKindError(ConfigurationError):
    """A custom rule entry names a kind that is not in the registry."""

    def __init__(self, kind: str, *, rule: str | None = None) -> None:
        ctx = ErrorContext(source="configuration")
        ctx.details["kind"] = kind
        super().__init__(f"unknown custom rule type: {kind}", ctx, rule=rule)
        self.kind = kind


class ConfigLoadError(GuardProxyError):
    """The configuration file exists but cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = ErrorContext(source="config")
        if path:
            ctx.details["path"] = path
        super().__init__(message, ctx)
        self.path = path
        self.__cause__ = cause


class ValidationError(GuardProxyError):
    """Validation error for incoming requests.

    Raised when a prompt is missing, is not a string, or is blank.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        field: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ) -> None:
        ctx = context or ErrorContext(source="validation")
        if field:
            ctx.field_path = field
        if expected is not None:
            ctx.details["expected"] = expected
        if actual is not None:
            ctx.details["actual"] = actual
        super().__init__(message, ctx)
        self.field = field
        self.expected = expected
        self.actual = actual


class UpstreamError(GuardProxyError):
    """Error from the upstream text-generation service.

    Covers every way a single upstream attempt can fail. The message and
    details are meant for server-side logs only.

    Attributes:
        kind: Failure classification
        status_code: HTTP status code, for status failures
        body: Truncated response body, for status failures
    """

    def __init__(
        self,
        message: str,
        *,
        kind: UpstreamFailureKind,
        status_code: int | None = None,
        body: str | None = None,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = ErrorContext(source="upstream")
        ctx.details["kind"] = kind.value
        if status_code is not None:
            ctx.details["status_code"] = status_code
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.kind = kind
        self.status_code = status_code
        self.body = body
        self.url = url
        self.__cause__ = cause


class InvalidTransitionError(GuardProxyError):
    """A request execution attempted a transition its state does not allow."""

    def __init__(self, current: str, target: str) -> None:
        ctx = ErrorContext(source="gateway")
        ctx.details["from"] = current
        ctx.details["to"] = target
        super().__init__(f"illegal transition {current} -> {target}", ctx)
        self.current = current
        self.target = target
