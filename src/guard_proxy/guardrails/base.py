"""
Base classes for guardrail evaluation.

A guardrail is a stateless predicate over prompt text. Guardrails are
built once at startup, composed into an ordered rule set, and shared
read-only by every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


@dataclass(frozen=True)
class RuleVerdict:
    """Result of applying a single guardrail to content."""

    blocked: bool
    detail: str = ""

    @classmethod
    def allow(cls) -> RuleVerdict:
        """Create a passing verdict."""
        return _ALLOW

    @classmethod
    def block(cls, detail: str = "") -> RuleVerdict:
        """Create a blocking verdict."""
        return cls(blocked=True, detail=detail)


_ALLOW = RuleVerdict(blocked=False)


class Guardrail:
    """Base class for all guardrail rules.

    Subclasses capture their configuration in ``__init__`` and implement
    ``_evaluate_impl``. Nothing may be mutated after construction, which
    is what makes one instance safe to evaluate from many requests at once.

    Example:
        >>> from guard_proxy.guardrails import BannedWordsRule
        >>>
        >>> rule = BannedWordsRule(["bomb"])
        >>> rule.evaluate("How to make a Bomb").detail
        'content contains banned word: bomb'
    """

    def __init__(self, rule_id: str, display_name: str | None = None) -> None:
        """Initialize the guardrail.

        Args:
            rule_id: Identifier reported with every block from this rule
            display_name: Name embedded in blocked reasons; rules without
                one report their detail verbatim
        """
        if not rule_id:
            raise ValueError("rule_id must be non-empty")

        self._rule_id = rule_id
        self._display_name = display_name

    @property
    def rule_id(self) -> str:
        """Get the rule ID."""
        return self._rule_id

    @property
    def display_name(self) -> str | None:
        """Get the name used in blocked reasons."""
        return self._display_name

    def evaluate(self, content: str) -> RuleVerdict:
        """Check content against this guardrail.

        Args:
            content: Prompt text to check

        Returns:
            RuleVerdict telling whether the content is blocked
        """
        return self._evaluate_impl(content)

    def format_reason(self, detail: str) -> str:
        """Build the client-facing reason for a block raised by this rule.

        Args:
            detail: Detail text from the verdict

        Returns:
            Reason string
        """
        if self._display_name is None:
            return detail
        if detail:
            return f"content blocked by {self._display_name}: {detail}"
        return f"content blocked by {self._display_name}"

    def _evaluate_impl(self, content: str) -> RuleVerdict:
        """Implementation of the guardrail check.

        Subclasses must override this method.
        """
        raise NotImplementedError("Subclasses must implement _evaluate_impl")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rule_id={self._rule_id!r})"


@dataclass(frozen=True)
class Outcome:
    """Result of evaluating a prompt against a whole rule set.

    Attributes:
        blocked: Whether some rule blocked the content
        reason: Client-facing reason, empty when passed
        rule_id: ID of the blocking rule, None when passed
    """

    blocked: bool
    reason: str = ""
    rule_id: str | None = None

    @classmethod
    def passed(cls) -> Outcome:
        """Create a passed outcome."""
        return _PASSED

    @classmethod
    def blocked_by(cls, rule: Guardrail, detail: str) -> Outcome:
        """Create a blocked outcome for a rule's verdict detail."""
        return cls(blocked=True, reason=rule.format_reason(detail), rule_id=rule.rule_id)

    @property
    def is_blocked(self) -> bool:
        return self.blocked

    @property
    def is_passed(self) -> bool:
        return not self.blocked


_PASSED = Outcome(blocked=False)

RuleSet = tuple[Guardrail, ...]
"""Ordered guardrails; position is evaluation order."""


class CompositeEvaluator:
    """Runs an ordered rule set against prompt text.

    The first rule that blocks stops the scan, so when several rules would
    match the same prompt the one configured earliest is reported. An
    empty rule set passes everything.

    Example:
        >>> evaluator = CompositeEvaluator([
        ...     BannedWordsRule(["x"]),
        ...     LengthRule(1),
        ... ])
        >>> evaluator.evaluate("xx").rule_id
        'banned-words'
    """

    def __init__(self, rules: Iterable[Guardrail] = ()) -> None:
        self._rules: RuleSet = tuple(rules)

    @property
    def rules(self) -> RuleSet:
        """Get the rule set in evaluation order."""
        return self._rules

    def evaluate(self, content: str) -> Outcome:
        """Evaluate content against every rule until one blocks.

        Args:
            content: Prompt text to check

        Returns:
            Blocked outcome from the first blocking rule, otherwise passed
        """
        for rule in self._rules:
            verdict = rule.evaluate(content)
            if verdict.blocked:
                return Outcome.blocked_by(rule, verdict.detail)

        return Outcome.passed()

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Guardrail]:
        return iter(self._rules)
