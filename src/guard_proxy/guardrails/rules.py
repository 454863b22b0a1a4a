"""
Concrete guardrail rules.

Built-in rules are configured by flat options (banned words, patterns,
prompt length). Custom rules are selected by a kind tag from
``CUSTOM_RULE_KINDS`` and read their settings from a parameter mapping.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from guard_proxy.errors import ConfigurationError, InvalidPatternError, UnknownRuleKindError
from guard_proxy.guardrails.base import Guardrail, RuleVerdict
from guard_proxy.guardrails.params import get_int, get_string

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def compile_pattern(pattern: str, *, rule: str | None = None) -> re.Pattern[str]:
    """Compile a regular expression, raising InvalidPatternError on failure.

    Args:
        pattern: Pattern text
        rule: Rule name for error reporting

    Returns:
        Compiled pattern
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e), rule=rule) from e


class BannedWordsRule(Guardrail):
    """Blocks content containing any banned word.

    Matching is case-insensitive and substring based, so "bomb" also
    matches "bombing".

    Example:
        >>> rule = BannedWordsRule(["bomb", "attack"])
        >>> rule.evaluate("Stop the ATTACK").detail
        'content contains banned word: attack'
    """

    def __init__(self, words: Iterable[str], rule_id: str = "banned-words") -> None:
        """Initialize banned words rule.

        Args:
            words: Words to block, checked in the given order
            rule_id: Unique identifier
        """
        super().__init__(rule_id)
        self._words = tuple(w.lower() for w in words if w)

    @property
    def words(self) -> tuple[str, ...]:
        """Get the lower-cased word list."""
        return self._words

    def _evaluate_impl(self, content: str) -> RuleVerdict:
        text = content.lower()
        for word in self._words:
            if word in text:
                return RuleVerdict.block(f"content contains banned word: {word}")
        return RuleVerdict.allow()


class PatternRule(Guardrail):
    """Blocks content matching any of a list of regular expressions.

    Patterns are compiled up front; a pattern that does not compile makes
    construction fail with InvalidPatternError.

    Example:
        >>> rule = PatternRule([r"\\d{3}-\\d{2}-\\d{4}"])
        >>> rule.evaluate("my ssn is 123-45-6789").blocked
        True
    """

    def __init__(self, patterns: Iterable[str], rule_id: str = "regex-patterns") -> None:
        """Initialize pattern rule.

        Args:
            patterns: Regular expressions, checked in the given order
            rule_id: Unique identifier

        Raises:
            InvalidPatternError: If any pattern fails to compile
        """
        super().__init__(rule_id)
        self._patterns = tuple(compile_pattern(p, rule=rule_id) for p in patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        """Get the original pattern texts."""
        return tuple(p.pattern for p in self._patterns)

    def _evaluate_impl(self, content: str) -> RuleVerdict:
        for pattern in self._patterns:
            if pattern.search(content):
                return RuleVerdict.block(
                    f"content matches forbidden pattern: {pattern.pattern}"
                )
        return RuleVerdict.allow()


class LengthRule(Guardrail):
    """Blocks content longer than a maximum number of characters."""

    def __init__(
        self,
        max_length: int,
        rule_id: str = "prompt-length",
        display_name: str = "prompt length check",
    ) -> None:
        """Initialize length rule.

        Args:
            max_length: Maximum allowed characters, must be positive
            rule_id: Unique identifier
            display_name: Name used in blocked reasons
        """
        super().__init__(rule_id, display_name)
        if max_length <= 0:
            raise ValueError("max_length must be positive")
        self._max_length = max_length

    @property
    def max_length(self) -> int:
        return self._max_length

    def _evaluate_impl(self, content: str) -> RuleVerdict:
        if len(content) > self._max_length:
            return RuleVerdict.block(
                f"prompt exceeds maximum length of {self._max_length} characters"
            )
        return RuleVerdict.allow()


DEFAULT_CUSTOM_RULE_NAME = "custom rule"


class CustomRule(Guardrail):
    """Base class for rule kinds selectable from configuration.

    Each subclass declares its ``kind`` tag and knows how to build itself
    from a parameter mapping.
    """

    kind: ClassVar[str] = ""

    def __init__(self, name: str | None = None) -> None:
        name = name or DEFAULT_CUSTOM_RULE_NAME
        super().__init__(rule_id=name, display_name=name)

    @classmethod
    def from_parameters(cls, name: str | None, parameters: Mapping[str, Any] | None) -> CustomRule:
        """Build a rule from configuration parameters.

        Raises:
            ConfigurationError: If a parameter is missing or invalid
        """
        raise NotImplementedError("Subclasses must implement from_parameters")


class WordCountRule(CustomRule):
    """Blocks content with more whitespace-separated words than allowed.

    Configuration:
        type: word_count
        parameters:
          max_words: 100
    """

    kind = "word_count"

    def __init__(self, max_words: int, name: str | None = None) -> None:
        super().__init__(name)
        if max_words < 0:
            raise ValueError("max_words must be non-negative")
        self._max_words = max_words

    @property
    def max_words(self) -> int:
        return self._max_words

    @classmethod
    def from_parameters(cls, name: str | None, parameters: Mapping[str, Any] | None) -> WordCountRule:
        max_words = get_int(parameters, "max_words", rule=name)
        if max_words < 0:
            raise ConfigurationError(f"max_words must be non-negative, got {max_words}", rule=name)
        return cls(max_words, name)

    def _evaluate_impl(self, content: str) -> RuleVerdict:
        count = len(content.split())
        if count > self._max_words:
            return RuleVerdict.block(
                f"text contains {count} words, exceeding limit of {self._max_words}"
            )
        return RuleVerdict.allow()


class ContainsPatternRule(CustomRule):
    """Blocks content matching a single regular expression.

    Configuration:
        type: contains_pattern
        parameters:
          pattern: "(?i)ignore previous instructions"
    """

    kind = "contains_pattern"

    def __init__(self, pattern: str, name: str | None = None) -> None:
        super().__init__(name)
        self._pattern = compile_pattern(pattern, rule=self.rule_id)

    @property
    def pattern(self) -> str:
        return self._pattern.pattern

    @classmethod
    def from_parameters(
        cls, name: str | None, parameters: Mapping[str, Any] | None
    ) -> ContainsPatternRule:
        return cls(get_string(parameters, "pattern", rule=name), name)

    def _evaluate_impl(self, content: str) -> RuleVerdict:
        if self._pattern.search(content):
            return RuleVerdict.block(
                f"content matches forbidden pattern: {self._pattern.pattern}"
            )
        return RuleVerdict.allow()


CUSTOM_RULE_KINDS: Mapping[str, type[CustomRule]] = MappingProxyType({
    WordCountRule.kind: WordCountRule,
    ContainsPatternRule.kind: ContainsPatternRule,
})


def custom_rule_kind(kind: str, *, rule: str | None = None) -> type[CustomRule]:
    """Look up a custom rule class by its kind tag.

    Raises:
        UnknownRuleKindError: If no rule kind is registered under the tag
    """
    try:
        return CUSTOM_RULE_KINDS[kind]
    except KeyError:
        raise UnknownRuleKindError(kind, rule=rule) from None
