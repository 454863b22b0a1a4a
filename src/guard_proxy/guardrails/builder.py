"""
Rule set construction from configuration.

Turns the ``guardrails`` configuration section into an ordered rule set.
Entries that cannot be built are logged and left out; building the set
itself never fails because of a bad entry.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from guard_proxy.errors import ConfigurationError
from guard_proxy.guardrails.base import CompositeEvaluator, Guardrail, RuleSet
from guard_proxy.guardrails.rules import (
    BannedWordsRule,
    LengthRule,
    PatternRule,
    compile_pattern,
    custom_rule_kind,
)
from guard_proxy.telemetry import get_logger

if TYPE_CHECKING:
    from guard_proxy.config import CustomRuleConfig, GuardrailsConfig

logger = get_logger(__name__)


class RuleSetBuilder:
    """Builds the guardrail rule set.

    Build order is also evaluation order:

    1. banned words, if any are configured
    2. regex patterns, if any compile
    3. prompt length, if a positive bound is configured
    4. one rule per custom entry, in configuration order

    Example:
        >>> builder = RuleSetBuilder(config.guardrails)
        >>> rules = builder.build()
        >>> for error in builder.skipped:
        ...     print(error.message)
    """

    def __init__(self, config: GuardrailsConfig) -> None:
        self._config = config
        self._skipped: list[ConfigurationError] = []

    @property
    def skipped(self) -> list[ConfigurationError]:
        """Errors for entries left out of the last build."""
        return list(self._skipped)

    def build(self) -> RuleSet:
        """Build the rule set.

        Returns:
            Ordered tuple of guardrails
        """
        self._skipped = []
        rules: list[Guardrail] = []

        words = [w for w in self._config.banned_words if w]
        if words:
            rules.append(BannedWordsRule(words))

        patterns = self._valid_patterns(self._config.regex_patterns)
        if patterns:
            rules.append(PatternRule(patterns))

        max_prompt_length = self._config.max_prompt_length
        if max_prompt_length is not None and max_prompt_length > 0:
            rules.append(LengthRule(max_prompt_length))

        for index, entry in enumerate(self._config.custom_rules):
            rule = self._build_custom(index, entry)
            if rule is not None:
                rules.append(rule)

        logger.info(
            "Guardrails initialized",
            rules=[r.rule_id for r in rules],
            skipped=len(self._skipped),
        )
        return tuple(rules)

    def _valid_patterns(self, patterns: list[Any]) -> list[str]:
        valid: list[str] = []
        for pattern in patterns:
            try:
                if not isinstance(pattern, str):
                    raise ConfigurationError(
                        f"regex pattern must be a string, got {type(pattern).__name__}",
                        rule="regex-patterns",
                    )
                compile_pattern(pattern, rule="regex-patterns")
            except ConfigurationError as e:
                self._skip(e, field_path="guardrails.regex_patterns")
                continue
            valid.append(pattern)
        return valid

    def _build_custom(self, index: int, entry: CustomRuleConfig) -> Guardrail | None:
        try:
            _check_entry(entry)
            kind = custom_rule_kind(entry.type, rule=entry.name)
            return kind.from_parameters(entry.name, entry.parameters)
        except ConfigurationError as e:
            self._skip(e, field_path=f"guardrails.custom_rules[{index}]")
            return None

    def _skip(self, error: ConfigurationError, field_path: str) -> None:
        if error.context.field_path is None:
            error.context.field_path = field_path
        self._skipped.append(error)
        logger.warning(
            "Skipping invalid guardrail rule",
            rule=error.rule,
            field=error.context.field_path,
            error=error.message,
        )


def _check_entry(entry: CustomRuleConfig) -> None:
    """Reject custom entries whose fields have the wrong shape.

    Raises:
        ConfigurationError: If the entry is not a mapping, or its name,
            type or parameters have the wrong type
    """
    if entry.entry_error:
        raise ConfigurationError(entry.entry_error)
    if entry.name is not None and not isinstance(entry.name, str):
        raise ConfigurationError(
            f"custom rule name must be a string, got {type(entry.name).__name__}"
        )
    if not isinstance(entry.type, str):
        raise ConfigurationError(
            f"custom rule type must be a string, got {type(entry.type).__name__}",
            rule=entry.name,
        )
    if not isinstance(entry.parameters, Mapping):
        raise ConfigurationError(
            f"custom rule parameters must be a mapping, got {type(entry.parameters).__name__}",
            rule=entry.name,
        )


def build_rule_set(config: GuardrailsConfig) -> CompositeEvaluator:
    """Build an evaluator for a guardrails configuration section.

    Args:
        config: Guardrails configuration

    Returns:
        CompositeEvaluator over the rules that could be built
    """
    return CompositeEvaluator(RuleSetBuilder(config).build())
