"""
Guardrails module for prompt screening.

Rules are plain predicates over prompt text. They are built once from
configuration, composed in a fixed order, and evaluated with
short-circuiting: the first rule that blocks decides the outcome.
"""

from guard_proxy.guardrails.base import (
    CompositeEvaluator,
    Guardrail,
    Outcome,
    RuleSet,
    RuleVerdict,
)
from guard_proxy.guardrails.builder import RuleSetBuilder, build_rule_set
from guard_proxy.guardrails.params import ParameterError, get_int, get_string
from guard_proxy.guardrails.rules import (
    CUSTOM_RULE_KINDS,
    BannedWordsRule,
    ContainsPatternRule,
    CustomRule,
    LengthRule,
    PatternRule,
    WordCountRule,
    compile_pattern,
    custom_rule_kind,
)

__all__ = [
    # Base classes
    "CompositeEvaluator",
    "Guardrail",
    "Outcome",
    "RuleSet",
    "RuleVerdict",
    # Rules
    "BannedWordsRule",
    "ContainsPatternRule",
    "CustomRule",
    "CUSTOM_RULE_KINDS",
    "LengthRule",
    "PatternRule",
    "WordCountRule",
    "compile_pattern",
    "custom_rule_kind",
    # Parameters
    "ParameterError",
    "get_int",
    "get_string",
    # Builder
    "RuleSetBuilder",
    "build_rule_set",
]
