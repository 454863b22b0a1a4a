"""Tests for building rule sets from configuration."""

from __future__ import annotations

from guard_proxy.config import CustomRuleConfig, GuardrailsConfig
from guard_proxy.errors import InvalidPatternError, UnknownRuleKindError
from guard_proxy.guardrails import (
    BannedWordsRule,
    ContainsPatternRule,
    LengthRule,
    ParameterError,
    PatternRule,
    RuleSetBuilder,
    WordCountRule,
    build_rule_set,
)


def _config(**kwargs: object) -> GuardrailsConfig:
    kwargs.setdefault("max_prompt_length", None)
    return GuardrailsConfig.model_validate(kwargs)


class TestRuleSetBuilder:
    """Tests for RuleSetBuilder."""

    def test_build_order(self) -> None:
        """Test that rules are built banned, pattern, length, custom."""
        config = _config(
            custom_rules=[
                {"name": "limit", "type": "word_count", "parameters": {"max_words": 3}},
                {"name": "inject", "type": "contains_pattern", "parameters": {"pattern": "x"}},
            ],
            max_prompt_length=100,
            regex_patterns=["foo"],
            banned_words=["bomb"],
        )
        rules = RuleSetBuilder(config).build()
        assert [type(r) for r in rules] == [
            BannedWordsRule,
            PatternRule,
            LengthRule,
            WordCountRule,
            ContainsPatternRule,
        ]
        assert [r.rule_id for r in rules[3:]] == ["limit", "inject"]

    def test_empty_config(self) -> None:
        """Test that an empty section builds an empty rule set."""
        builder = RuleSetBuilder(_config())
        assert builder.build() == ()
        assert builder.skipped == []

    def test_defaults_add_length_rule(self) -> None:
        """Test the default prompt length bound."""
        rules = RuleSetBuilder(GuardrailsConfig()).build()
        assert len(rules) == 1
        assert isinstance(rules[0], LengthRule)
        assert rules[0].max_length == 4000

    def test_zero_length_disables(self) -> None:
        """Test that a zero prompt length adds no rule."""
        assert RuleSetBuilder(_config(max_prompt_length=0)).build() == ()

    def test_empty_banned_words_ignored(self) -> None:
        """Test that empty strings do not produce a banned words rule."""
        assert RuleSetBuilder(_config(banned_words=["", ""])).build() == ()

    def test_invalid_pattern_skipped(self) -> None:
        """Test that a bad pattern is dropped and the others kept."""
        builder = RuleSetBuilder(_config(regex_patterns=["[bad", "good"]))
        rules = builder.build()
        assert len(rules) == 1
        assert rules[0].patterns == ("good",)
        assert len(builder.skipped) == 1
        skipped = builder.skipped[0]
        assert isinstance(skipped, InvalidPatternError)
        assert skipped.context.field_path == "guardrails.regex_patterns"

    def test_all_patterns_invalid(self) -> None:
        """Test that no pattern rule is built when nothing compiles."""
        builder = RuleSetBuilder(_config(regex_patterns=["(", "["]))
        assert builder.build() == ()
        assert len(builder.skipped) == 2

    def test_unknown_kind_skipped(self) -> None:
        """Test that an unknown custom kind is dropped."""
        builder = RuleSetBuilder(
            _config(custom_rules=[{"name": "mystery", "type": "sentiment"}])
        )
        assert builder.build() == ()
        skipped = builder.skipped[0]
        assert isinstance(skipped, UnknownRuleKindError)
        assert skipped.message == "unknown custom rule type: sentiment"
        assert skipped.context.field_path == "guardrails.custom_rules[0]"

    def test_wrong_parameter_type_skipped(self) -> None:
        """Test that a numeric pattern is dropped."""
        builder = RuleSetBuilder(
            _config(
                custom_rules=[
                    {"name": "bad", "type": "contains_pattern", "parameters": {"pattern": 42}},
                ]
            )
        )
        assert builder.build() == ()
        assert isinstance(builder.skipped[0], ParameterError)
        assert builder.skipped[0].rule == "bad"

    def test_negative_max_words_skipped(self) -> None:
        """Test that a negative word limit is dropped."""
        builder = RuleSetBuilder(
            _config(
                custom_rules=[
                    {"name": "neg", "type": "word_count", "parameters": {"max_words": -1}},
                ]
            )
        )
        assert builder.build() == ()
        assert builder.skipped[0].context.field_path == "guardrails.custom_rules[0]"

    def test_valid_entries_survive(self) -> None:
        """Test that one bad entry does not affect its neighbours."""
        config = _config(
            custom_rules=[
                CustomRuleConfig(name="a", type="word_count", parameters={"max_words": 5}),
                CustomRuleConfig(name="b", type="nope"),
                CustomRuleConfig(name="c", type="contains_pattern", parameters={"pattern": "("}),
                CustomRuleConfig(name="d", type="contains_pattern", parameters={"pattern": "z"}),
            ]
        )
        builder = RuleSetBuilder(config)
        rules = builder.build()
        assert [r.rule_id for r in rules] == ["a", "d"]
        assert [e.context.field_path for e in builder.skipped] == [
            "guardrails.custom_rules[1]",
            "guardrails.custom_rules[2]",
        ]

    def test_float_max_words(self) -> None:
        """Test that a float word limit is accepted."""
        config = _config(
            custom_rules=[{"type": "word_count", "parameters": {"max_words": 5.0}}]
        )
        rules = RuleSetBuilder(config).build()
        assert rules[0].max_words == 5
        assert rules[0].rule_id == "custom rule"

    def test_malformed_entry_fields_skipped(self) -> None:
        """Test that wrongly typed entry fields drop only that entry."""
        config = _config(
            custom_rules=[
                {"name": "ok", "type": "word_count", "parameters": {"max_words": 3}},
                {"name": "bad", "type": 5, "parameters": [1]},
                {"name": "list params", "type": "word_count", "parameters": [1]},
                {"name": 7, "type": "word_count", "parameters": {"max_words": 3}},
                "not a mapping",
            ]
        )
        builder = RuleSetBuilder(config)
        rules = builder.build()

        assert [r.rule_id for r in rules] == ["ok"]
        assert [e.context.field_path for e in builder.skipped] == [
            "guardrails.custom_rules[1]",
            "guardrails.custom_rules[2]",
            "guardrails.custom_rules[3]",
            "guardrails.custom_rules[4]",
        ]
        assert builder.skipped[0].message == "custom rule type must be a string, got int"
        assert builder.skipped[1].message == "custom rule parameters must be a mapping, got list"
        assert builder.skipped[3].message == "custom rule entry must be a mapping, got str"

    def test_non_string_pattern_skipped(self) -> None:
        """Test that a non-string regex entry is dropped and the others kept."""
        builder = RuleSetBuilder(_config(regex_patterns=[42, "good"]))
        rules = builder.build()
        assert rules[0].patterns == ("good",)
        assert builder.skipped[0].context.field_path == "guardrails.regex_patterns"

    def test_rebuild_resets_skipped(self) -> None:
        """Test that each build reports only its own skipped entries."""
        builder = RuleSetBuilder(_config(regex_patterns=["("]))
        builder.build()
        builder.build()
        assert len(builder.skipped) == 1


class TestBuildRuleSet:
    """Tests for build_rule_set."""

    def test_returns_evaluator(self) -> None:
        """Test that the built evaluator screens content."""
        evaluator = build_rule_set(_config(banned_words=["bomb"]))
        assert evaluator.evaluate("a bomb").reason == "content contains banned word: bomb"
        assert evaluator.evaluate("a joke").is_passed
