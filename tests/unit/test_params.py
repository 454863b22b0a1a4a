"""Tests for custom rule parameter accessors."""

from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

import numpy as np
import pytest

from guard_proxy.errors import ConfigurationError
from guard_proxy.guardrails import ParameterError, get_int, get_string


class TestGetInt:
    """Tests for get_int."""

    @pytest.mark.parametrize("value", [5, 5.0, 5.9, Fraction(11, 2)])
    def test_numeric_values(self, value: object) -> None:
        """Test that any real number is truncated to an int."""
        assert get_int({"max_words": value}, "max_words") == 5

    def test_numpy_values(self) -> None:
        """Test numpy scalar types."""
        assert get_int({"n": np.int64(5)}, "n") == 5
        assert get_int({"n": np.float32(5.0)}, "n") == 5

    def test_missing(self) -> None:
        """Test a missing key."""
        with pytest.raises(ParameterError) as exc_info:
            get_int({}, "max_words", rule="word limit")
        err = exc_info.value
        assert err.actual == "missing"
        assert err.rule == "word limit"
        assert err.context.field_path == "parameters.max_words"

    def test_none_parameters(self) -> None:
        """Test that absent parameters behave like an empty mapping."""
        with pytest.raises(ParameterError):
            get_int(None, "max_words")

    @pytest.mark.parametrize("value", ["5", True, None, [5]])
    def test_wrong_type(self, value: object) -> None:
        """Test non-numeric values."""
        with pytest.raises(ParameterError) as exc_info:
            get_int({"max_words": value}, "max_words")
        assert "invalid max_words parameter type" in exc_info.value.message

    def test_decimal_rejected(self) -> None:
        """Test that Decimal is not a numbers.Real."""
        with pytest.raises(ParameterError):
            get_int({"n": Decimal("5")}, "n")

    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_non_finite(self, value: float) -> None:
        """Test infinite and NaN values."""
        with pytest.raises(ParameterError) as exc_info:
            get_int({"n": value}, "n")
        assert exc_info.value.expected == "finite number"

    def test_is_configuration_error(self) -> None:
        """Test that parameter errors are configuration errors."""
        assert issubclass(ParameterError, ConfigurationError)


class TestGetString:
    """Tests for get_string."""

    def test_string(self) -> None:
        """Test a string value."""
        assert get_string({"pattern": "abc"}, "pattern") == "abc"

    def test_number_rejected(self) -> None:
        """Test that numbers are not converted to strings."""
        with pytest.raises(ParameterError) as exc_info:
            get_string({"pattern": 42}, "pattern")
        assert exc_info.value.actual == "int"

    def test_missing(self) -> None:
        """Test a missing key."""
        with pytest.raises(ParameterError):
            get_string({"other": "x"}, "pattern")
