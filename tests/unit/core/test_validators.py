"""Tests for DataValidator value normalization."""
from datetime import date, datetime

import pytest

from roster.core.validators import DataValidator


class TestBlankAndStrings:
    """Tests for blank detection and string normalization."""

    @pytest.mark.parametrize("value", [None, "", "   ", "\t"])
    def test_blank_values(self, value):
        assert DataValidator.is_blank(value)

    @pytest.mark.parametrize("value", ["a", 0, False, " x "])
    def test_non_blank_values(self, value):
        assert not DataValidator.is_blank(value)

    def test_normalize_string_trims(self):
        assert DataValidator.normalize_string("  Ana  ") == "Ana"
        assert DataValidator.normalize_string("   ") is None
        assert DataValidator.normalize_string(42) == "42"
        assert DataValidator.normalize_string(True) == "true"


class TestNumbers:
    """Tests for canonical decimal strings."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("42", "42"), ("42.0", "42"), (" 3.50 ", "3.5"), (7, "7"), (2.25, "2.25"), ("-1", "-1")],
    )
    def test_canonical_forms(self, raw, expected):
        assert DataValidator.normalize_number(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", None, "nan", "inf", True])
    def test_rejected_values(self, raw):
        assert DataValidator.normalize_number(raw) is None

    @pytest.mark.parametrize("raw", ["1e5000", "1e999999999", "-1E+101", "1e-5000"])
    def test_out_of_range_exponents_rejected(self, raw):
        assert DataValidator.normalize_number(raw) is None

    def test_large_values_within_range(self):
        assert DataValidator.normalize_number("1e100") == "1" + "0" * 100
        assert DataValidator.normalize_number("0E+5000") == "0"

    def test_to_float(self):
        assert DataValidator.to_float("1.5") == 1.5
        assert DataValidator.to_float("x") is None


class TestBooleans:
    """Tests for boolean tokens."""

    @pytest.mark.parametrize("raw", [True, "true", "TRUE", "1", "sí", "Si", 1])
    def test_true_tokens(self, raw):
        assert DataValidator.normalize_bool(raw) == "true"

    @pytest.mark.parametrize("raw", [False, "false", "0", "No", 0])
    def test_false_tokens(self, raw):
        assert DataValidator.normalize_bool(raw) == "false"

    @pytest.mark.parametrize("raw", ["yes", "maybe", 2, None])
    def test_unknown_tokens(self, raw):
        assert DataValidator.normalize_bool(raw) is None


class TestDates:
    """Tests for date normalization."""

    @pytest.mark.parametrize(
        "raw",
        ["2024-03-05", "05/03/2024", "05-03-2024", "2024/03/05", "05.03.2024",
         "2024-03-05T10:30:00Z", date(2024, 3, 5), datetime(2024, 3, 5, 8, 0)],
    )
    def test_accepted_formats(self, raw):
        assert DataValidator.normalize_date(raw) == "2024-03-05"

    @pytest.mark.parametrize("raw", ["2024-13-40", "yesterday", "", None, 20240305])
    def test_rejected_values(self, raw):
        assert DataValidator.normalize_date(raw) is None
