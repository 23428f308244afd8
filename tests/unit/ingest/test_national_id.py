"""Tests for national id shape checks and formatting."""
import pytest

from roster.ingest import national_id


class TestLooksLike:
    """Tests for national_id.looks_like."""

    @pytest.mark.parametrize(
        "value",
        ["12345678-9", "12.345.678-9", "123456789", "9.876.543-K", "9876543-k", " 1234567-0 "],
    )
    def test_accepts_id_shapes(self, value):
        assert national_id.looks_like(value)

    @pytest.mark.parametrize(
        "value", ["", None, "abc", "12345", "1234567890-1", "12K45678-9", "K2345678-9"]
    )
    def test_rejects_other_values(self, value):
        assert not national_id.looks_like(value)

    def test_check_character_is_not_verified(self):
        """Only the shape matters; any check digit is accepted."""
        assert national_id.looks_like("12345678-0")
        assert national_id.looks_like("12345678-1")


class TestFormatting:
    """Tests for canonical and compact forms."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12345678-9", "12.345.678-9"),
            ("123456789", "12.345.678-9"),
            ("12.345.678-9", "12.345.678-9"),
            ("9876543-k", "9.876.543-K"),
            ("1234567-0", "1.234.567-0"),
        ],
    )
    def test_canonical(self, raw, expected):
        assert national_id.canonical(raw) == expected

    def test_canonical_is_idempotent(self):
        once = national_id.canonical("12345678-9")
        assert national_id.canonical(once) == once

    def test_compact(self):
        assert national_id.compact("12.345.678-k") == "12345678-K"
        assert national_id.compact("9876543-0") == "9876543-0"

    def test_clean_keeps_digits_and_k(self):
        assert national_id.clean("12.345.678-k") == "12345678k"
