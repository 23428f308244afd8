#!/usr/bin/env python3
"""
validators.py
--------------------
Data normalization primitives shared by every Roster component.

DataValidator converts untyped cell values (strings, numbers, booleans,
None) into canonical string forms. Functions return None when a value
cannot be converted; deciding whether that is an error is the caller's job.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from roster.configs.ingestion_configs import (
    DATE_FORMATS,
    FALSE_TOKENS,
    MAX_NUMBER_EXPONENT,
    TRUE_TOKENS,
)


class DataValidator:
    """Centralized value normalization for ingestion and database operations."""

    @staticmethod
    def is_blank(value: Any) -> bool:
        """True for None and for strings that are empty after trimming."""
        if value is None:
            return True
        return isinstance(value, str) and not value.strip()

    @staticmethod
    def normalize_string(value: Any) -> Optional[str]:
        """
        Normalize to a trimmed string.

        Args:
            value: Value to normalize

        Returns:
            Trimmed string, or None for blank input
        """
        if DataValidator.is_blank(value):
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value).strip()

    @staticmethod
    def normalize_number(value: Any) -> Optional[str]:
        """
        Convert a value to its canonical decimal string.

        Integral values drop their fractional part ("42.0" -> "42"),
        others keep the shortest exact form ("3.50" -> "3.5").

        Returns:
            Canonical string, or None when the value is not a finite number
            or its decimal exponent exceeds MAX_NUMBER_EXPONENT
        """
        if isinstance(value, bool) or DataValidator.is_blank(value):
            return None
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
        if not number.is_finite():
            return None
        if number and abs(number.adjusted()) > MAX_NUMBER_EXPONENT:
            return None
        if number == number.to_integral_value():
            return str(int(number))
        return format(number.normalize(), "f")

    @staticmethod
    def normalize_bool(value: Any) -> Optional[str]:
        """
        Convert booleans and boolean-like tokens to "true"/"false".

        Accepted tokens (case-insensitive) come from ingestion_configs:
        "true", "1", "sí", "si" and "false", "0", "no".

        Returns:
            "true", "false", or None if the value is not boolean-like
        """
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)) and value in (0, 1):
            return "true" if value == 1 else "false"
        if isinstance(value, str):
            token = value.strip().lower()
            if token in TRUE_TOKENS:
                return "true"
            if token in FALSE_TOKENS:
                return "false"
        return None

    @staticmethod
    def normalize_date(value: Any) -> Optional[str]:
        """
        Normalize dates to an ISO-8601 calendar date string.

        Accepts date/datetime objects, ISO dates and datetimes, and the
        day-first formats listed in ingestion_configs.DATE_FORMATS.

        Returns:
            "YYYY-MM-DD", or None when the value cannot be parsed
        """
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if not isinstance(value, str) or not value.strip():
            return None

        text = value.strip()
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date().isoformat()
            except ValueError:
                continue
        return None

    @staticmethod
    def to_float(value: Any) -> Optional[float]:
        """Convert to float safely; None when not numeric."""
        canonical = DataValidator.normalize_number(value)
        return float(canonical) if canonical is not None else None
