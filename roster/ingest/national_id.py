#!/usr/bin/env python3
"""
national_id.py
--------------------
Helpers for national identification numbers (RUT/RUN style).

A national id is a numeric body followed by a check character (a digit or
K). It is written either compactly ("12345678-9") or punctuated with
thousands dots ("12.345.678-9"); the punctuated form is canonical.

Only the shape is checked here. The check character is not verified
against the body, so "12345678-9" is accepted as is.

Examples:
    >>> canonical("123456789")
    '12.345.678-9'
    >>> compact("12.345.678-k")
    '12345678-K'
    >>> looks_like("abc")
    False
"""
from __future__ import annotations

import re
from typing import Optional

_STRIP = re.compile(r"[^\dkK]")
_BODY = re.compile(r"^\d+$")
_CHECK = re.compile(r"^[\dK]$")
_THOUSANDS = re.compile(r"\B(?=(\d{3})+(?!\d))")


def clean(value: str) -> str:
    """Strip everything except digits and the letter K."""
    return _STRIP.sub("", value or "")


def looks_like(value: Optional[str]) -> bool:
    """
    Check whether a value has the shape of a national id.

    Args:
        value: Raw value, punctuated or not

    Returns:
        True if 7-9 characters remain after cleaning, the body is numeric
        and the last character is a digit or K
    """
    if not value:
        return False
    stripped = clean(value).upper()
    if not 7 <= len(stripped) <= 9:
        return False
    return bool(_BODY.match(stripped[:-1]) and _CHECK.match(stripped[-1]))


def _split(value: str):
    stripped = clean(value).upper()
    return stripped[:-1], stripped[-1:]


def canonical(value: str) -> str:
    """
    Format a national id as ``12.345.678-9``.

    Values too short to carry a check character are returned cleaned
    and upper-cased.
    """
    stripped = clean(value).upper()
    if len(stripped) < 2:
        return stripped
    body, check = _split(stripped)
    return f"{_THOUSANDS.sub('.', body)}-{check}"


def compact(value: str) -> str:
    """Format a national id as ``12345678-9`` (no thousands separators)."""
    stripped = clean(value).upper()
    if len(stripped) < 2:
        return stripped
    body, check = _split(stripped)
    return f"{body}-{check}"
