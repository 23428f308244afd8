#!/usr/bin/env python3
"""
ingestion_configs.py
--------------------
Configuration for schema inference, validation and bulk ingestion.

Constants here are read by the validation engine, the field manager (when
inferring semantic kinds at definition time), the bulk job tracker and the
audit retention cleanup.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Pattern, Tuple


# ----- Bulk processing -----
BULK_BATCH_SIZE = 100
BULK_MAX_WORKERS = 2

# ----- Audit retention -----
AUDIT_RETENTION_DAYS = 7


# ----- Type coercion -----
# Largest decimal exponent accepted for number fields
MAX_NUMBER_EXPONENT = 100

TRUE_TOKENS: FrozenSet[str] = frozenset({"true", "1", "sí", "si"})
FALSE_TOKENS: FrozenSet[str] = frozenset({"false", "0", "no"})

# Tried in order after ISO-8601
DATE_FORMATS: Tuple[str, ...] = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)

EMAIL_PATTERN: Pattern[str] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN: Pattern[str] = re.compile(r"^\+?[\d\s\-()]{7,15}$")


@dataclass(frozen=True)
class SemanticKindHints:
    """
    Heuristics used once, when a field is defined, to tag its semantic kind.

    Attributes:
        national_id_names: Patterns matched against field name and description
        national_id_samples: Values a national-id regex rule should accept
        first_name_names: Normalized field names meaning "first name"
        last_name_names: Normalized field names meaning "last name"
    """

    national_id_names: Tuple[Pattern[str], ...] = (
        re.compile(r"\brut\b", re.IGNORECASE),
        re.compile(r"\brun\b", re.IGNORECASE),
        re.compile(r"national[\s_-]*id", re.IGNORECASE),
        re.compile(r"\d+\.\d+\.\d+-[\dkK]"),
    )
    national_id_samples: Tuple[str, ...] = (
        "12345678-5",
        "12.345.678-5",
        "9876543-K",
        "9.876.543-k",
    )
    first_name_names: FrozenSet[str] = frozenset(
        {"nombre", "nombres", "first name", "first_name", "firstname", "given name"}
    )
    last_name_names: FrozenSet[str] = frozenset(
        {"apellido", "apellidos", "last name", "last_name", "lastname", "surname"}
    )


SEMANTIC_HINTS = SemanticKindHints()


@dataclass(frozen=True)
class ContextFieldConfig:
    """Fields summarized in audit context strings, in priority order."""

    labels: List[Tuple[str, str]] = field(
        default_factory=lambda: [
            ("national_id", "National ID"),
            ("first_name", "First name"),
            ("last_name", "Last name"),
        ]
    )
    fallback_count: int = 2


AUDIT_CONTEXT = ContextFieldConfig()
