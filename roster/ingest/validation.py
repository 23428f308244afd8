#!/usr/bin/env python3
"""
validation.py
--------------------
Schema-driven validation and normalization of raw cell values.

The ValidationEngine checks values against the column dictionary:

    1. blank handling (required -> error, optional -> default or None)
    2. type conversion by declared type
    3. secondary rule (list, regex, range) for any type
    4. canonicalization of national ids (never rejects)

Field-level problems are returned as messages, never raised. A malformed
rule is reported as a validation failure of the affected field.

Usage:
    engine = ValidationEngine(db.fields.list_fields())
    value, error = engine.validate("42", age_field)
    result = engine.validate_record({"rut": "12345678-9"}, report_unknown=True)
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from roster.configs.ingestion_configs import EMAIL_PATTERN, PHONE_PATTERN
from roster.core.logging_manager import RosterLogger, safe_logger
from roster.core.validators import DataValidator
from roster.database.models import FieldDefinition, FieldType, RuleKind

from . import national_id
from .models import ValidationResult

ValueCheck = Tuple[Optional[str], Optional[str]]

CONFIG_ERROR = "invalid validation configuration"


def normalize_key(key: Any) -> str:
    """Column names are matched lower-cased and trimmed."""
    return str(key).strip().lower()


def _number_text(value: float) -> str:
    return DataValidator.normalize_number(value) or str(value)


def _parse_options(spec: str) -> List[str]:
    """Options of a list rule: a JSON array or a comma-separated string."""
    try:
        parsed = json.loads(spec)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        options = [str(option).strip() for option in parsed]
    else:
        options = [option.strip() for option in spec.split(",")]
    return [option for option in options if option]


class ValidationEngine:
    """
    Validates values and whole records against a column dictionary snapshot.

    Attributes:
        fields: Field definitions keyed by normalized name, registry order
        logger: Optional logger for configuration problems
    """

    def __init__(
        self,
        fields: Iterable[FieldDefinition],
        logger: Optional[RosterLogger] = None,
    ) -> None:
        self.fields: Dict[str, FieldDefinition] = {
            normalize_key(f.name): f for f in fields
        }
        self.logger = logger

    # -------------------------------------------------------------------------
    # Single values
    # -------------------------------------------------------------------------

    def validate(self, raw_value: Any, field: FieldDefinition) -> ValueCheck:
        """
        Validate and normalize one raw value for a field.

        Args:
            raw_value: String, number, boolean or None
            field: Definition the value must satisfy

        Returns:
            (normalized_value, None) on success, (None, message) on failure.
            An optional blank value yields (default_or_None, None).
        """
        if DataValidator.is_blank(raw_value):
            if field.required:
                return None, f"field '{field.name}' is required"
            return DataValidator.normalize_string(field.default_value), None

        value, error = self._convert(raw_value, field)
        if error:
            return None, error

        error = self._check_rule(value, field)
        if error:
            return None, error

        if field.is_national_id and national_id.looks_like(value):
            value = national_id.canonical(value)
        return value, None

    def _convert(self, raw_value: Any, field: FieldDefinition) -> ValueCheck:
        """Type conversion and per-type constraints."""
        name = field.name
        text = DataValidator.normalize_string(raw_value)
        kind = field.declared_type

        if kind == FieldType.NUMBER:
            value = DataValidator.normalize_number(raw_value)
            if value is None:
                return None, f"{name}: '{text}' is not a valid number"
            number = float(value)
            if field.min_value is not None and number < field.min_value:
                return None, (
                    f"{name}: must be greater than or equal to "
                    f"{_number_text(field.min_value)}"
                )
            if field.max_value is not None and number > field.max_value:
                return None, (
                    f"{name}: must be less than or equal to "
                    f"{_number_text(field.max_value)}"
                )
            return value, None

        if kind == FieldType.BOOLEAN:
            value = DataValidator.normalize_bool(raw_value)
            if value is None:
                return None, f"{name}: '{text}' is not a valid boolean"
            return value, None

        if kind == FieldType.DATE:
            value = DataValidator.normalize_date(raw_value)
            if value is None:
                return None, f"{name}: '{text}' is not a valid date"
            return value, None

        if kind == FieldType.EMAIL:
            if text.count("@") != 1 or not EMAIL_PATTERN.match(text):
                return None, f"{name}: '{text}' is not a valid email address"
            return text, None

        if kind == FieldType.URL:
            try:
                parsed = urlparse(text)
            except ValueError:
                return None, f"{name}: '{text}' is not a valid URL"
            if not parsed.scheme or not parsed.netloc:
                return None, f"{name}: '{text}' is not a valid URL"
            return text, None

        if kind == FieldType.PHONE:
            if not PHONE_PATTERN.match(text):
                return None, f"{name}: '{text}' is not a valid phone number"
            return text, None

        if kind.is_textual:
            if field.min_length and len(text) < field.min_length:
                return None, f"{name}: must be at least {field.min_length} characters"
            if field.max_length and len(text) > field.max_length:
                return None, f"{name}: must not exceed {field.max_length} characters"

        # select and the textual types are stored as strings
        return text, None

    def _check_rule(self, value: str, field: FieldDefinition) -> Optional[str]:
        """Evaluate the secondary rule; None when it passes or is absent."""
        if not field.has_rule:
            return None

        name = field.name
        spec = field.rule_spec

        if field.rule_kind == RuleKind.LIST:
            options = _parse_options(spec)
            if not options:
                return self._config_error(field, "empty option list")
            if value.lower() not in {option.lower() for option in options}:
                return f"{name}: value must be one of: {', '.join(options)}"
            return None

        if field.rule_kind == RuleKind.REGEX:
            try:
                pattern = re.compile(spec)
            except re.error as e:
                return self._config_error(field, f"bad pattern ({e})")
            if pattern.fullmatch(value):
                return None
            # A canonical national id re-validates through its compact form
            if (
                field.is_national_id
                and national_id.looks_like(value)
                and pattern.fullmatch(national_id.compact(value))
            ):
                return None
            return f"{name}: '{value}' does not match the required pattern"

        if field.rule_kind == RuleKind.RANGE:
            try:
                bounds = json.loads(spec)
            except ValueError:
                return self._config_error(field, "range is not valid JSON")
            if not isinstance(bounds, dict):
                return self._config_error(field, "range must be a JSON object")
            low = DataValidator.to_float(bounds.get("min"))
            high = DataValidator.to_float(bounds.get("max"))
            number = DataValidator.to_float(value)
            if number is None:
                return None
            if (low is not None and number < low) or (high is not None and number > high):
                return (
                    f"{name}: value must be between "
                    f"{bounds.get('min')} and {bounds.get('max')}"
                )
            return None

        return None

    def _config_error(self, field: FieldDefinition, detail: str) -> str:
        safe_logger(self.logger).log_warning(
            "Invalid validation rule",
            {"field": field.name, "rule_kind": str(field.rule_kind), "detail": detail},
        )
        return f"{field.name}: {CONFIG_ERROR}"

    # -------------------------------------------------------------------------
    # Whole records
    # -------------------------------------------------------------------------

    def validate_record(
        self, data: Dict[str, Any], report_unknown: bool = False
    ) -> ValidationResult:
        """
        Validate every field of a record against the registry.

        Args:
            data: Raw field map; keys are matched lower-cased and trimmed
            report_unknown: Report columns missing from the registry as
                errors (staging) instead of dropping them (direct edits)

        Returns:
            ValidationResult. Fields that failed keep their trimmed raw text
            in ``values`` so that an operator can correct them in place.
        """
        result = ValidationResult()
        seen = set()

        for key, raw_value in data.items():
            name = normalize_key(key)
            seen.add(name)
            field = self.fields.get(name)

            if field is None:
                if report_unknown:
                    result.errors.append(f"field '{name}' is not defined in the schema")
                    text = DataValidator.normalize_string(raw_value)
                    if text is not None:
                        result.values[name] = text
                continue

            value, error = self.validate(raw_value, field)
            if error:
                result.errors.append(error)
                text = DataValidator.normalize_string(raw_value)
                if text is not None:
                    result.values[name] = text
            elif value is not None:
                result.values[name] = value

        for name, field in self.fields.items():
            if name in seen:
                continue
            if field.required:
                result.errors.append(f"field '{field.name}' is required")
            else:
                default = DataValidator.normalize_string(field.default_value)
                if default is not None:
                    result.values[name] = default

        return result
