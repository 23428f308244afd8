"""Tests for ValidationEngine single-value and whole-record validation."""
import pytest
from unittest.mock import MagicMock

from roster.core.logging_manager import RosterLogger
from roster.database.models import FieldDefinition, FieldType, RuleKind, SemanticKind
from roster.ingest.validation import CONFIG_ERROR, ValidationEngine


def make_field(name, declared_type=FieldType.TEXT, **attrs):
    """Transient FieldDefinition with explicit defaults."""
    attrs.setdefault("required", False)
    return FieldDefinition(name=name, declared_type=declared_type, **attrs)


@pytest.fixture
def engine():
    return ValidationEngine([])


class TestBlankValues:
    """Tests for required and optional blanks."""

    def test_required_blank_is_error(self, engine):
        field = make_field("rut", required=True)
        assert engine.validate("  ", field) == (None, "field 'rut' is required")

    def test_optional_blank_uses_default(self, engine):
        field = make_field("estado", default_value="activo")
        assert engine.validate(None, field) == ("activo", None)

    def test_optional_blank_without_default_is_none(self, engine):
        assert engine.validate("", make_field("apodo")) == (None, None)


class TestTypes:
    """Tests for per-type conversion."""

    def test_number_is_canonicalized(self, engine):
        assert engine.validate(" 42.0 ", make_field("edad", FieldType.NUMBER)) == ("42", None)

    def test_invalid_number(self, engine):
        value, error = engine.validate("abc", make_field("age", FieldType.NUMBER))
        assert value is None
        assert error == "age: 'abc' is not a valid number"

    def test_number_bounds(self, engine):
        field = make_field("edad", FieldType.NUMBER, min_value=0, max_value=120)
        assert engine.validate("-1", field)[1] == "edad: must be greater than or equal to 0"
        assert engine.validate("121", field)[1] == "edad: must be less than or equal to 120"
        assert engine.validate("0", field) == ("0", None)

    @pytest.mark.parametrize("raw", ["1e5000", "1e999999999"])
    def test_huge_exponent_is_invalid_number(self, engine, raw):
        value, error = engine.validate(raw, make_field("edad", FieldType.NUMBER))
        assert value is None
        assert error == f"edad: '{raw}' is not a valid number"

    def test_boolean_tokens(self, engine):
        field = make_field("activo", FieldType.BOOLEAN)
        assert engine.validate("Sí", field) == ("true", None)
        assert engine.validate("no", field) == ("false", None)
        assert "not a valid boolean" in engine.validate("quizás", field)[1]

    def test_date(self, engine):
        field = make_field("nacimiento", FieldType.DATE)
        assert engine.validate("31/12/1990", field) == ("1990-12-31", None)
        assert "not a valid date" in engine.validate("31/31/1990", field)[1]

    def test_email(self, engine):
        field = make_field("correo", FieldType.EMAIL)
        assert engine.validate("ana@example.org", field) == ("ana@example.org", None)
        assert "not a valid email" in engine.validate("ana@@example.org", field)[1]
        assert "not a valid email" in engine.validate("ana.example.org", field)[1]

    def test_url(self, engine):
        field = make_field("web", FieldType.URL)
        assert engine.validate("https://example.org/x", field)[1] is None
        assert "not a valid URL" in engine.validate("example.org", field)[1]

    def test_malformed_url_host_is_invalid(self, engine):
        field = make_field("web", FieldType.URL)
        value, error = engine.validate("http://[oops", field)
        assert value is None
        assert error == "web: 'http://[oops' is not a valid URL"

    def test_phone(self, engine):
        field = make_field("telefono", FieldType.PHONE)
        assert engine.validate("+56 9 1234 5678", field)[1] is None
        assert "not a valid phone" in engine.validate("call me", field)[1]

    def test_text_length(self, engine):
        field = make_field("codigo", min_length=2, max_length=4)
        assert engine.validate("a", field)[1] == "codigo: must be at least 2 characters"
        assert engine.validate("abcde", field)[1] == "codigo: must not exceed 4 characters"
        assert engine.validate("abc", field) == ("abc", None)


class TestRules:
    """Tests for secondary rules."""

    def test_list_rule_is_case_insensitive(self, engine):
        field = make_field("estado", rule_kind=RuleKind.LIST, rule_spec="activo, inactivo")
        assert engine.validate("ACTIVO", field) == ("ACTIVO", None)
        assert engine.validate("otro", field)[1] == "estado: value must be one of: activo, inactivo"

    def test_list_rule_accepts_json_array(self, engine):
        field = make_field("nivel", rule_kind=RuleKind.LIST, rule_spec='["A", "B"]')
        assert engine.validate("b", field)[1] is None

    def test_regex_rule(self, engine):
        field = make_field("codigo", rule_kind=RuleKind.REGEX, rule_spec=r"^[A-Z]{3}\d$")
        assert engine.validate("ABC1", field)[1] is None
        assert engine.validate("AB12", field)[1] == "codigo: 'AB12' does not match the required pattern"

    def test_range_rule(self, engine):
        field = make_field(
            "edad", FieldType.NUMBER, rule_kind=RuleKind.RANGE, rule_spec='{"min": 18, "max": 65}'
        )
        assert engine.validate("30", field)[1] is None
        assert engine.validate("70", field)[1] == "edad: value must be between 18 and 65"

    @pytest.mark.parametrize(
        "kind, spec",
        [(RuleKind.REGEX, "([unclosed"), (RuleKind.RANGE, "not json"), (RuleKind.LIST, " , ")],
    )
    def test_malformed_rule_fails_the_field(self, kind, spec):
        logger = MagicMock(spec=RosterLogger)
        engine = ValidationEngine([], logger)
        field = make_field("campo", rule_kind=kind, rule_spec=spec)

        value, error = engine.validate("x", field)

        assert value is None
        assert error == f"campo: {CONFIG_ERROR}"
        logger.log_warning.assert_called_once()


class TestNationalIds:
    """Tests for national id canonicalization."""

    def test_national_id_is_canonicalized(self, engine):
        field = make_field("rut", semantic_kind=SemanticKind.NATIONAL_ID)
        assert engine.validate("12345678-9", field) == ("12.345.678-9", None)

    def test_canonical_value_revalidates_against_compact_regex(self, engine):
        field = make_field(
            "id_code",
            semantic_kind=SemanticKind.NATIONAL_ID,
            rule_kind=RuleKind.REGEX,
            rule_spec=r"^\d{7,8}-[0-9kK]$",
        )
        value, error = engine.validate("12345678-9", field)
        assert (value, error) == ("12.345.678-9", None)
        assert engine.validate(value, field) == ("12.345.678-9", None)

    def test_non_id_text_is_left_alone(self, engine):
        field = make_field("rut", semantic_kind=SemanticKind.NATIONAL_ID)
        assert engine.validate("pendiente", field) == ("pendiente", None)

    def test_other_fields_are_not_reformatted(self, engine):
        assert engine.validate("12345678-9", make_field("folio")) == ("12345678-9", None)


class TestValidateRecord:
    """Tests for whole-record validation."""

    @pytest.fixture
    def record_engine(self):
        return ValidationEngine(
            [
                make_field("rut", required=True, semantic_kind=SemanticKind.NATIONAL_ID),
                make_field("nombre", required=True),
                make_field("edad", FieldType.NUMBER),
                make_field("estado", default_value="activo"),
            ]
        )

    def test_valid_record_fills_defaults(self, record_engine):
        result = record_engine.validate_record({"RUT ": "12345678-9", "Nombre": " Ana "})

        assert result.valid
        assert result.values == {"rut": "12.345.678-9", "nombre": "Ana", "estado": "activo"}

    def test_missing_required_fields(self, record_engine):
        result = record_engine.validate_record({"edad": "3"})
        assert "field 'rut' is required" in result.errors
        assert "field 'nombre' is required" in result.errors

    def test_failed_field_keeps_raw_text(self, record_engine):
        result = record_engine.validate_record(
            {"rut": "12345678-9", "nombre": "Ana", "edad": " abc "}
        )
        assert result.errors == ["edad: 'abc' is not a valid number"]
        assert result.values["edad"] == "abc"

    def test_unknown_columns_reported_or_dropped(self, record_engine):
        row = {"rut": "12345678-9", "nombre": "Ana", "color": "azul"}

        reported = record_engine.validate_record(row, report_unknown=True)
        dropped = record_engine.validate_record(row, report_unknown=False)

        assert reported.errors == ["field 'color' is not defined in the schema"]
        assert reported.values["color"] == "azul"
        assert dropped.valid
        assert "color" not in dropped.values
