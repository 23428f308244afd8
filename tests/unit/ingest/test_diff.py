"""Tests for DiffEngine matching, differences and classification."""
import pytest

from roster.database.models import StagedRowState
from roster.ingest.diff import DiffEngine
from roster.ingest.models import FieldChange


class TestDiff:
    """Tests for DiffEngine.diff."""

    def test_identical_after_trimming(self):
        assert DiffEngine.diff({"nombre": "Ana "}, {"nombre": " Ana"}) == []

    def test_changed_field(self):
        changes = DiffEngine.diff({"nombre": "Ana María"}, {"nombre": "Ana"})
        assert changes == [FieldChange("nombre", "Ana", "Ana María")]

    def test_new_field(self):
        assert DiffEngine.diff({"edad": "30"}, {}) == [FieldChange("edad", "", "30")]

    def test_dropped_field_is_reported(self):
        changes = DiffEngine.diff({"nombre": "Ana"}, {"nombre": "Ana", "edad": "30"})
        assert changes == [FieldChange("edad", "30", "")]

    def test_dropped_empty_field_is_ignored(self):
        assert DiffEngine.diff({"nombre": "Ana"}, {"nombre": "Ana", "edad": ""}) == []

    def test_change_to_dict(self):
        change = FieldChange("nombre", "Ana", "Eva")
        assert change.to_dict() == {"field": "nombre", "old": "Ana", "new": "Eva"}


class TestClassify:
    """Tests for DiffEngine.classify against the record store."""

    @pytest.fixture
    def engine(self, field_manager, record_manager):
        field_manager.create({"name": "rut"})
        field_manager.create({"name": "nombre"})
        field_manager.create({"name": "apellido"})
        return DiffEngine(record_manager)

    @pytest.fixture
    def existing(self, engine, record_manager):
        return record_manager.insert(
            {"rut": "12.345.678-5", "nombre": "Ana", "apellido": "Rojas"}
        )

    def test_errors_win(self, engine, existing):
        result = engine.classify({"rut": "12.345.678-5"}, ["nombre: broken"])
        assert result.state == StagedRowState.ERROR
        assert result.matched_record_id is None

    def test_new_when_unmatched(self, engine, existing):
        result = engine.classify({"rut": "9.876.543-2", "nombre": "Eva"}, [])
        assert result.state == StagedRowState.NEW

    def test_unchanged_carries_match(self, engine, existing):
        result = engine.classify(
            {"rut": "12.345.678-5", "nombre": "Ana", "apellido": "Rojas"}, []
        )
        assert result.state == StagedRowState.UNCHANGED
        assert result.matched_record_id == existing.id
        assert result.changes == []

    def test_update_carries_prior_fields(self, engine, existing):
        result = engine.classify(
            {"rut": "12.345.678-5", "nombre": "Ana María", "apellido": "Rojas"}, []
        )
        assert result.state == StagedRowState.UPDATE
        assert result.matched_record_id == existing.id
        assert result.prior_fields == {
            "rut": "12.345.678-5", "nombre": "Ana", "apellido": "Rojas"
        }
        assert result.changes == [FieldChange("nombre", "Ana", "Ana María")]

    def test_secondary_key_match_without_national_id(self, engine, existing):
        result = engine.classify({"nombre": "ANA", "apellido": " rojas "}, [])
        assert result.matched_record_id == existing.id

    def test_secondary_key_needs_both_halves(self, engine, existing):
        assert engine.match({"nombre": "Ana"}) is None

    def test_national_id_decides_over_names(self, engine, existing):
        """A row with a different national id is new even if the names match."""
        result = engine.classify(
            {"rut": "9.876.543-2", "nombre": "Ana", "apellido": "Rojas"}, []
        )
        assert result.state == StagedRowState.NEW
