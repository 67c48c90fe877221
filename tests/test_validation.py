"""Tests for field specifications and value validation."""

from __future__ import annotations

import importlib

import pytest


def _validation():
    return importlib.import_module("lib.validation")


def test_required_text_field_reports_label_in_reason() -> None:
    validation = _validation()
    spec = validation.FieldSpec("address", "Dirección", required=True)

    result = validation.validate(spec, "   ")

    assert not result.valid
    assert result.reason == "Dirección: campo obligatorio"
    assert validation.validate(spec, "Calle 10 # 4-21").valid


def test_optional_empty_field_is_valid() -> None:
    validation = _validation()
    spec = validation.FieldSpec("patients", "Pacientes", validation.FieldKind.NUMBER)

    assert validation.validate(spec, "").valid
    assert validation.validate(spec, None).valid


@pytest.mark.parametrize("raw", ["12", "12.5", "12,5", " 7 ", 3, 2.5])
def test_number_field_accepts_numeric_text(raw) -> None:
    validation = _validation()
    spec = validation.FieldSpec("workers", "Trabajadores", validation.FieldKind.NUMBER, required=True)

    assert validation.validate(spec, raw).valid


@pytest.mark.parametrize("raw", ["doce", "1.2.3", "nan", "inf", True])
def test_number_field_rejects_non_numeric_values(raw) -> None:
    validation = _validation()
    spec = validation.FieldSpec("workers", "Trabajadores", validation.FieldKind.NUMBER)

    result = validation.validate(spec, raw)

    assert not result.valid
    assert result.reason == "Trabajadores: debe ser un número"


def test_enum_field_rejects_values_outside_options() -> None:
    validation = _validation()
    spec = validation.FieldSpec(
        "unit", "Unidad", validation.FieldKind.ENUM, options=("kWh/mes", "m3/mes")
    )

    assert validation.validate(spec, "kWh/mes").valid
    result = validation.validate(spec, "MWh")
    assert result.reason == "Unidad: opción no válida"


def test_conditional_field_is_ignored_while_hidden() -> None:
    """A hidden conditional field is valid whatever it holds."""

    validation = _validation()
    sections = importlib.import_module("lib.sections")
    spec = next(s for s in sections.OPPORTUNITY_FIELDS if s.key == "otherSpecification")

    hidden = {"measureType": "Medidas pasivas", "otherSpecification": ""}
    shown = {"measureType": "Otra", "otherSpecification": ""}

    assert not spec.is_visible(hidden)
    assert validation.validate(spec, "", hidden).valid
    assert spec.is_visible(shown)
    assert validation.validate(spec, "", shown).reason == "Si otra, especificar: campo obligatorio"
    assert validation.validate(spec, "Aislamiento de cubierta", shown).valid


def test_nested_condition_reads_sibling_paths() -> None:
    validation = _validation()
    sections = importlib.import_module("lib.sections")
    specs = sections.OPPORTUNITY_FIELDS
    values = validation.default_values(specs)
    values["measureType"] = "Medidas pasivas"
    values["measureDescription"] = "Cambio de luminarias"

    results = validation.validate_values(specs, values)
    assert results["costAndFinancing.financingMechanism"].valid

    values["costAndFinancing"]["hasFinancingMechanism"] = validation.YES
    results = validation.validate_values(specs, values)
    assert not results["costAndFinancing.financingMechanism"].valid


def test_validate_is_idempotent() -> None:
    validation = _validation()
    spec = validation.FieldSpec("workers", "Trabajadores", validation.FieldKind.NUMBER, required=True)

    assert validation.validate(spec, "x") == validation.validate(spec, "x")
    assert validation.validate(spec, "4") == validation.validate(spec, "4")


def test_default_values_builds_nested_mapping_and_skips_files() -> None:
    validation = _validation()
    specs = (
        validation.FieldSpec("measureType", "Tipo"),
        validation.FieldSpec("estimatedSavings.unit", "Unidad"),
        validation.FieldSpec(
            "costAndFinancing.hasFinancingMechanism",
            "Financiamiento",
            validation.FieldKind.CHOICE,
            options=validation.YES_NO_OPTIONS,
            default=validation.NO,
        ),
        validation.FieldSpec("file", "Archivo", validation.FieldKind.FILE),
    )

    values = validation.default_values(specs)

    assert values == {
        "measureType": "",
        "estimatedSavings": {"unit": ""},
        "costAndFinancing": {"hasFinancingMechanism": "no"},
    }


def test_path_helpers() -> None:
    validation = _validation()
    values: dict = {}

    validation.set_path(values, "estimatedSavings.value", "10")

    assert validation.get_path(values, "estimatedSavings.value") == "10"
    assert validation.get_path(values, "estimatedSavings.unit", "") == ""
    assert validation.get_path(values, "missing.deeper") is None
    assert validation.field_path("opportunities", 2, "estimatedSavings.unit") == (
        "opportunities[2].estimatedSavings.unit"
    )
    assert validation.field_path(None, None, "address") == "address"
