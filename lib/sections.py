"""Field sets, option lists and row shapes of the report sections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from lib.cascade import CascadingSelectorChain, distinct_column_provider
from lib.validation import (
    NO,
    YES,
    YES_NO_OPTIONS,
    Condition,
    FieldKind,
    FieldSpec,
    get_path,
)

REPORT_TITLE = "Reporte de las medidas implementadas, derivadas de las auditorías energéticas"

SECTION_A_ID = "sectionA"
SECTION_E_ID = "sectionE"
OPPORTUNITIES_KEY = "opportunities"
FILE_URL_KEY = "fileBucketUrl"

TENURE_OPTIONS: Tuple[str, ...] = ("Propia", "Arrendamiento", "Comodato", "Usufructo", "Otro")

MEASURE_TYPES: Tuple[str, ...] = (
    "Buenas prácticas operativas",
    "Medidas pasivas",
    "Reconversión tecnológica",
    "Sustitución de combustibles",
    "Implementación fuentes renovables de energía",
    "Otra",
)
OTHER_MEASURE = "Otra"

UNIT_OPTIONS: Tuple[str, ...] = (
    "kWh/mes",
    "m3/mes",
    "J/mes",
    "kcal/mes",
    "kg/mes",
    "lb/mes",
    "toneladas/mes",
    "galón/mes",
    "litro/mes",
)

FINANCING_TYPES: Tuple[str, ...] = (
    "Recursos propios",
    "Operaciones de crédito público (leasing y crédito proveedor)",
    "Contratos por servicios (renting, arrendamiento).",
    "Alianzas público-privadas (APP)",
    "Contrato por desempeño energético",
    "Otra",
)

# (field key, directory column, label) in dependency order.
LOCATION_LEVELS: Tuple[Tuple[str, str, str], ...] = (
    ("department", "departamento", "Departamento"),
    ("city", "ciudad", "Ciudad"),
    ("subsector", "subsector", "Subsector"),
    ("entityName", "nombreEntidad", "Nombre de la entidad"),
)

SECTION_A_FIELDS: Tuple[FieldSpec, ...] = (
    *(FieldSpec(key, label, required=True) for key, _, label in LOCATION_LEVELS),
    FieldSpec("address", "Dirección", required=True),
    FieldSpec("startTime", "Hora de inicio de la ocupación/operación", required=True),
    FieldSpec("endTime", "Hora de fin de la ocupación/operación", required=True),
    FieldSpec("occupationDays", "Días de ocupación/operación", required=True),
    FieldSpec("workers", "Trabajadores", FieldKind.NUMBER, required=True),
    FieldSpec("patients", "Pacientes", FieldKind.NUMBER),
    FieldSpec("visitors", "Visitantes", FieldKind.NUMBER),
    FieldSpec("students", "Estudiantes", FieldKind.NUMBER),
    FieldSpec("activities", "Descripción de las actividades", multiline=True),
    FieldSpec("constructionYear", "Año de construcción", FieldKind.NUMBER),
    FieldSpec("totalArea", "Área total (m²)", FieldKind.NUMBER),
    FieldSpec("usableArea", "Área útil ocupada (m²)", FieldKind.NUMBER),
    FieldSpec(
        "buildingTenure",
        "Tipo de tenencia",
        FieldKind.ENUM,
        required=True,
        options=TENURE_OPTIONS,
        default="Propia",
    ),
    FieldSpec(
        "isResponsible",
        "¿La entidad es responsable de la edificación?",
        FieldKind.CHOICE,
        required=True,
        options=YES_NO_OPTIONS,
        default=NO,
    ),
    FieldSpec(
        "responsibleEntity",
        "Entidad responsable de la edificación",
        visible_when=Condition("isResponsible", NO),
        required_when=Condition("isResponsible", NO),
    ),
)

OPPORTUNITY_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("measureType", "Tipo de medida", FieldKind.ENUM, required=True, options=MEASURE_TYPES),
    FieldSpec(
        "otherSpecification",
        "Si otra, especificar",
        visible_when=Condition("measureType", OTHER_MEASURE),
        required_when=Condition("measureType", OTHER_MEASURE),
    ),
    FieldSpec(
        "measureDescription",
        "Descripción de la medida identificada",
        required=True,
        multiline=True,
    ),
    FieldSpec("estimatedSavings.value", "Valor", FieldKind.NUMBER),
    FieldSpec("estimatedSavings.unit", "Indicar unidad", FieldKind.ENUM, options=UNIT_OPTIONS),
    FieldSpec("estimatedSavings.percentage", "Porcentaje (%) de ahorro", FieldKind.NUMBER),
    FieldSpec(
        "costAndFinancing.implementationCost",
        "Costo estimado de la implementación de la medida (COP$)",
        FieldKind.NUMBER,
    ),
    FieldSpec(
        "costAndFinancing.hasFinancingMechanism",
        "¿Cuenta con mecanismo de financiamiento?",
        FieldKind.CHOICE,
        options=YES_NO_OPTIONS,
        default=NO,
    ),
    FieldSpec(
        "costAndFinancing.financingMechanism",
        "Especificar el mecanismo de financiamiento",
        visible_when=Condition("costAndFinancing.hasFinancingMechanism", YES),
        required_when=Condition("costAndFinancing.hasFinancingMechanism", YES),
        help="Por ejemplo: " + "; ".join(FINANCING_TYPES[:-1]) + ".",
    ),
    FieldSpec("file", "Adjuntar archivo PDF", FieldKind.FILE),
)

RowMapper = Callable[[Mapping[str, Any], Optional[str]], Dict[str, Any]]


def _visible_value(specs: Sequence[FieldSpec], values: Mapping[str, Any], key: str) -> Any:
    """Return the stored value, or an empty string if the field is hidden."""

    for spec in specs:
        if spec.key == key and not spec.is_visible(values):
            return ""
    return get_path(values, key, "")


def _visible_copy(specs: Sequence[FieldSpec], values: Mapping[str, Any], prefix: str) -> Dict[str, Any]:
    nested = get_path(values, prefix, {})
    result = dict(nested) if isinstance(nested, Mapping) else {}
    for spec in specs:
        if spec.key.startswith(f"{prefix}.") and not spec.is_visible(values):
            result[spec.key.split(".", 1)[1]] = ""
    return result


def section_a_row(values: Mapping[str, Any], file_reference: Optional[str] = None) -> Dict[str, Any]:
    """Return the ``firstSection`` row for the Section A values."""

    return {
        spec.key: _visible_value(SECTION_A_FIELDS, values, spec.key)
        for spec in SECTION_A_FIELDS
    }


def opportunity_row(values: Mapping[str, Any], file_reference: Optional[str] = None) -> Dict[str, Any]:
    """Return the ``sectionE`` row for one saving opportunity."""

    reference = file_reference or ""
    opportunity = {
        "measureType": get_path(values, "measureType", ""),
        "otherSpecification": _visible_value(OPPORTUNITY_FIELDS, values, "otherSpecification"),
        "measureDescription": get_path(values, "measureDescription", ""),
        "estimatedSavings": _visible_copy(OPPORTUNITY_FIELDS, values, "estimatedSavings"),
        "costAndFinancing": _visible_copy(OPPORTUNITY_FIELDS, values, "costAndFinancing"),
        FILE_URL_KEY: reference,
    }
    return {
        "measureType": opportunity["measureType"],
        "otherSpecification": opportunity["otherSpecification"],
        "measureDescription": opportunity["measureDescription"],
        "file": reference,
        "estimatedSavings": opportunity["estimatedSavings"],
        "costAndFinancing": opportunity["costAndFinancing"],
        "opportunities": opportunity,
    }


@dataclass(frozen=True)
class SectionDefinition:
    """Static description of one section: fields, target table and row shape."""

    section_id: str
    title: str
    table: str
    fields: Tuple[FieldSpec, ...]
    row_mapper: RowMapper
    list_key: Optional[str] = None
    page: Optional[str] = None
    upload_folder: str = ""

    @property
    def is_list(self) -> bool:
        return self.list_key is not None


SECTION_A = SectionDefinition(
    section_id=SECTION_A_ID,
    title="Sección A. Caracterización de la edificación",
    table="firstSection",
    fields=SECTION_A_FIELDS,
    row_mapper=section_a_row,
    page="pages/01_Seccion_A.py",
)

SECTION_E = SectionDefinition(
    section_id=SECTION_E_ID,
    title="Sección E. Oportunidades de ahorro energético implementadas",
    table="sectionE",
    fields=OPPORTUNITY_FIELDS,
    row_mapper=opportunity_row,
    list_key=OPPORTUNITIES_KEY,
    page="pages/02_Seccion_E.py",
    upload_folder="sectionE",
)

SECTIONS: Tuple[SectionDefinition, ...] = (SECTION_A, SECTION_E)


def next_section(section_id: str) -> Optional[SectionDefinition]:
    """Return the section following ``section_id`` in the report order."""

    ids = [section.section_id for section in SECTIONS]
    position = ids.index(section_id)
    return SECTIONS[position + 1] if position + 1 < len(SECTIONS) else None


def location_chain(store: Any, table: str) -> CascadingSelectorChain:
    """Build the department/city/subsector/entity chain over ``table``."""

    levels = []
    ancestors: List[str] = []
    for key, column, label in LOCATION_LEVELS:
        levels.append((key, label, distinct_column_provider(store, table, column, tuple(ancestors))))
        ancestors.append(column)
    return CascadingSelectorChain(levels)


__all__ = [
    "FILE_URL_KEY",
    "FINANCING_TYPES",
    "LOCATION_LEVELS",
    "MEASURE_TYPES",
    "OPPORTUNITIES_KEY",
    "OPPORTUNITY_FIELDS",
    "OTHER_MEASURE",
    "REPORT_TITLE",
    "SECTIONS",
    "SECTION_A",
    "SECTION_A_FIELDS",
    "SECTION_A_ID",
    "SECTION_E",
    "SECTION_E_ID",
    "SectionDefinition",
    "TENURE_OPTIONS",
    "UNIT_OPTIONS",
    "location_chain",
    "next_section",
    "opportunity_row",
    "section_a_row",
]
