"""Field specifications and the pure validation rules applied to them."""

from __future__ import annotations

import math
from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

YES = "yes"
NO = "no"
YES_NO_OPTIONS: Tuple[str, ...] = (YES, NO)
YES_NO_LABELS: Dict[str, str] = {YES: "Sí", NO: "No"}


class FieldKind(str, Enum):
    """The closed set of field kinds a section may declare."""

    TEXT = "text"
    NUMBER = "number"
    ENUM = "enum"
    CHOICE = "choice"
    FILE = "file"


@dataclass(frozen=True)
class Condition:
    """Holds when the sibling ``field`` of the same record equals ``value``."""

    field: str
    value: str

    def holds(self, values: Mapping[str, Any]) -> bool:
        return get_path(values, self.field) == self.value


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of one field: its key path, label, kind and rules."""

    key: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    options: Tuple[str, ...] = ()
    default: Any = ""
    visible_when: Optional[Condition] = None
    required_when: Optional[Condition] = None
    help: Optional[str] = None
    multiline: bool = False

    def is_visible(self, values: Mapping[str, Any]) -> bool:
        return self.visible_when is None or self.visible_when.holds(values)

    def is_required(self, values: Mapping[str, Any]) -> bool:
        if not self.is_visible(values):
            return False
        if self.required:
            return True
        return self.required_when is not None and self.required_when.holds(values)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value: valid, or invalid with a reason."""

    valid: bool
    reason: str = ""

    @classmethod
    def invalid(cls, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason)

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(valid=True)


def is_empty(value: Any) -> bool:
    """Return ``True`` for ``None`` and blank strings."""

    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def parse_number(value: Any) -> Optional[float]:
    """Parse a numeric string, accepting a comma decimal separator."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(" ", "")
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def validate(
    spec: FieldSpec,
    value: Any,
    siblings: Optional[Mapping[str, Any]] = None,
) -> ValidationResult:
    """Validate ``value`` against ``spec``.

    ``siblings`` is the mapping holding the other values of the same record;
    it is only read to evaluate ``visible_when``/``required_when``.
    """

    context: Mapping[str, Any] = siblings if siblings is not None else {}
    if not spec.is_visible(context):
        return VALID

    if is_empty(value):
        if spec.is_required(context):
            return ValidationResult.invalid(f"{spec.label}: campo obligatorio")
        return VALID

    if spec.kind is FieldKind.NUMBER:
        if parse_number(value) is None:
            return ValidationResult.invalid(f"{spec.label}: debe ser un número")
    elif spec.kind in (FieldKind.ENUM, FieldKind.CHOICE):
        if value not in spec.options:
            return ValidationResult.invalid(f"{spec.label}: opción no válida")
    elif spec.kind is FieldKind.TEXT:
        if not isinstance(value, str):
            return ValidationResult.invalid(f"{spec.label}: debe ser texto")

    return VALID


def validate_values(
    specs: Iterable[FieldSpec], values: Mapping[str, Any]
) -> Dict[str, ValidationResult]:
    """Validate every field of one record, keyed by field key."""

    return {spec.key: validate(spec, get_path(values, spec.key), values) for spec in specs}


def visible_specs(specs: Iterable[FieldSpec], values: Mapping[str, Any]) -> List[FieldSpec]:
    """Return the specs shown for the current ``values``."""

    return [spec for spec in specs if spec.is_visible(values)]


def default_values(specs: Iterable[FieldSpec]) -> Dict[str, Any]:
    """Build a nested values mapping populated with each spec's default."""

    values: Dict[str, Any] = {}
    for spec in specs:
        if spec.kind is FieldKind.FILE:
            continue
        set_path(values, spec.key, deepcopy(spec.default))
    return values


def get_path(values: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Read a dotted ``key`` from nested mappings."""

    current: Any = values
    for part in key.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def set_path(values: Dict[str, Any], key: str, value: Any) -> None:
    """Write ``value`` under the dotted ``key``, creating nested dicts."""

    parts = key.split(".")
    current = values
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def field_path(list_key: Optional[str], index: Optional[int], key: str) -> str:
    """Return the addressing path of a field, e.g. ``opportunities[2].estimatedSavings.unit``."""

    if list_key is None or index is None:
        return key
    return f"{list_key}[{index}].{key}"


__all__ = [
    "Condition",
    "FieldKind",
    "FieldSpec",
    "NO",
    "VALID",
    "ValidationResult",
    "YES",
    "YES_NO_LABELS",
    "YES_NO_OPTIONS",
    "default_values",
    "field_path",
    "get_path",
    "is_empty",
    "parse_number",
    "set_path",
    "validate",
    "validate_values",
    "visible_specs",
]
