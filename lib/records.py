"""Form state for flat sections and repeatable record lists."""

from __future__ import annotations

import uuid
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from lib.errors import AttachmentRejected, FieldInvalid, RecordListError
from lib.validation import (
    FieldKind,
    FieldSpec,
    ValidationResult,
    default_values,
    field_path,
    get_path,
    set_path,
    validate_values,
    visible_specs,
)

PDF_MEDIA_TYPE = "application/pdf"
GENERIC_MEDIA_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream"})
DEFAULT_MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class Attachment:
    """An uploaded file held in memory until the section is submitted."""

    name: str
    content: bytes
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def suffix(self) -> str:
        return PurePath(self.name).suffix.lower()


@dataclass(frozen=True)
class AttachmentPolicy:
    """Media types, extensions and size accepted for record attachments."""

    media_types: Tuple[str, ...] = (PDF_MEDIA_TYPE,)
    extensions: Tuple[str, ...] = (".pdf",)
    max_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES

    def check(self, attachment: Attachment) -> None:
        """Raise ``AttachmentRejected`` if ``attachment`` is not acceptable."""

        media_type = (attachment.content_type or "").split(";")[0].strip().lower()
        if media_type in GENERIC_MEDIA_TYPES:
            accepted = attachment.suffix in self.extensions
        else:
            accepted = media_type in self.media_types
        if not accepted:
            allowed = ", ".join(ext.lstrip(".").upper() for ext in self.extensions)
            raise AttachmentRejected(
                f"El archivo '{attachment.name}' no es válido. Solo se aceptan archivos {allowed}."
            )
        if attachment.size == 0:
            raise AttachmentRejected(f"El archivo '{attachment.name}' está vacío.")
        if attachment.size > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise AttachmentRejected(
                f"El archivo '{attachment.name}' supera el tamaño máximo de {limit_mb:g} MB."
            )


@dataclass
class Record:
    """Values of one sub-form plus its attachment and live validation state."""

    values: Dict[str, Any]
    attachment: Optional[Attachment] = None
    touched: Set[str] = field(default_factory=set)
    results: Dict[str, ValidationResult] = field(default_factory=dict)
    uid: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def errors(self, *, touched_only: bool = False) -> Dict[str, str]:
        """Return ``key -> reason`` for invalid fields."""

        return {
            key: result.reason
            for key, result in self.results.items()
            if not result.valid and (not touched_only or key in self.touched)
        }


def _revalidate(record: Record, specs: Sequence[FieldSpec]) -> Dict[str, ValidationResult]:
    record.results = validate_values(specs, record.values)
    return record.results


def _failures(
    record: Record,
    specs: Sequence[FieldSpec],
    *,
    list_key: Optional[str] = None,
    index: Optional[int] = None,
) -> List[FieldInvalid]:
    labels = {spec.key: spec.label for spec in specs}
    return [
        FieldInvalid(
            path=field_path(list_key, index, key),
            label=labels.get(key, key),
            reason=reason,
            index=index,
        )
        for key, reason in record.errors().items()
    ]


def _new_record(specs: Sequence[FieldSpec]) -> Record:
    record = Record(values=default_values(specs))
    _revalidate(record, specs)
    return record


class SectionForm:
    """State of a flat section: a single record of top-level fields."""

    list_key: Optional[str] = None

    def __init__(self, specs: Sequence[FieldSpec]) -> None:
        self.specs: Tuple[FieldSpec, ...] = tuple(specs)
        self._specs_by_key = {spec.key: spec for spec in self.specs}
        self.record = _new_record(self.specs)

    @property
    def values(self) -> Dict[str, Any]:
        return self.record.values

    def spec(self, key: str) -> FieldSpec:
        return self._specs_by_key[key]

    def update_field(
        self, key: str, value: Any, *, touch: bool = True
    ) -> Dict[str, ValidationResult]:
        """Set one field and re-validate the whole section."""

        if key not in self._specs_by_key:
            raise KeyError(f"Unknown field: {key}")
        set_path(self.record.values, key, value)
        if touch:
            self.record.touched.add(key)
        else:
            self.record.touched.discard(key)
        return _revalidate(self.record, self.specs)

    def visible_fields(self) -> List[FieldSpec]:
        return visible_specs(self.specs, self.record.values)

    def validate(self) -> List[FieldInvalid]:
        """Validate every field, marking all of them as touched."""

        _revalidate(self.record, self.specs)
        self.record.touched.update(spec.key for spec in self.specs)
        return _failures(self.record, self.specs)

    def snapshot(self) -> Dict[str, Any]:
        return deepcopy(self.record.values)

    def reset(self) -> None:
        self.record = _new_record(self.specs)


class RecordList:
    """An ordered list of independently validated records.

    Insertion order is display and submission order. Records are only
    removed by :meth:`remove`; indices of later records shift down by one.
    """

    def __init__(
        self,
        specs: Sequence[FieldSpec],
        *,
        list_key: str,
        min_length: int = 1,
        attachment_policy: Optional[AttachmentPolicy] = None,
    ) -> None:
        if min_length < 0:
            raise ValueError("min_length cannot be negative.")
        self.specs: Tuple[FieldSpec, ...] = tuple(
            spec for spec in specs if spec.kind is not FieldKind.FILE
        )
        self._specs_by_key = {spec.key: spec for spec in self.specs}
        self.list_key = list_key
        self.min_length = min_length
        self.attachment_policy = attachment_policy or AttachmentPolicy()
        self._records: List[Record] = [_new_record(self.specs)]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __getitem__(self, index: int) -> Record:
        return self._record(index)

    def _record(self, index: int) -> Record:
        if not 0 <= index < len(self._records):
            raise IndexError(f"No record at position {index}.")
        return self._records[index]

    @property
    def can_remove(self) -> bool:
        return len(self._records) > self.min_length

    def append(self) -> int:
        """Add a record with default values and return its index."""

        self._records.append(_new_record(self.specs))
        return len(self._records) - 1

    def remove(self, index: int) -> Record:
        """Remove and return the record at ``index``."""

        self._record(index)
        if not self.can_remove:
            raise RecordListError(
                f"Debe existir al menos {self.min_length} registro"
                f"{'s' if self.min_length != 1 else ''}."
            )
        return self._records.pop(index)

    def update_field(self, index: int, key: str, value: Any) -> Dict[str, ValidationResult]:
        """Set one field of one record and re-validate only that record."""

        if key not in self._specs_by_key:
            raise KeyError(f"Unknown field: {key}")
        record = self._record(index)
        set_path(record.values, key, value)
        record.touched.add(key)
        return _revalidate(record, self.specs)

    def value(self, index: int, key: str) -> Any:
        return get_path(self._record(index).values, key)

    def attach_file(self, index: int, attachment: Attachment) -> None:
        """Attach ``attachment`` to a record, replacing any previous file."""

        record = self._record(index)
        self.attachment_policy.check(attachment)
        record.attachment = attachment

    def detach_file(self, index: int) -> Optional[Attachment]:
        record = self._record(index)
        previous, record.attachment = record.attachment, None
        return previous

    def visible_fields(self, index: int) -> List[FieldSpec]:
        return visible_specs(self.specs, self._record(index).values)

    def validate_record(self, index: int) -> Dict[str, ValidationResult]:
        return _revalidate(self._record(index), self.specs)

    def validate_all(self) -> Tuple[List[FieldInvalid], List[Dict[str, ValidationResult]]]:
        """Validate each record independently.

        Returns the failing fields across the list and the per-record results.
        """

        failures: List[FieldInvalid] = []
        per_record: List[Dict[str, ValidationResult]] = []
        for index, record in enumerate(self._records):
            per_record.append(_revalidate(record, self.specs))
            record.touched.update(spec.key for spec in self.specs)
            failures.extend(
                _failures(record, self.specs, list_key=self.list_key, index=index)
            )
        return failures, per_record

    def validate(self) -> List[FieldInvalid]:
        failures, _ = self.validate_all()
        return failures

    def snapshot(self) -> List[Dict[str, Any]]:
        return [deepcopy(record.values) for record in self._records]

    def attachments(self) -> List[Optional[Attachment]]:
        return [record.attachment for record in self._records]

    def reset(self) -> None:
        self._records = [_new_record(self.specs)]


__all__ = [
    "Attachment",
    "AttachmentPolicy",
    "DEFAULT_MAX_ATTACHMENT_BYTES",
    "PDF_MEDIA_TYPE",
    "Record",
    "RecordList",
    "SectionForm",
]
