"""Exception types shared by the form engine, the store client and the pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


class FormError(Exception):
    """Base class for every recoverable error raised by the form engine."""


class ConfigurationError(FormError):
    """Raised when the Supabase settings are missing or incomplete."""


class StoreError(FormError):
    """Raised by the store client when a request fails or times out."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class FieldInvalid:
    """A single failing field reported at submit time."""

    path: str
    label: str
    reason: str
    index: Optional[int] = None


class FetchFailed(FormError):
    """Options for a cascade level could not be loaded."""

    def __init__(self, level: str, detail: str) -> None:
        super().__init__(f"No fue posible cargar las opciones de {level}: {detail}")
        self.level = level
        self.detail = detail


class AttachmentRejected(FormError):
    """An attachment did not satisfy the media type or size constraint."""


class RecordListError(FormError):
    """A list operation would break the record list invariants."""


class SubmissionError(FormError):
    """Base class for failed submissions."""


class ValidationFailed(SubmissionError):
    """One or more fields are invalid; nothing was written."""

    def __init__(self, failures: Sequence[FieldInvalid]) -> None:
        self.failures: List[FieldInvalid] = list(failures)
        count = len(self.failures)
        super().__init__(
            f"{count} campo{'s' if count != 1 else ''} con errores. "
            "Corrija los campos marcados antes de enviar."
        )

    def failing_indexes(self) -> List[int]:
        """Return the sorted record indexes that have at least one failure."""

        return sorted({item.index for item in self.failures if item.index is not None})


class StoreFailure(SubmissionError):
    """The upload or the row insert failed; the form state is unchanged."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            "Ocurrió un error al guardar los datos. Inténtelo nuevamente. "
            f"({detail})"
        )
        self.detail = detail


__all__ = [
    "AttachmentRejected",
    "ConfigurationError",
    "FetchFailed",
    "FieldInvalid",
    "FormError",
    "RecordListError",
    "StoreError",
    "StoreFailure",
    "SubmissionError",
    "ValidationFailed",
]
