"""Validation, upload and bulk insert of one completed section."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from lib.errors import (
    FieldInvalid,
    StoreError,
    StoreFailure,
    SubmissionError,
    ValidationFailed,
)
from lib.records import Attachment, RecordList, SectionForm
from lib.section_state import SectionStateBridge
from lib.sections import FILE_URL_KEY, SectionDefinition

logger = logging.getLogger(__name__)

Form = Union[SectionForm, RecordList]


class RecordStore(Protocol):
    def insert(self, table: str, rows: Sequence[Dict[str, Any]]) -> Any:
        ...


class FileStore(Protocol):
    def upload(self, content: bytes, content_type: str, name: str, *, folder: str = "") -> str:
        ...


class SubmissionState(str, Enum):
    """Life cycle of one section's submission."""

    EDITING = "editing"
    VALIDATING = "validating"
    INVALID = "invalid"
    SUBMITTING = "submitting"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class SubmissionConfirmation:
    """Returned after the rows of a section were stored."""

    section_id: str
    rows: List[Dict[str, Any]] = field(default_factory=list)
    references: List[Optional[str]] = field(default_factory=list)

    @property
    def rows_inserted(self) -> int:
        return len(self.rows)


class SubmissionCoordinator:
    """Submit one section instance.

    ``EDITING -> VALIDATING -> INVALID | SUBMITTING -> FAILED | SUCCEEDED``.
    ``INVALID`` and ``FAILED`` allow another attempt; ``SUCCEEDED`` is final
    for this coordinator.
    """

    def __init__(
        self,
        section: SectionDefinition,
        store: RecordStore,
        bridge: SectionStateBridge,
        *,
        file_store: Optional[FileStore] = None,
    ) -> None:
        self.section = section
        self.store = store
        self.bridge = bridge
        self.file_store = file_store
        self.state = SubmissionState.EDITING
        self.last_failures: List[FieldInvalid] = []

    def submit(self, form: Form) -> SubmissionConfirmation:
        """Validate, upload attachments, insert rows and reset ``form``.

        Raises ``ValidationFailed`` or ``StoreFailure``; in both cases the
        form is left exactly as it was.
        """

        if self.state is SubmissionState.SUCCEEDED:
            raise SubmissionError("Esta sección ya fue enviada.")

        self.state = SubmissionState.VALIDATING
        failures = form.validate()
        self.last_failures = failures
        if failures:
            self.state = SubmissionState.INVALID
            raise ValidationFailed(failures)

        snapshot = form.snapshot()
        records: List[Dict[str, Any]] = snapshot if isinstance(snapshot, list) else [snapshot]
        attachments: List[Optional[Attachment]] = (
            form.attachments() if isinstance(form, RecordList) else [None]
        )

        self.state = SubmissionState.SUBMITTING
        try:
            references = self._upload_attachments(attachments)
            rows = [
                self.section.row_mapper(values, reference)
                for values, reference in zip(records, references)
            ]
            if rows:
                self.store.insert(self.section.table, rows)
        except StoreError as exc:
            self.state = SubmissionState.FAILED
            logger.exception("Failed saving %s to %s", self.section.section_id, self.section.table)
            raise StoreFailure(str(exc)) from exc

        if self.section.is_list:
            merged: Any = [
                dict(values, **{FILE_URL_KEY: reference or ""})
                for values, reference in zip(records, references)
            ]
        else:
            merged = records[0]
        self.bridge.merge_section(self.section.section_id, merged)
        form.reset()
        self.state = SubmissionState.SUCCEEDED
        logger.info(
            "Section submitted: section=%s, rows=%d, files=%d",
            self.section.section_id,
            len(rows),
            sum(1 for reference in references if reference),
        )
        return SubmissionConfirmation(
            section_id=self.section.section_id,
            rows=rows,
            references=references,
        )

    def _upload_attachments(self, attachments: Sequence[Optional[Attachment]]) -> List[Optional[str]]:
        """Upload every attachment before any row is written."""

        references: List[Optional[str]] = []
        for attachment in attachments:
            if attachment is None:
                references.append(None)
                continue
            if self.file_store is None:
                raise StoreError("No file store is configured for attachments.")
            references.append(
                self.file_store.upload(
                    attachment.content,
                    attachment.content_type,
                    attachment.name,
                    folder=self.section.upload_folder,
                )
            )
        return references


__all__ = [
    "FileStore",
    "RecordStore",
    "SubmissionConfirmation",
    "SubmissionCoordinator",
    "SubmissionState",
]
