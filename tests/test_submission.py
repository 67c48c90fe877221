"""Tests for validating and storing whole sections."""

from __future__ import annotations

import importlib
from typing import Any, Dict, List

import pytest

PDF_BYTES = b"%PDF-1.4\n%test\n"


class RecordingStore:
    """Collects inserts and uploads in call order."""

    def __init__(self, *, fail_insert: bool = False, fail_upload: bool = False) -> None:
        self.fail_insert = fail_insert
        self.fail_upload = fail_upload
        self.events: List[str] = []
        self.inserted: List[Dict[str, Any]] = []
        self.uploads: List[Dict[str, Any]] = []

    def insert(self, table, rows):
        self.events.append(f"insert:{table}")
        if self.fail_insert:
            errors = importlib.import_module("lib.errors")
            raise errors.StoreError("Writing to sectionE failed with status 503", status_code=503)
        self.inserted.append({"table": table, "rows": list(rows)})
        return list(rows)

    def upload(self, content, content_type, name, *, folder=""):
        self.events.append(f"upload:{name}")
        if self.fail_upload:
            errors = importlib.import_module("lib.errors")
            raise errors.StoreError("Uploading failed")
        self.uploads.append({"name": name, "folder": folder, "content_type": content_type})
        return f"https://files.example/{folder}/{name}"


def _opportunities(count: int):
    records = importlib.import_module("lib.records")
    sections = importlib.import_module("lib.sections")
    opportunities = records.RecordList(
        sections.OPPORTUNITY_FIELDS, list_key=sections.OPPORTUNITIES_KEY
    )
    for index in range(count):
        if index:
            opportunities.append()
        opportunities.update_field(index, "measureType", "Reconversión tecnológica")
        opportunities.update_field(index, "measureDescription", f"Medida {index + 1}")
        opportunities.update_field(index, "estimatedSavings.value", "120")
        opportunities.update_field(index, "estimatedSavings.unit", "kWh/mes")
    return opportunities


def _section_a_form():
    records = importlib.import_module("lib.records")
    sections = importlib.import_module("lib.sections")
    form = records.SectionForm(sections.SECTION_A_FIELDS)
    values = {
        "department": "Antioquia",
        "city": "Medellín",
        "subsector": "Salud",
        "entityName": "Hospital General",
        "address": "Calle 10 # 4-21",
        "startTime": "07:00",
        "endTime": "18:00",
        "occupationDays": "Lunes a viernes",
        "workers": "120",
        "isResponsible": "no",
        "responsibleEntity": "Gobernación",
    }
    for key, value in values.items():
        form.update_field(key, value)
    return form


def _coordinator(section, store):
    submission = importlib.import_module("lib.submission")
    bridge = importlib.import_module("lib.section_state").SectionStateBridge()
    return submission.SubmissionCoordinator(section, store, bridge, file_store=store), bridge


def test_invalid_record_blocks_the_whole_submission() -> None:
    sections = importlib.import_module("lib.sections")
    errors = importlib.import_module("lib.errors")
    submission = importlib.import_module("lib.submission")
    store = RecordingStore()
    opportunities = _opportunities(3)
    opportunities.update_field(1, "estimatedSavings.value", "mucho")
    coordinator, bridge = _coordinator(sections.SECTION_E, store)

    with pytest.raises(errors.ValidationFailed) as excinfo:
        coordinator.submit(opportunities)

    assert excinfo.value.failing_indexes() == [1]
    assert excinfo.value.failures[0].path == "opportunities[1].estimatedSavings.value"
    assert store.events == []
    assert coordinator.state is submission.SubmissionState.INVALID
    assert len(opportunities) == 3
    assert not bridge.is_completed(sections.SECTION_E_ID)


def test_insert_failure_leaves_the_form_unchanged() -> None:
    sections = importlib.import_module("lib.sections")
    errors = importlib.import_module("lib.errors")
    submission = importlib.import_module("lib.submission")
    store = RecordingStore(fail_insert=True)
    opportunities = _opportunities(2)
    before = opportunities.snapshot()
    coordinator, bridge = _coordinator(sections.SECTION_E, store)

    with pytest.raises(errors.StoreFailure) as excinfo:
        coordinator.submit(opportunities)

    assert "503" in excinfo.value.detail
    assert opportunities.snapshot() == before
    assert coordinator.state is submission.SubmissionState.FAILED
    assert bridge.completed() == []


def test_failed_submission_can_be_retried() -> None:
    sections = importlib.import_module("lib.sections")
    errors = importlib.import_module("lib.errors")
    submission = importlib.import_module("lib.submission")
    store = RecordingStore(fail_insert=True)
    opportunities = _opportunities(1)
    coordinator, _ = _coordinator(sections.SECTION_E, store)

    with pytest.raises(errors.StoreFailure):
        coordinator.submit(opportunities)

    store.fail_insert = False
    confirmation = coordinator.submit(opportunities)

    assert confirmation.rows_inserted == 1
    assert coordinator.state is submission.SubmissionState.SUCCEEDED
    with pytest.raises(errors.SubmissionError):
        coordinator.submit(opportunities)


def test_attachments_are_uploaded_before_rows_are_inserted() -> None:
    records = importlib.import_module("lib.records")
    sections = importlib.import_module("lib.sections")
    store = RecordingStore()
    opportunities = _opportunities(2)
    opportunities.attach_file(1, records.Attachment("informe.pdf", PDF_BYTES, "application/pdf"))
    coordinator, bridge = _coordinator(sections.SECTION_E, store)

    confirmation = coordinator.submit(opportunities)

    assert store.events == ["upload:informe.pdf", "insert:sectionE"]
    assert store.uploads[0]["folder"] == "sectionE"
    assert confirmation.references == [None, "https://files.example/sectionE/informe.pdf"]

    rows = store.inserted[0]["rows"]
    assert [row["measureDescription"] for row in rows] == ["Medida 1", "Medida 2"]
    assert rows[0]["file"] == ""
    assert rows[1]["file"] == "https://files.example/sectionE/informe.pdf"
    assert rows[1]["opportunities"]["fileBucketUrl"] == rows[1]["file"]
    assert rows[1]["estimatedSavings"] == {"value": "120", "unit": "kWh/mes", "percentage": ""}

    merged = bridge.section(sections.SECTION_E_ID)
    assert merged[1]["fileBucketUrl"] == "https://files.example/sectionE/informe.pdf"


def test_upload_failure_inserts_nothing() -> None:
    records = importlib.import_module("lib.records")
    sections = importlib.import_module("lib.sections")
    errors = importlib.import_module("lib.errors")
    store = RecordingStore(fail_upload=True)
    opportunities = _opportunities(1)
    opportunities.attach_file(0, records.Attachment("informe.pdf", PDF_BYTES, "application/pdf"))
    coordinator, _ = _coordinator(sections.SECTION_E, store)

    with pytest.raises(errors.StoreFailure):
        coordinator.submit(opportunities)

    assert store.events == ["upload:informe.pdf"]
    assert opportunities[0].attachment is not None


def test_success_merges_into_bridge_and_resets_the_list() -> None:
    sections = importlib.import_module("lib.sections")
    store = RecordingStore()
    opportunities = _opportunities(3)
    coordinator, bridge = _coordinator(sections.SECTION_E, store)

    confirmation = coordinator.submit(opportunities)

    assert confirmation.rows_inserted == 3
    assert len(store.inserted) == 1
    assert len(opportunities) == 1
    assert opportunities.value(0, "measureDescription") == ""
    assert [item["measureDescription"] for item in bridge.section(sections.SECTION_E_ID)] == [
        "Medida 1",
        "Medida 2",
        "Medida 3",
    ]


def test_section_a_submission_blanks_hidden_fields() -> None:
    sections = importlib.import_module("lib.sections")
    store = RecordingStore()
    form = _section_a_form()
    form.update_field("isResponsible", "yes")
    coordinator, bridge = _coordinator(sections.SECTION_A, store)

    confirmation = coordinator.submit(form)

    assert store.events == ["insert:firstSection"]
    row = confirmation.rows[0]
    assert row["entityName"] == "Hospital General"
    assert row["responsibleEntity"] == ""
    assert bridge.section(sections.SECTION_A_ID)["responsibleEntity"] == "Gobernación"
    assert form.values["department"] == ""


def test_empty_list_submission_writes_no_rows() -> None:
    records = importlib.import_module("lib.records")
    sections = importlib.import_module("lib.sections")
    store = RecordingStore()
    opportunities = records.RecordList(
        sections.OPPORTUNITY_FIELDS, list_key=sections.OPPORTUNITIES_KEY, min_length=0
    )
    opportunities.remove(0)
    coordinator, bridge = _coordinator(sections.SECTION_E, store)

    confirmation = coordinator.submit(opportunities)

    assert confirmation.rows_inserted == 0
    assert store.events == []
    assert bridge.section(sections.SECTION_E_ID) == []
