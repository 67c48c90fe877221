"""Streamlit page for Section E: implemented energy saving opportunities."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import streamlit as st

from lib.errors import AttachmentRejected, ConfigurationError, StoreFailure, ValidationFailed
from lib.records import Attachment, AttachmentPolicy, RecordList
from lib.section_state import SectionStateBridge
from lib.sections import REPORT_TITLE, SECTION_E
from lib.session import backend_for, clear_widget_state, section_bridge
from lib.settings import SupabaseSettings, require_settings
from lib.submission import SubmissionConfirmation, SubmissionCoordinator
from lib.ui_theme import apply_app_theme, page_header, record_title
from lib.validation import FieldKind
from lib.widgets import render_field, show_error, show_validation_failure

FORM_STATE_KEY = "section_e_opportunities"
THANK_YOU_STATE_KEY = "section_e_thank_you_until"
WIDGET_PREFIX = "section_e_"
THANK_YOU_SECONDS = 3
RECORD_LABEL = "Oportunidad"

GROUP_TITLES: Dict[str, str] = {
    "estimatedSavings": "Ahorro estimado",
    "costAndFinancing": "Costo y financiamiento",
}
FILE_LABEL = next(
    (spec.label for spec in SECTION_E.fields if spec.kind is FieldKind.FILE),
    "Adjuntar archivo PDF",
)


def _opportunities(settings: SupabaseSettings) -> RecordList:
    records = st.session_state.get(FORM_STATE_KEY)
    if not isinstance(records, RecordList):
        records = RecordList(
            SECTION_E.fields,
            list_key=SECTION_E.list_key or "opportunities",
            min_length=settings.min_opportunities,
            attachment_policy=AttachmentPolicy(max_bytes=settings.max_attachment_bytes),
        )
        st.session_state[FORM_STATE_KEY] = records
    return records


def attach_upload(records: RecordList, index: int, uploaded: Any) -> Optional[str]:
    """Mirror the uploader widget into the record; returns an error message."""

    record = records[index]
    if uploaded is None:
        if record.attachment is not None:
            records.detach_file(index)
        return None

    content = uploaded.getvalue()
    current = record.attachment
    if current is not None and current.name == uploaded.name and current.content == content:
        return None
    try:
        records.attach_file(
            index,
            Attachment(name=uploaded.name, content=content, content_type=uploaded.type or ""),
        )
    except AttachmentRejected as exc:
        return str(exc)
    return None


def render_opportunity(records: RecordList, index: int) -> None:
    """Render the fields, attachment and remove button of one opportunity."""

    record = records[index]
    prefix = f"{WIDGET_PREFIX}{record.uid}_"
    box = st.container(border=True)
    record_title(f"{RECORD_LABEL} {index + 1}", container=box)

    group = ""
    for spec in records.specs:
        if not spec.is_visible(record.values):
            continue
        spec_group = spec.key.split(".", 1)[0] if "." in spec.key else ""
        if spec_group != group:
            group = spec_group
            if group in GROUP_TITLES:
                box.markdown(f"**{GROUP_TITLES[group]}**")

        current = records.value(index, spec.key)
        value = render_field(spec, current, widget_key=f"{prefix}{spec.key}", container=box)
        if value != current:
            records.update_field(index, spec.key, value)
        show_error(record.errors(touched_only=True), spec.key, container=box)

    uploaded = box.file_uploader(FILE_LABEL, type=["pdf"], key=f"{prefix}file")
    error = attach_upload(records, index, uploaded)
    if error:
        box.error(error)

    if records.can_remove and box.button("Eliminar oportunidad", key=f"{prefix}remove"):
        records.remove(index)
        st.rerun()


def submit_section_e(
    records: RecordList,
    bridge: SectionStateBridge,
    settings: SupabaseSettings,
) -> Optional[SubmissionConfirmation]:
    """Store every opportunity and return the confirmation, or ``None`` on failure."""

    backend = backend_for(settings)
    coordinator = SubmissionCoordinator(SECTION_E, backend, bridge, file_store=backend)
    try:
        return coordinator.submit(records)
    except ValidationFailed as exc:
        show_validation_failure(exc, record_label=RECORD_LABEL)
    except StoreFailure as exc:
        st.error(str(exc))
    return None


def _show_thank_you() -> None:
    until = st.session_state.get(THANK_YOU_STATE_KEY)
    if isinstance(until, (int, float)) and time.time() < until:
        st.success("¡Gracias por responder!")
    else:
        st.session_state.pop(THANK_YOU_STATE_KEY, None)


def main() -> None:
    """Render Section E."""

    apply_app_theme(page_title="Sección E", page_icon="⚡")
    page_header(REPORT_TITLE, SECTION_E.title)

    try:
        settings = require_settings()
    except ConfigurationError as exc:
        st.error(str(exc))
        return

    _show_thank_you()
    st.write(
        "Para cada oportunidad de ahorro implementada, desde el último periodo de "
        "reporte de la información, detalle lo siguiente:"
    )

    records = _opportunities(settings)
    for index in range(len(records)):
        render_opportunity(records, index)

    add_col, submit_col = st.columns(2)
    if add_col.button("Añadir otra oportunidad", use_container_width=True):
        records.append()
        st.rerun()

    if submit_col.button("Enviar", type="primary", use_container_width=True):
        confirmation = submit_section_e(records, section_bridge(), settings)
        if confirmation is None:
            return
        clear_widget_state(WIDGET_PREFIX)
        st.session_state[THANK_YOU_STATE_KEY] = time.time() + THANK_YOU_SECONDS
        st.toast("¡Gracias por responder!")
        st.rerun()


if __name__ == "__main__":
    main()
