"""Streamlit page for Section A: general information about the entity."""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

import streamlit as st

from lib.cascade import CascadingSelectorChain
from lib.errors import ConfigurationError, FetchFailed, StoreFailure, ValidationFailed
from lib.records import SectionForm
from lib.section_state import SectionStateBridge
from lib.sections import LOCATION_LEVELS, REPORT_TITLE, SECTION_A, location_chain, next_section
from lib.session import (
    CachedDirectory,
    backend_for,
    clear_widget_state,
    section_bridge,
    switch_to_page,
)
from lib.settings import SupabaseSettings, require_settings
from lib.submission import SubmissionConfirmation, SubmissionCoordinator
from lib.ui_theme import apply_app_theme, page_header
from lib.validation import get_path
from lib.widgets import field_label, render_field, select_value, show_error, show_validation_failure

FORM_STATE_KEY = "section_a_form"
CHAIN_STATE_KEY = "section_a_chain"
WIDGET_PREFIX = "section_a_"
LOCATION_KEYS: Tuple[str, ...] = tuple(key for key, _, _ in LOCATION_LEVELS)

# Fields rendered side by side; every other field takes a full row.
FIELD_ROWS: Tuple[Tuple[str, ...], ...] = (
    ("address",),
    ("startTime", "endTime"),
    ("occupationDays",),
    ("workers", "patients", "visitors", "students"),
    ("activities",),
    ("constructionYear", "totalArea", "usableArea"),
    ("buildingTenure",),
    ("isResponsible",),
    ("responsibleEntity",),
)


def _section_form() -> SectionForm:
    form = st.session_state.get(FORM_STATE_KEY)
    if not isinstance(form, SectionForm):
        form = SectionForm(SECTION_A.fields)
        st.session_state[FORM_STATE_KEY] = form
    return form


def _location_chain(settings: SupabaseSettings) -> CascadingSelectorChain:
    chain = st.session_state.get(CHAIN_STATE_KEY)
    if not isinstance(chain, CascadingSelectorChain):
        chain = location_chain(CachedDirectory(settings), settings.directory_table)
        st.session_state[CHAIN_STATE_KEY] = chain
    return chain


def commit_location(
    chain: CascadingSelectorChain,
    form: SectionForm,
    key: str,
    value: Optional[str],
) -> Optional[FetchFailed]:
    """Commit a location level and copy the chain's values into the form.

    Cleared descendants are written back untouched so they do not show an
    error before the user reaches them, and their selectbox state is dropped
    so an option shared with the new ancestor is not re-committed.
    """

    previous = chain.level(key).committed_value
    error = chain.commit(key, value)
    if chain.level(key).committed_value != previous:
        position = chain.keys.index(key)
        for descendant in chain.keys[position + 1:]:
            st.session_state.pop(f"{WIDGET_PREFIX}{descendant}", None)

    for level_key, committed in chain.values().items():
        current = form.values.get(level_key) or ""
        committed = committed or ""
        if level_key == key:
            form.update_field(level_key, committed)
        elif current != committed:
            form.update_field(level_key, committed, touch=False)
    return error


def render_location(chain: CascadingSelectorChain, form: SectionForm) -> None:
    """Render the department, city, subsector and entity selectors."""

    for key in LOCATION_KEYS:
        level = chain.level(key)
        selected = select_value(
            field_label(form.spec(key)),
            level.options,
            level.committed_value,
            widget_key=f"{WIDGET_PREFIX}{key}",
            disabled=not chain.is_fetchable(key),
        )
        if (selected or None) != level.committed_value:
            commit_location(chain, form, key, selected)

        if level.error is not None:
            st.warning(str(level.error))
            if st.button("Reintentar", key=f"{WIDGET_PREFIX}{key}_retry"):
                chain.retry(key)
                st.rerun()
        elif chain.is_fetchable(key) and not level.options and not level.is_pending:
            st.caption("No hay opciones disponibles para la selección actual.")
        show_error(form.record.errors(touched_only=True), key)


def _render_row(form: SectionForm, keys: Sequence[str]) -> None:
    specs = [form.spec(key) for key in keys if form.spec(key).is_visible(form.values)]
    if not specs:
        return
    containers: Sequence[Any] = st.columns(len(specs)) if len(specs) > 1 else [st.container()]
    for spec, container in zip(specs, containers):
        current = get_path(form.values, spec.key)
        value = render_field(
            spec,
            current,
            widget_key=f"{WIDGET_PREFIX}{spec.key}",
            container=container,
        )
        if value != current:
            form.update_field(spec.key, value)
        show_error(form.record.errors(touched_only=True), spec.key, container=container)


def submit_section_a(
    form: SectionForm,
    bridge: SectionStateBridge,
    settings: SupabaseSettings,
) -> Optional[SubmissionConfirmation]:
    """Store Section A and return the confirmation, or ``None`` on failure."""

    coordinator = SubmissionCoordinator(SECTION_A, backend_for(settings), bridge)
    try:
        return coordinator.submit(form)
    except ValidationFailed as exc:
        show_validation_failure(exc)
    except StoreFailure as exc:
        st.error(str(exc))
    return None


def _reset_section_state() -> None:
    st.session_state.pop(CHAIN_STATE_KEY, None)
    clear_widget_state(WIDGET_PREFIX)


def main() -> None:
    """Render Section A."""

    apply_app_theme(page_title="Sección A", page_icon="⚡")
    page_header(REPORT_TITLE, SECTION_A.title)

    try:
        settings = require_settings()
    except ConfigurationError as exc:
        st.error(str(exc))
        return

    form = _section_form()
    chain = _location_chain(settings)
    chain.initialize()

    render_location(chain, form)
    for keys in FIELD_ROWS:
        _render_row(form, keys)

    if st.button("Siguiente sección", type="primary", use_container_width=True):
        confirmation = submit_section_a(form, section_bridge(), settings)
        if confirmation is None:
            return
        _reset_section_state()
        following = next_section(SECTION_A.section_id)
        if following is not None and following.page:
            switch_to_page(following.page)
        else:
            st.success("Sección guardada correctamente.")


if __name__ == "__main__":
    main()
