"""Streamlit home screen listing the report sections and their progress."""

from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from lib.section_state import SectionStateBridge
from lib.sections import REPORT_TITLE, SECTIONS, SectionDefinition
from lib.session import section_bridge
from lib.settings import supabase_settings
from lib.ui_theme import apply_app_theme, page_header

DEFAULT_TABLE_COLUMNS = ("Sección", "Estado", "Registros", "Enviada")
PENDING_LABEL = "Pendiente"
COMPLETED_LABEL = "Enviada"


def _record_count(values: Any) -> int:
    """Return how many rows a completed section produced."""

    if isinstance(values, list):
        return len(values)
    if isinstance(values, dict):
        return 1
    return 0


def section_progress(bridge: SectionStateBridge, sections=SECTIONS) -> List[Dict[str, Any]]:
    """Return one summary row per section in report order."""

    rows: List[Dict[str, Any]] = []
    for section in sections:
        completed = bridge.is_completed(section.section_id)
        rows.append(
            {
                "Sección": section.title,
                "Estado": COMPLETED_LABEL if completed else PENDING_LABEL,
                "Registros": _record_count(bridge.section(section.section_id)) if completed else 0,
                "Enviada": bridge.completed_at(section.section_id) or "—",
            }
        )
    return rows


def progress_frame(bridge: SectionStateBridge) -> pd.DataFrame:
    return pd.DataFrame(section_progress(bridge), columns=list(DEFAULT_TABLE_COLUMNS))


def _first_pending(bridge: SectionStateBridge) -> SectionDefinition:
    for section in SECTIONS:
        if not bridge.is_completed(section.section_id):
            return section
    return SECTIONS[0]


def main() -> None:
    """Render the home screen."""

    apply_app_theme(page_title="Reporte de auditorías energéticas", page_icon="⚡")
    page_header(REPORT_TITLE, "Diligencie cada sección en orden y envíela al terminar.")

    if supabase_settings() is None:
        st.warning(
            "La conexión con la base de datos no está configurada; las secciones no "
            "podrán guardarse hasta definir [supabase] en los secretos de la aplicación."
        )

    bridge = section_bridge()
    frame = progress_frame(bridge)
    completed = int((frame["Estado"] == COMPLETED_LABEL).sum())

    metric_col1, metric_col2 = st.columns(2)
    metric_col1.metric("Secciones enviadas", f"{completed} de {len(SECTIONS)}")
    metric_col2.metric("Registros guardados", int(frame["Registros"].sum()))

    st.dataframe(frame, hide_index=True, use_container_width=True)

    following = _first_pending(bridge)
    if following.page:
        st.page_link(following.page, label=f"Continuar: {following.title}", icon="➡️")

    for section in SECTIONS:
        values = bridge.section(section.section_id)
        if values is None:
            continue
        with st.expander(f"Respuestas enviadas: {section.title}", expanded=False):
            st.json(values)


if __name__ == "__main__":
    main()
