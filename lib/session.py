"""Per-session objects shared by the report pages."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import streamlit as st
from streamlit.errors import StreamlitAPIException

from lib.section_state import SectionStateBridge
from lib.settings import SupabaseSettings
from lib.supabase_backend import SupabaseBackend

SECTION_STATE_KEY = "report_sections"
DIRECTORY_CACHE_TTL = 300


def section_bridge() -> SectionStateBridge:
    """Return the bridge holding completed sections for this browser session."""

    bridge = st.session_state.get(SECTION_STATE_KEY)
    if not isinstance(bridge, SectionStateBridge):
        bridge = SectionStateBridge()
        st.session_state[SECTION_STATE_KEY] = bridge
    return bridge


def backend_for(settings: SupabaseSettings) -> SupabaseBackend:
    return SupabaseBackend(
        url=settings.url,
        key=settings.key,
        bucket=settings.files_bucket,
        timeout=settings.request_timeout,
    )


@st.cache_data(ttl=DIRECTORY_CACHE_TTL, show_spinner=False)
def _cached_select(
    url: str,
    key: str,
    timeout: float,
    table: str,
    columns: Tuple[str, ...],
    filters: Tuple[Tuple[str, Any], ...],
) -> List[Dict[str, Any]]:
    """Read directory rows; failures are not cached so a retry hits the store."""

    backend = SupabaseBackend(url=url, key=key, timeout=timeout)
    return backend.select(table, list(columns), dict(filters))


class CachedDirectory:
    """Read-only store for lookup tables backed by ``st.cache_data``."""

    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def select(
        self,
        table: str,
        columns: Sequence[str],
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        return _cached_select(
            self.settings.url,
            self.settings.key,
            self.settings.request_timeout,
            table,
            tuple(columns),
            tuple(sorted((filters or {}).items())),
        )


def clear_widget_state(prefix: str) -> None:
    """Drop widget values whose key starts with ``prefix``."""

    for key in [key for key in st.session_state.keys() if str(key).startswith(prefix)]:
        st.session_state.pop(key)


def switch_to_page(page: str) -> None:
    """Navigate to ``page``, falling back to a hint when navigation fails."""

    if hasattr(st, "switch_page"):
        try:
            st.switch_page(page)
        except StreamlitAPIException:
            st.info("Use el menú de navegación para continuar con la siguiente sección.")
    else:
        st.info("Use el menú de navegación para continuar con la siguiente sección.")


__all__ = [
    "CachedDirectory",
    "SECTION_STATE_KEY",
    "backend_for",
    "clear_widget_state",
    "section_bridge",
    "switch_to_page",
]
