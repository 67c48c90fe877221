"""Utilities for applying a shared visual identity across Streamlit pages."""

from __future__ import annotations

from html import escape as html_escape
from typing import Any, Optional

import streamlit as st


_THEME_CSS = """
<style>
:root {
    --report-accent: #0F766E;
    --report-accent-soft: #E6F4F1;
    --report-surface: #FFFFFF;
    --report-border: rgba(15, 118, 110, 0.2);
    --report-text: #1F2933;
    --report-muted: #52606D;
    --report-error: #B91C1C;
}

[data-testid="stAppViewContainer"] {
    background: linear-gradient(180deg, #F0FAF8 0%, #FFFFFF 40%);
}

.block-container {
    max-width: 64rem;
    padding-top: 2rem;
    padding-bottom: 4rem;
}

.report-header {
    padding: 1.5rem 1.75rem;
    background: var(--report-surface);
    border: 1px solid var(--report-border);
    border-radius: 1rem;
    margin-bottom: 1.5rem;
    text-align: center;
}

.report-header__subtitle {
    margin: 0.5rem 0 0 0;
    font-weight: 600;
    font-size: 0.95rem;
    color: var(--report-muted);
}

.report-header__title {
    margin: 0;
    font-size: 1.6rem;
    font-weight: 700;
    color: var(--report-text);
}

.report-record__title {
    margin: 0 0 0.5rem 0;
    font-size: 1.1rem;
    font-weight: 600;
    color: var(--report-accent);
}

.report-field-error {
    margin: -0.5rem 0 0.75rem 0;
    font-size: 0.85rem;
    color: var(--report-error);
}
</style>
"""


def apply_app_theme(page_title: str, page_icon: Optional[str] = None) -> None:
    """Set up consistent page configuration and inject the shared CSS theme."""

    st.set_page_config(
        page_title=page_title,
        page_icon=page_icon,
        layout="centered",
        initial_sidebar_state="collapsed",
    )
    st.markdown(_THEME_CSS, unsafe_allow_html=True)


def page_header(title: str, subtitle: Optional[str] = None, *, container: Optional[Any] = None) -> None:
    """Render the report title with the section name underneath."""

    subtitle_markup = (
        f"<p class='report-header__subtitle'>{html_escape(subtitle)}</p>" if subtitle else ""
    )
    target = container.markdown if container is not None else st.markdown
    target(
        f"""
        <div class="report-header">
            <h1 class="report-header__title">{html_escape(title)}</h1>
            {subtitle_markup}
        </div>
        """,
        unsafe_allow_html=True,
    )


def record_title(text: str, *, container: Optional[Any] = None) -> None:
    target = container.markdown if container is not None else st.markdown
    target(f"<p class='report-record__title'>{html_escape(text)}</p>", unsafe_allow_html=True)


def field_error(message: str, *, container: Optional[Any] = None) -> None:
    """Render an inline validation message under a field."""

    target = container.markdown if container is not None else st.markdown
    target(f"<p class='report-field-error'>{html_escape(message)}</p>", unsafe_allow_html=True)
