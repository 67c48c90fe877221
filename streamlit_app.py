"""Entrypoint for ``streamlit run streamlit_app.py``; renders the report's Home page."""

from importlib import import_module

import streamlit as st


def main() -> None:
    """Load ``Home`` lazily so a broken landing page shows an error instead of a traceback."""

    try:
        home_module = import_module("Home")
    except ModuleNotFoundError:
        st.error("No se encontró la página de inicio del reporte.")
        return

    render = getattr(home_module, "main", None)
    if render is None:
        st.error("La página de inicio del reporte no define main().")
        return

    render()


if __name__ == "__main__":
    main()
