"""Render field specifications as Streamlit widgets."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

import streamlit as st

from lib.errors import ValidationFailed
from lib.ui_theme import field_error
from lib.validation import YES_NO_LABELS, FieldKind, FieldSpec

UNSELECTED_LABEL = "— Seleccione una opción —"


def field_label(spec: FieldSpec) -> str:
    """Return the widget label with a ``*`` marker on required fields."""

    required = spec.required or spec.required_when is not None
    return f"{spec.label} *" if required else spec.label


def _drop_stale_choice(widget_key: str, choices: Sequence[str]) -> None:
    if widget_key in st.session_state and st.session_state[widget_key] not in choices:
        st.session_state.pop(widget_key)


def select_value(
    label: str,
    options: Sequence[str],
    current: Optional[str],
    *,
    widget_key: str,
    container: Optional[Any] = None,
    disabled: bool = False,
    help: Optional[str] = None,
) -> str:
    """Render a selectbox with a leading placeholder; returns ``""`` when unset."""

    target = container if container is not None else st
    choices = [UNSELECTED_LABEL, *options]
    _drop_stale_choice(widget_key, choices)
    index = choices.index(current) if current in choices else 0
    selection = target.selectbox(
        label,
        options=choices,
        index=index,
        key=widget_key,
        disabled=disabled,
        help=help,
    )
    return "" if selection == UNSELECTED_LABEL else str(selection)


def render_field(
    spec: FieldSpec,
    value: Any,
    *,
    widget_key: str,
    container: Optional[Any] = None,
) -> Any:
    """Render the widget for ``spec`` and return the value it currently holds."""

    target = container if container is not None else st
    label = field_label(spec)

    if spec.kind is FieldKind.ENUM:
        return select_value(
            label,
            spec.options,
            value if isinstance(value, str) else None,
            widget_key=widget_key,
            container=target,
            help=spec.help,
        )

    if spec.kind is FieldKind.CHOICE:
        options = list(spec.options)
        _drop_stale_choice(widget_key, options)
        index = options.index(value) if value in options else 0
        return target.radio(
            label,
            options=options,
            index=index,
            key=widget_key,
            format_func=lambda option: YES_NO_LABELS.get(option, option),
            horizontal=True,
            help=spec.help,
        )

    text = "" if value is None else str(value)
    if spec.multiline:
        return target.text_area(label, value=text, key=widget_key, help=spec.help, height=110)
    return target.text_input(label, value=text, key=widget_key, help=spec.help)


def show_error(errors: Mapping[str, str], key: str, *, container: Optional[Any] = None) -> None:
    message = errors.get(key)
    if message:
        field_error(message, container=container)


def show_validation_failure(exc: ValidationFailed, *, record_label: str = "Registro") -> None:
    """Show the blocking alert and the list of failing fields."""

    st.error(str(exc))
    lines = []
    for failure in exc.failures:
        prefix = f"{record_label} {failure.index + 1}: " if failure.index is not None else ""
        lines.append(f"- {prefix}{failure.reason}")
    st.markdown("\n".join(lines))


__all__ = [
    "UNSELECTED_LABEL",
    "field_label",
    "render_field",
    "select_value",
    "show_error",
    "show_validation_failure",
]
