"""Configuration loaded from Streamlit secrets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional

import streamlit as st

from lib.errors import ConfigurationError

DEFAULT_FILES_BUCKET = "auditorias"
DEFAULT_DIRECTORY_TABLE = "direcciones"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MIN_OPPORTUNITIES = 1
DEFAULT_MAX_ATTACHMENT_MB = 10.0


@dataclass(frozen=True)
class SupabaseSettings:
    """Connection and form settings for one deployment."""

    url: str
    key: str
    files_bucket: str = DEFAULT_FILES_BUCKET
    directory_table: str = DEFAULT_DIRECTORY_TABLE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    min_opportunities: int = DEFAULT_MIN_OPPORTUNITIES
    max_attachment_mb: float = DEFAULT_MAX_ATTACHMENT_MB

    @property
    def max_attachment_bytes(self) -> int:
        return int(self.max_attachment_mb * 1024 * 1024)


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    try:
        value = st.secrets.get(name, {})  # type: ignore[arg-type]
    except FileNotFoundError:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _flat_secret(name: str, default: Any = None) -> Any:
    try:
        return st.secrets.get(name, default)
    except FileNotFoundError:
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _as_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


def settings_from_mapping(values: Mapping[str, Any]) -> Optional[SupabaseSettings]:
    """Normalise raw settings, returning ``None`` when url or key is missing."""

    url = str(values.get("url") or "").strip()
    key = str(values.get("key") or values.get("anon_key") or "").strip()
    if not (url and key):
        return None
    return SupabaseSettings(
        url=url,
        key=key,
        files_bucket=str(values.get("files_bucket") or DEFAULT_FILES_BUCKET),
        directory_table=str(values.get("directory_table") or DEFAULT_DIRECTORY_TABLE),
        request_timeout=_as_float(values.get("request_timeout"), DEFAULT_REQUEST_TIMEOUT),
        min_opportunities=_as_int(values.get("min_opportunities"), DEFAULT_MIN_OPPORTUNITIES),
        max_attachment_mb=_as_float(values.get("max_attachment_mb"), DEFAULT_MAX_ATTACHMENT_MB),
    )


def supabase_settings() -> Optional[SupabaseSettings]:
    """Return Supabase configuration from secrets in a normalised structure.

    The ``[supabase]`` table is preferred; flat ``supabase_url`` /
    ``supabase_key`` entries are used as a fallback.
    """

    values = _secrets_dict("supabase")
    if not values.get("url"):
        values["url"] = _flat_secret("supabase_url")
    if not (values.get("key") or values.get("anon_key")):
        values["key"] = _flat_secret("supabase_key")
    return settings_from_mapping(values)


def require_settings() -> SupabaseSettings:
    """Return the settings or raise ``ConfigurationError`` if they are missing."""

    settings = supabase_settings()
    if settings is None:
        raise ConfigurationError(
            "Falta la configuración de Supabase. Defina [supabase] url y key en "
            ".streamlit/secrets.toml."
        )
    return settings


__all__ = [
    "SupabaseSettings",
    "require_settings",
    "settings_from_mapping",
    "supabase_settings",
]
