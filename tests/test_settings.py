"""Tests for reading deployment settings from Streamlit secrets."""

from __future__ import annotations

import importlib

import pytest


class MissingSecrets:
    def get(self, name, default=None):
        raise FileNotFoundError("secrets.toml")


def test_settings_from_mapping_applies_defaults() -> None:
    settings = importlib.import_module("lib.settings")

    result = settings.settings_from_mapping({"url": " https://demo.supabase.co ", "anon_key": "k"})

    assert result.url == "https://demo.supabase.co"
    assert result.key == "k"
    assert result.files_bucket == "auditorias"
    assert result.directory_table == "direcciones"
    assert result.request_timeout == 10.0
    assert result.min_opportunities == 1
    assert result.max_attachment_bytes == 10 * 1024 * 1024


def test_settings_from_mapping_normalises_bad_numbers() -> None:
    settings = importlib.import_module("lib.settings")

    result = settings.settings_from_mapping(
        {
            "url": "https://demo.supabase.co",
            "key": "k",
            "request_timeout": "-3",
            "min_opportunities": "0",
            "max_attachment_mb": "abc",
        }
    )

    assert result.request_timeout == 10.0
    assert result.min_opportunities == 0
    assert result.max_attachment_mb == 10.0


def test_settings_missing_url_or_key() -> None:
    settings = importlib.import_module("lib.settings")

    assert settings.settings_from_mapping({"url": "https://demo.supabase.co"}) is None
    assert settings.settings_from_mapping({"key": "k"}) is None


def test_supabase_settings_reads_table_and_flat_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = importlib.import_module("lib.settings")

    monkeypatch.setattr(
        settings.st,
        "secrets",
        {"supabase": {"url": "https://demo.supabase.co", "files_bucket": "informes"}, "supabase_key": "flat"},
    )

    result = settings.supabase_settings()

    assert result.key == "flat"
    assert result.files_bucket == "informes"


def test_require_settings_raises_without_secrets_file(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = importlib.import_module("lib.settings")
    errors = importlib.import_module("lib.errors")

    monkeypatch.setattr(settings.st, "secrets", MissingSecrets())

    assert settings.supabase_settings() is None
    with pytest.raises(errors.ConfigurationError):
        settings.require_settings()
