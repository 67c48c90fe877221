"""Utilities for interacting with a Supabase project's REST and Storage APIs."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from lib.errors import StoreError

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _raise_for_status(response: requests.Response, action: str) -> None:
    """Convert HTTP errors into ``StoreError`` with the server's message."""

    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        detail = ""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, Mapping):
            detail = str(payload.get("message") or payload.get("error") or "")
        message = f"{action} failed with status {response.status_code}"
        if detail:
            message = f"{message}: {detail}"
        raise StoreError(message, status_code=response.status_code) from exc


def safe_object_name(name: str) -> str:
    """Return ``name`` reduced to characters allowed in storage object keys."""

    cleaned = _UNSAFE_NAME_CHARS.sub("-", name).strip("-.")
    return cleaned or "archivo"


@dataclass
class SupabaseBackend:
    """Supabase wrapper: PostgREST tables as the record store, Storage as file store."""

    url: str
    key: str
    bucket: str = "auditorias"
    schema: str = "public"
    timeout: float = 10

    def _headers(self, content_type: Optional[str] = "application/json") -> Dict[str, str]:
        """Build request headers for the Supabase APIs."""

        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept-Profile": self.schema,
            "Content-Profile": self.schema,
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _rest_url(self, table: str) -> str:
        return f"{self.url.rstrip('/')}/rest/v1/{table}"

    def _object_url(self, path: str) -> str:
        return f"{self.url.rstrip('/')}/storage/v1/object/{self.bucket}/{path}"

    def public_url(self, path: str) -> str:
        """Return the public URL of an object stored in the bucket."""

        return f"{self.url.rstrip('/')}/storage/v1/object/public/{self.bucket}/{path}"

    def select(
        self,
        table: str,
        columns: Sequence[str],
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Project ``columns`` of ``table`` filtered by exact-match equality."""

        params: Dict[str, str] = {"select": ",".join(columns) if columns else "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"

        try:
            response = requests.get(
                self._rest_url(table),
                headers=self._headers(content_type=None),
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"Reading {table} failed: {exc}") from exc
        _raise_for_status(response, f"Reading {table}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError(f"Unexpected response while reading {table}.") from exc
        if not isinstance(payload, list):
            raise StoreError(f"Unexpected response while reading {table}.")
        return [row for row in payload if isinstance(row, dict)]

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Insert ``rows`` into ``table`` in a single request."""

        headers = self._headers()
        headers["Prefer"] = "return=representation"
        try:
            response = requests.post(
                self._rest_url(table),
                headers=headers,
                json=[dict(row) for row in rows],
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"Writing to {table} failed: {exc}") from exc
        _raise_for_status(response, f"Writing to {table}")
        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError:
            # The rows were stored; only the echoed representation is unreadable.
            return []
        return payload if isinstance(payload, list) else []

    def upload(
        self,
        content: bytes,
        content_type: str,
        name: str,
        *,
        folder: str = "",
    ) -> str:
        """Upload ``content`` to the bucket and return its public URL."""

        object_name = f"{uuid.uuid4().hex}-{safe_object_name(name)}"
        path = f"{folder.strip('/')}/{object_name}" if folder.strip("/") else object_name
        headers = self._headers(content_type=content_type or "application/octet-stream")
        headers["x-upsert"] = "false"
        try:
            response = requests.post(
                self._object_url(path),
                headers=headers,
                data=content,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"Uploading {name} failed: {exc}") from exc
        _raise_for_status(response, f"Uploading {name}")
        return self.public_url(path)


__all__ = ["SupabaseBackend", "safe_object_name"]
