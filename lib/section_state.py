"""Aggregates the payloads of completed sections for the whole report."""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class SectionStateBridge:
    """Explicit container for completed sections.

    Sections write to it once per successful submission and never read
    back from it.
    """

    def __init__(self) -> None:
        self._sections: Dict[str, Any] = {}
        self._completed_at: Dict[str, str] = {}

    def merge_section(self, section_id: str, values: Any) -> None:
        """Store a copy of ``values`` as the completed payload of ``section_id``."""

        self._sections.pop(section_id, None)
        self._sections[section_id] = deepcopy(values)
        self._completed_at[section_id] = datetime.now(timezone.utc).isoformat()

    def section(self, section_id: str) -> Optional[Any]:
        value = self._sections.get(section_id)
        return deepcopy(value) if value is not None else None

    def completed_at(self, section_id: str) -> str:
        return self._completed_at.get(section_id, "")

    def completed(self) -> List[str]:
        """Return completed section identifiers in completion order."""

        return list(self._sections.keys())

    def is_completed(self, section_id: str) -> bool:
        return section_id in self._sections

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self._sections)


__all__ = ["SectionStateBridge"]
