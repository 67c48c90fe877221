"""Dependent selection fields whose options are computed from earlier choices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from lib.errors import FetchFailed, StoreError

logger = logging.getLogger(__name__)

OptionsProvider = Callable[[Tuple[str, ...]], Iterable[Any]]


def normalise_options(values: Iterable[Any]) -> List[str]:
    """Return distinct, non-blank option strings in ascending order."""

    cleaned = set()
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            cleaned.add(text)
    return sorted(cleaned)


@dataclass
class SelectionLevel:
    """One level of a cascading chain and its current option list."""

    key: str
    label: str
    provider: OptionsProvider
    depends_on: Optional[str] = None
    committed_value: Optional[str] = None
    options: List[str] = field(default_factory=list)
    sequence: int = 0
    pending: Optional[int] = None
    fetched_for: Optional[Tuple[str, ...]] = None
    error: Optional[FetchFailed] = None

    @property
    def is_pending(self) -> bool:
        return self.pending is not None

    def invalidate(self) -> None:
        """Clear the committed value, options and any in-flight fetch."""

        self.committed_value = None
        self.options = []
        self.pending = None
        self.fetched_for = None
        self.error = None


@dataclass(frozen=True)
class FetchTicket:
    """Identifies one issued fetch so late results can be recognised."""

    level: str
    sequence: int
    ancestors: Tuple[str, ...]


class CascadingSelectorChain:
    """A chain ``L0..Ln`` where each level's options depend on all ancestors.

    Committing a new value on level *k* clears levels *k+1..n* and fetches
    the options of level *k+1*. Each fetch carries a per-level sequence
    number; results whose ticket is no longer the latest for the level, or
    whose ancestors changed meanwhile, are dropped.
    """

    def __init__(self, levels: Sequence[Tuple[str, str, OptionsProvider]]) -> None:
        if not levels:
            raise ValueError("A cascading chain needs at least one level.")
        self._levels: List[SelectionLevel] = []
        previous: Optional[str] = None
        for key, label, provider in levels:
            self._levels.append(
                SelectionLevel(key=key, label=label, provider=provider, depends_on=previous)
            )
            previous = key
        self._index: Dict[str, int] = {level.key: pos for pos, level in enumerate(self._levels)}
        if len(self._index) != len(self._levels):
            raise ValueError("Cascade level keys must be unique.")
        self._initialized = False

    @property
    def keys(self) -> List[str]:
        return [level.key for level in self._levels]

    @property
    def initialized(self) -> bool:
        return self._initialized

    def level(self, key: str) -> SelectionLevel:
        return self._levels[self._position(key)]

    def options(self, key: str) -> List[str]:
        return list(self.level(key).options)

    def values(self) -> Dict[str, Optional[str]]:
        """Return the committed value of every level keyed by level key."""

        return {level.key: level.committed_value for level in self._levels}

    def errors(self) -> List[FetchFailed]:
        return [level.error for level in self._levels if level.error is not None]

    def _position(self, key: str) -> int:
        try:
            return self._index[key]
        except KeyError:
            raise KeyError(f"Unknown cascade level: {key}") from None

    def ancestor_values(self, key: str) -> Tuple[str, ...]:
        """Return the committed values of every level before ``key``."""

        position = self._position(key)
        return tuple(level.committed_value or "" for level in self._levels[:position])

    def is_fetchable(self, key: str) -> bool:
        position = self._position(key)
        return all(level.committed_value for level in self._levels[:position])

    def initialize(self) -> Optional[FetchFailed]:
        """Load the root level's options. Only the first call fetches."""

        if self._initialized:
            return None
        self._initialized = True
        return self.fetch(self._levels[0].key)

    def commit(self, key: str, value: Optional[str]) -> Optional[FetchFailed]:
        """Make ``value`` the authoritative value of level ``key``.

        Returns the fetch error of the next level, if its options could not
        be loaded.
        """

        position = self._position(key)
        level = self._levels[position]
        new_value = value.strip() if isinstance(value, str) else value
        new_value = new_value or None
        if new_value == level.committed_value:
            return None

        level.committed_value = new_value
        for descendant in self._levels[position + 1:]:
            descendant.invalidate()

        if new_value is None or position + 1 >= len(self._levels):
            return None
        return self.fetch(self._levels[position + 1].key)

    def begin_fetch(self, key: str) -> FetchTicket:
        """Issue a new fetch for ``key``, superseding any pending one."""

        if not self.is_fetchable(key):
            raise ValueError(f"Level {key!r} cannot be fetched before its ancestors are selected.")
        level = self.level(key)
        level.sequence += 1
        level.pending = level.sequence
        return FetchTicket(level=key, sequence=level.sequence, ancestors=self.ancestor_values(key))

    def _is_current(self, ticket: FetchTicket) -> bool:
        level = self.level(ticket.level)
        if level.pending != ticket.sequence:
            return False
        return self.is_fetchable(ticket.level) and self.ancestor_values(ticket.level) == ticket.ancestors

    def complete_fetch(self, ticket: FetchTicket, values: Iterable[Any]) -> bool:
        """Apply a fetch result. Returns ``False`` when the result is stale."""

        if not self._is_current(ticket):
            logger.debug(
                "Dropping stale options for %s (sequence %s)", ticket.level, ticket.sequence
            )
            return False
        level = self.level(ticket.level)
        level.options = normalise_options(values)
        level.fetched_for = ticket.ancestors
        level.pending = None
        level.error = None
        return True

    def fail_fetch(self, ticket: FetchTicket, exc: Exception) -> Optional[FetchFailed]:
        """Record a failed fetch, keeping the level's previous options."""

        if not self._is_current(ticket):
            return None
        level = self.level(ticket.level)
        level.pending = None
        level.error = FetchFailed(level.label, str(exc))
        logger.warning("Failed to load options for %s: %s", ticket.level, exc)
        return level.error

    def fetch(self, key: str) -> Optional[FetchFailed]:
        """Run the level's provider synchronously and apply the result."""

        ticket = self.begin_fetch(key)
        level = self.level(key)
        try:
            values = list(level.provider(ticket.ancestors))
        except StoreError as exc:
            return self.fail_fetch(ticket, exc)
        self.complete_fetch(ticket, values)
        return None

    def retry(self, key: str) -> Optional[FetchFailed]:
        """Fetch ``key`` again, typically after a ``FetchFailed``."""

        if not self.is_fetchable(key):
            return None
        return self.fetch(key)


def distinct_column_provider(
    store: Any,
    table: str,
    column: str,
    ancestor_columns: Sequence[str] = (),
) -> OptionsProvider:
    """Build a provider projecting ``column`` filtered by the ancestor columns."""

    def provider(ancestors: Tuple[str, ...]) -> List[Any]:
        filters: Mapping[str, str] = dict(zip(ancestor_columns, ancestors))
        rows = store.select(table, [column], filters)
        return [row.get(column) for row in rows if isinstance(row, Mapping)]

    return provider


__all__ = [
    "CascadingSelectorChain",
    "FetchTicket",
    "OptionsProvider",
    "SelectionLevel",
    "distinct_column_provider",
    "normalise_options",
]
