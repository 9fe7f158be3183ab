"""Synchronous data access seen by the engine.

The engine never talks to storage itself. Callers hand it a DataProvider;
the HTTP layer fills a MemoryProvider from the async connector first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from tally.kernel.models import Category, Event, Target


class DataProvider(Protocol):
    def find_events_in_range(self, category_ids: set[str], start: int, end: int) -> list[Event]:
        """Events of any of `category_ids` in [start, end), oldest first."""
        ...

    def find_category(self, category_id: str) -> Category | None: ...

    def find_categories(self, category_ids: list[str]) -> list[Category]: ...

    def list_targets(self) -> list[Target]: ...


@dataclass
class MemoryProvider:
    categories: list[Category] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    targets: list[Target] = field(default_factory=list)

    def find_events_in_range(self, category_ids: set[str], start: int, end: int) -> list[Event]:
        found = [e for e in self.events if e.category in category_ids and start <= e.timestamp < end]
        return sorted(found, key=lambda e: e.timestamp)

    def find_category(self, category_id: str) -> Category | None:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_categories(self, category_ids: list[str]) -> list[Category]:
        wanted = set(category_ids)
        return [c for c in self.categories if c.id in wanted]

    def list_targets(self) -> list[Target]:
        return list(self.targets)
