"""
Record store interface.

The store is the only durable state in the system. It knows nothing about
ownership or privacy; services apply those rules before and after each call.
Implementations perform exactly one round trip per call: no retries and no
multi-statement transactions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from genealogy_records.store.query import Filter

USERS = "users"
GENEALOGIES = "genealogies"
PERSONS = "persons"
RELATIONSHIPS = "relationships"
PERSON_EVENTS = "person_events"

TABLES = (USERS, GENEALOGIES, PERSONS, RELATIONSHIPS, PERSON_EVENTS)


class RecordStore(ABC):
    """Abstract async table store."""

    name: str = "base"

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: list[Filter] | None = None,
        *,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Return all rows matching every filter."""
        pass

    async def select_one(
        self,
        table: str,
        filters: list[Filter],
        *,
        columns: str = "*",
    ) -> dict[str, Any] | None:
        """Return the first matching row, or None."""
        rows = await self.select(table, filters, columns=columns)
        return rows[0] if rows else None

    @abstractmethod
    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: list[Filter],
    ) -> list[dict[str, Any]]:
        """Update matching rows and return them as stored."""
        pass

    @abstractmethod
    async def delete(self, table: str, filters: list[Filter]) -> list[dict[str, Any]]:
        """Delete matching rows and return what was deleted."""
        pass

    @abstractmethod
    async def count(self, table: str, filters: list[Filter] | None = None) -> int:
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


def project(row: dict[str, Any], columns: str) -> dict[str, Any]:
    """Apply a PostgREST-style column list (``"*"`` or ``"a,b"``) to a row."""
    if columns.strip() == "*":
        return dict(row)
    wanted = [c.strip() for c in columns.split(",") if c.strip()]
    return {c: row.get(c) for c in wanted}
