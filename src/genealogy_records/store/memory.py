"""
In-process record store.

Holds tables as dicts keyed by id. Used by the test suite and by the
``serve --memory`` development mode. State is lost on restart.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from genealogy_records.store.base import TABLES, RecordStore, project
from genealogy_records.store.query import Filter, matches_all

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemoryStore(RecordStore):
    """Dict-backed store with the same semantics as the hosted store."""

    name = "memory"

    def __init__(self):
        self._tables: dict[str, dict[str, dict[str, Any]]] = {t: {} for t in TABLES}

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        if table not in self._tables:
            self._tables[table] = {}
        return self._tables[table]

    async def select(
        self,
        table: str,
        filters: list[Filter] | None = None,
        *,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        rows = [r for r in self._table(table).values() if matches_all(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=descending)
        return [project(copy.deepcopy(r), columns) for r in rows]

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid4()))
        now = _now()
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", now)
        self._table(table)[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: list[Filter],
    ) -> list[dict[str, Any]]:
        updated = []
        for row in self._table(table).values():
            if matches_all(row, filters):
                row.update(copy.deepcopy(values))
                row["updated_at"] = _now()
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, filters: list[Filter]) -> list[dict[str, Any]]:
        rows = self._table(table)
        doomed = [rid for rid, r in rows.items() if matches_all(r, filters)]
        deleted = [rows.pop(rid) for rid in doomed]
        if deleted:
            logger.debug("Deleted %d row(s) from %s", len(deleted), table)
        return deleted

    async def count(self, table: str, filters: list[Filter] | None = None) -> int:
        return sum(1 for r in self._table(table).values() if matches_all(r, filters))

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._tables.values())
