"""
Cascading deletes as a compensating saga.

The store offers no multi-statement transactions, so a cascade is a sequence
of independent deletes. Each step records the rows it removed. If a later
step fails, the rows removed so far are re-inserted in reverse order and the
original error is raised, leaving stored state as it was before the cascade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from genealogy_records.core.errors import StoreError
from genealogy_records.store.base import RecordStore
from genealogy_records.store.query import Filter

logger = logging.getLogger(__name__)


@dataclass
class CascadeStep:
    table: str
    filters: list[Filter]
    deleted: list[dict[str, Any]] = field(default_factory=list)


class CascadeDelete:
    """
    Ordered delete steps, children first.

    Usage:
        cascade = CascadeDelete(store)
        cascade.then(PERSONS, [Eq("genealogy_id", gid)])
        cascade.then(GENEALOGIES, [Eq("id", gid)])
        await cascade.run()
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.steps: list[CascadeStep] = []

    def then(self, table: str, filters: list[Filter]) -> CascadeDelete:
        self.steps.append(CascadeStep(table=table, filters=filters))
        return self

    async def run(self) -> dict[str, int]:
        """Execute all steps; returns the number of rows removed per table."""
        completed: list[CascadeStep] = []
        for step in self.steps:
            try:
                step.deleted = await self.store.delete(step.table, step.filters)
            except StoreError:
                await self._compensate(completed)
                raise
            completed.append(step)

        removed: dict[str, int] = {}
        for step in completed:
            removed[step.table] = removed.get(step.table, 0) + len(step.deleted)
        return removed

    async def _compensate(self, completed: list[CascadeStep]) -> None:
        for step in reversed(completed):
            for row in step.deleted:
                try:
                    await self.store.insert(step.table, row)
                except StoreError as e:
                    # Left for manual repair
                    logger.error(
                        "Could not restore %s row %s after failed cascade: %s",
                        step.table, row.get("id"), e,
                    )
            if step.deleted:
                logger.warning(
                    "Restored %d %s row(s) after failed cascade",
                    len(step.deleted), step.table,
                )
