"""
Filter expressions for record store queries.

Filters are small immutable values. A list of filters passed to a store
method is an implicit AND. Each filter can render itself as a PostgREST
query fragment and can be evaluated against an in-memory row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


@dataclass(frozen=True)
class Eq:
    """column = value"""
    column: str
    value: Any

    def matches(self, row: dict[str, Any]) -> bool:
        return row.get(self.column) == self.value

    def to_param(self) -> tuple[str, str]:
        return self.column, f"eq.{_render_value(self.value)}"

    def to_expression(self) -> str:
        return f"{self.column}.eq.{_render_value(self.value)}"


@dataclass(frozen=True)
class In:
    """column IN (values)"""
    column: str
    values: tuple[Any, ...]

    def __init__(self, column: str, values):
        object.__setattr__(self, "column", column)
        object.__setattr__(self, "values", tuple(values))

    def matches(self, row: dict[str, Any]) -> bool:
        return row.get(self.column) in self.values

    def to_param(self) -> tuple[str, str]:
        rendered = ",".join(_render_value(v) for v in self.values)
        return self.column, f"in.({rendered})"

    def to_expression(self) -> str:
        rendered = ",".join(_render_value(v) for v in self.values)
        return f"{self.column}.in.({rendered})"


@dataclass(frozen=True)
class AllOf:
    """Conjunction, used inside AnyOf."""
    clauses: tuple[Filter, ...]

    def __init__(self, *clauses: Filter):
        object.__setattr__(self, "clauses", tuple(clauses))

    def matches(self, row: dict[str, Any]) -> bool:
        return all(c.matches(row) for c in self.clauses)

    def to_expression(self) -> str:
        return "and(" + ",".join(c.to_expression() for c in self.clauses) + ")"


@dataclass(frozen=True)
class AnyOf:
    """Disjunction. PostgREST allows one top-level ``or`` per request."""
    clauses: tuple[Filter, ...]

    def __init__(self, *clauses: Filter):
        object.__setattr__(self, "clauses", tuple(clauses))

    def matches(self, row: dict[str, Any]) -> bool:
        return any(c.matches(row) for c in self.clauses)

    def to_param(self) -> tuple[str, str]:
        return "or", "(" + ",".join(c.to_expression() for c in self.clauses) + ")"

    def to_expression(self) -> str:
        return "or(" + ",".join(c.to_expression() for c in self.clauses) + ")"


Filter = Union[Eq, In, AllOf, AnyOf]


def matches_all(row: dict[str, Any], filters: list[Filter] | None) -> bool:
    return all(f.matches(row) for f in filters or [])


def to_params(filters: list[Filter] | None) -> list[tuple[str, str]]:
    """Render top-level filters as PostgREST query parameters."""
    params = []
    disjunctions = 0
    for f in filters or []:
        if isinstance(f, AllOf):
            params.extend(to_params(list(f.clauses)))
            continue
        if isinstance(f, AnyOf):
            disjunctions += 1
            if disjunctions > 1:
                raise ValueError("Only one top-level AnyOf filter is supported")
        params.append(f.to_param())
    return params


def either_endpoint(person_id: str) -> AnyOf:
    """Relationships that mention ``person_id`` in either endpoint column."""
    return AnyOf(Eq("person1_id", person_id), Eq("person2_id", person_id))


def between(person_a: str, person_b: str) -> AnyOf:
    """Relationships linking the two persons, in either order."""
    return AnyOf(
        AllOf(Eq("person1_id", person_a), Eq("person2_id", person_b)),
        AllOf(Eq("person1_id", person_b), Eq("person2_id", person_a)),
    )
