"""Ordering of fixtures and tables along their dependencies."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from typing import TYPE_CHECKING, Callable, Optional, Union

from alchemy_fixtures.exceptions import CyclicDependencyError, CyclicFixtureDependencyError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from alchemy_fixtures.fixtures import Fixture

__all__ = (
    "ReferencesOf",
    "fixture_dependencies",
    "group_by_depth",
    "resolve_fixture_order",
    "resolve_table_order",
)

logger = logging.getLogger("alchemy_fixtures.dependencies")

ReferencesOf = Union[Mapping[str, "Iterable[str]"], Callable[[str], "Iterable[str]"]]
"""Outward foreign key targets per table, as a mapping or a lookup callable."""

_Relations = dict["Fixture", Optional[tuple["Fixture", ...]]]


def _collect_relations(fixtures: Iterable[Fixture]) -> _Relations:
    """Resolve ``required_relations()`` once for every reachable fixture.

    The returned dict is ordered: input fixtures first, then dependencies in
    the order they are first discovered.
    """
    relations: _Relations = {}
    queue: deque[Fixture] = deque(fixtures)
    while queue:
        fixture = queue.popleft()
        if fixture in relations:
            continue
        required = fixture.required_relations()
        relations[fixture] = None if required is None else tuple(required)
        if required:
            queue.extend(required)
    return relations


def _order(relations: _Relations) -> list[Fixture]:
    ordered: list[Fixture] = []
    visited: set[Fixture] = set()
    for root in relations:
        if root in visited:
            continue
        stack: list[tuple[Fixture, Iterator[Fixture]]] = [(root, iter(relations[root] or ()))]
        visiting: set[Fixture] = {root}
        while stack:
            fixture, pending = stack[-1]
            for required in pending:
                if required in visited:
                    continue
                if required in visiting:
                    path = [item for item, _ in stack]
                    cycle = [*path[path.index(required) :], required]
                    raise CyclicFixtureDependencyError([item.name for item in cycle])
                stack.append((required, iter(relations[required] or ())))
                visiting.add(required)
                break
            else:
                stack.pop()
                visiting.discard(fixture)
                visited.add(fixture)
                ordered.append(fixture)
    return ordered


def resolve_fixture_order(fixtures: Sequence[Fixture]) -> list[Fixture]:
    """Order fixtures so every fixture comes after the fixtures it requires.

    Required fixtures missing from ``fixtures`` are added. Each fixture appears
    once. Independent fixtures keep the input order, followed by discovered
    dependencies in first-seen order. When no fixture declares relations the
    input is returned unchanged.

    Raises:
        CyclicFixtureDependencyError: If a fixture requires itself, directly
            or through other fixtures.
    """
    relations = _collect_relations(fixtures)
    if all(required is None for required in relations.values()):
        return list(fixtures)
    ordered = _order(relations)
    logger.debug("resolved fixture order: %s", [fixture.name for fixture in ordered])
    return ordered


def fixture_dependencies(fixture: Fixture) -> list[Fixture]:
    """Return ``fixture`` and its transitive dependencies in load order, ``fixture`` last."""
    return resolve_fixture_order([fixture])


def group_by_depth(fixtures: Sequence[Fixture]) -> list[list[Fixture]]:
    """Split the resolved order into layers of mutually independent fixtures.

    Every fixture of a layer only requires fixtures of earlier layers, so the
    fixtures of one layer may be loaded concurrently.
    """
    relations = _collect_relations(fixtures)
    if all(required is None for required in relations.values()):
        return [list(fixtures)] if fixtures else []
    depths: dict[Fixture, int] = {}
    layers: list[list[Fixture]] = []
    for fixture in _order(relations):
        depth = max((depths[required] + 1 for required in relations[fixture] or ()), default=0)
        depths[fixture] = depth
        if depth == len(layers):
            layers.append([])
        layers[depth].append(fixture)
    return layers


def resolve_table_order(tables: Iterable[str], references_of: ReferencesOf) -> list[str]:
    """Order tables so every table comes after all the tables it references.

    Each pass takes, in input order, the tables whose remaining references
    are all resolved. References to tables outside ``tables`` are ignored; a
    reference to the table itself counts.

    Args:
        tables: Table names to order.
        references_of: Outward foreign key targets of each table.

    Raises:
        CyclicDependencyError: If some tables can never be resolved.

    Returns:
        The table names in dependency order.
    """
    lookup = references_of.get if isinstance(references_of, Mapping) else references_of
    pending: dict[str, set[str]] = {}
    for table in tables:
        if table not in pending:
            pending[table] = set(lookup(table) or ())
    names = set(pending)
    for references in pending.values():
        references.intersection_update(names)

    ordered: list[str] = []
    while pending:
        resolved = [table for table, references in pending.items() if not references]
        if not resolved:
            raise CyclicDependencyError(list(pending))
        for table in resolved:
            del pending[table]
        for references in pending.values():
            references.difference_update(resolved)
        ordered.extend(resolved)
    logger.debug("resolved table order: %s", ordered)
    return ordered
