"""Decide which families hang off the root ancestry and which are orphans.

Parent-child edges are followed downwards only. Families are the sole
sideways link: any connectable member pulls in every spouse of that family.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..logging import get_logger
from .families import FamilyGraph

logger = get_logger(__name__)


@dataclass(frozen=True)
class Connectivity:
    connectable: frozenset[str]
    orphan_families: frozenset[str]
    seeded: bool
    passes: int = 0

    def is_orphan(self, family_key: str) -> bool:
        return family_key in self.orphan_families


def resolve_connectivity(graph: FamilyGraph, seed: Iterable[str] | None = None) -> Connectivity:
    """Compute the connectable set and classify every family.

    Without a seed every person taking part in a parent-child edge counts as
    connectable and the result is marked unseeded.
    """
    seed_ids = set(seed or ())
    if seed_ids:
        connectable, passes = _closure(graph, seed_ids)
    else:
        connectable = set(graph.child_to_parents)
        for parents in graph.child_to_parents.values():
            connectable.update(parents)
        passes = 0

    orphans = frozenset(
        key
        for key, family in graph.families.items()
        if not any(member in connectable for member in family.members)
    )
    logger.debug(
        "connectivity_resolved",
        seeded=bool(seed_ids),
        connectable=len(connectable),
        orphan_families=len(orphans),
        passes=passes,
    )
    return Connectivity(
        connectable=frozenset(connectable),
        orphan_families=orphans,
        seeded=bool(seed_ids),
        passes=passes,
    )


def _closure(graph: FamilyGraph, seed: set[str]) -> tuple[set[str], int]:
    connectable = set(seed)

    for family in graph.families.values():
        if any(spouse in connectable for spouse in family.spouses):
            connectable.update(family.spouses)

    passes = 0
    while True:
        passes += 1
        size = len(connectable)

        # downward: a connectable parent pulls in the child
        for child, parents in graph.child_to_parents.items():
            if child not in connectable and any(p in connectable for p in parents):
                connectable.add(child)

        # sideways: any connectable member pulls in every spouse
        for family in graph.families.values():
            if any(member in connectable for member in family.members):
                connectable.update(family.spouses)

        if len(connectable) == size:
            return connectable, passes
