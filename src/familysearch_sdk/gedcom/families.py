"""Reconstruct couple and single-parent families from relationship edges."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..logging import get_logger
from ..models.relationship import Relationship, RelationshipKind

logger = get_logger(__name__)


@dataclass
class Family:
    key: str
    spouses: list[str] = field(default_factory=list)  # 1-2 ids, insertion ordered
    children: list[str] = field(default_factory=list)

    @property
    def members(self) -> list[str]:
        return [*self.spouses, *self.children]


@dataclass
class FamilyGraph:
    child_to_parents: dict[str, list[str]] = field(default_factory=dict)
    families: dict[str, Family] = field(default_factory=dict)

    def family_key_for_child(self, child_id: str) -> str | None:
        parents = self.child_to_parents.get(child_id) or []
        if len(parents) >= 2:
            return couple_key(parents[0], parents[1])
        if len(parents) == 1:
            return single_key(parents[0])
        return None


def couple_key(a: str, b: str) -> str:
    return "-".join(sorted((a, b)))


def single_key(parent_id: str) -> str:
    return f"single-{parent_id}"


def build_family_graph(relationships: Iterable[Relationship], person_ids: Iterable[str]) -> FamilyGraph:
    """Build ``child_to_parents`` and the family map.

    Edges pointing at persons outside ``person_ids`` are trimmed or dropped.
    """
    known = set(person_ids)
    graph = FamilyGraph()

    for rel in relationships:
        if rel.kind is RelationshipKind.PARENT_CHILD:
            _add_parent_child(graph, rel, known)
        elif rel.kind is RelationshipKind.COUPLE:
            _add_couple(graph, rel, known)

    for child_id, parents in graph.child_to_parents.items():
        if len(parents) >= 2:
            spouses = parents[:2]
            key = couple_key(*spouses)
        elif len(parents) == 1:
            spouses = parents[:1]
            key = single_key(parents[0])
        else:
            continue
        family = graph.families.get(key)
        if family is None:
            family = graph.families[key] = Family(key=key, spouses=list(spouses))
        family.children.append(child_id)

    return graph


def _add_parent_child(graph: FamilyGraph, rel: Relationship, known: set[str]) -> None:
    child = rel.person2_id
    if not child or child not in known:
        logger.debug("parent_child_dropped", relationship_id=rel.id, child_id=child, reason="unknown child")
        return

    parents = [p for p in (rel.person1_id, rel.parent2_id) if p and p in known and p != child]
    if not parents:
        logger.debug("parent_child_dropped", relationship_id=rel.id, child_id=child, reason="no known parent")
        return

    existing = graph.child_to_parents.setdefault(child, [])
    for parent in parents:
        if parent not in existing:
            existing.append(parent)


def _add_couple(graph: FamilyGraph, rel: Relationship, known: set[str]) -> None:
    a, b = rel.person1_id, rel.person2_id
    if not a or not b or a not in known or b not in known or a == b:
        logger.debug("couple_dropped", relationship_id=rel.id, person1=a, person2=b)
        return
    key = couple_key(a, b)
    if key not in graph.families:
        graph.families[key] = Family(key=key, spouses=[a, b])
