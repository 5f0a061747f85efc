"""Merge relationship records from the pedigree and from person details."""
from __future__ import annotations

from collections.abc import Iterable

from ..logging import get_logger
from ..models.pedigree import EnhancedPerson
from ..models.relationship import (
    PARENT_CHILD_TYPE,
    ChildAndParentsRelationship,
    Relationship,
    RelationshipKind,
    ResourceReference,
)

logger = get_logger(__name__)


def split_child_and_parents(rel: ChildAndParentsRelationship) -> list[Relationship]:
    """Turn a composite record into one parent-child edge per parent.

    ``<id>-p1`` has parent1 as parent and parent2 as co-parent; ``<id>-p2``
    reverses them. Records without parent1 or child yield nothing.
    """
    parent1, parent2, child = rel.parent1_id, rel.parent2_id, rel.child_id
    if not parent1 or not child:
        return []

    edges = [_parent_child(f"{rel.id}-p1", parent1, child, parent2)]
    if parent2:
        edges.append(_parent_child(f"{rel.id}-p2", parent2, child, parent1))
    return edges


def _parent_child(edge_id: str, parent: str, child: str, co_parent: str | None) -> Relationship:
    return Relationship(
        id=edge_id,
        type=PARENT_CHILD_TYPE,
        person1=ResourceReference(resource_id=parent),
        person2=ResourceReference(resource_id=child),
        parent2=ResourceReference(resource_id=co_parent) if co_parent else None,
    )


def _has_endpoints(rel: Relationship) -> bool:
    return bool(rel.person1_id and rel.person2_id)


def merge_relationships(
    relationships: Iterable[Relationship],
    persons: Iterable[EnhancedPerson] = (),
) -> list[Relationship]:
    """Deduplicate relationships by id, first occurrence wins.

    The top-level list comes first, then each person's detail relationships
    (couples and plain parent-child) and split child-and-parents records.
    Records without both endpoints are left out.
    """
    merged: dict[str, Relationship] = {}

    def add(rel: Relationship) -> None:
        if rel.id in merged:
            return
        if not _has_endpoints(rel):
            logger.debug("relationship_skipped", relationship_id=rel.id, reason="missing endpoint")
            return
        merged[rel.id] = rel

    for rel in relationships:
        add(rel)

    for person in persons:
        details = person.full_details
        if details is None:
            continue
        for rel in details.relationships:
            if rel.kind in (RelationshipKind.COUPLE, RelationshipKind.PARENT_CHILD):
                add(rel)
        for composite in details.child_and_parents_relationships:
            for edge in split_child_and_parents(composite):
                add(edge)

    return list(merged.values())
