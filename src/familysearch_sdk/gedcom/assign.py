"""Choose what reaches the GEDCOM output and give it cross-reference ids."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from ..logging import get_logger
from ..models.pedigree import EnhancedPerson
from ..models.source import SourceDescription
from .connectivity import Connectivity
from .families import Family, FamilyGraph

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlannedFamily:
    xref: str
    family: Family
    orphan: bool = False


@dataclass(frozen=True)
class PlannedSource:
    xref: str
    source: SourceDescription


@dataclass
class ExportPlan:
    """Records selected for output, in emission order, with their xrefs."""

    persons: list[EnhancedPerson] = field(default_factory=list)
    person_xrefs: dict[str, str] = field(default_factory=dict)
    families: list[PlannedFamily] = field(default_factory=list)
    family_xrefs: dict[str, str] = field(default_factory=dict)
    sources: dict[str, PlannedSource] = field(default_factory=dict)

    def family_xref_for_child(self, graph: FamilyGraph, child_id: str) -> str | None:
        key = graph.family_key_for_child(child_id)
        return self.family_xrefs.get(key) if key else None


def plan_export(
    persons: Sequence[EnhancedPerson],
    graph: FamilyGraph,
    connectivity: Connectivity,
    allow_orphan_families: bool = False,
) -> ExportPlan:
    """Filter families and persons, then number what is left.

    Numbering follows input order for persons and family-map order for
    families, counting only records that are emitted.
    """
    suppress_orphans = connectivity.seeded and not allow_orphan_families
    person_ids = {person.id for person in persons}
    plan = ExportPlan()

    for family in graph.families.values():
        orphan = connectivity.seeded and connectivity.is_orphan(family.key)
        valid_spouses = [s for s in family.spouses if s in person_ids]
        if not valid_spouses:
            logger.warning("family_without_spouses", family_key=family.key)
            continue
        if len(valid_spouses) == 1 and not family.children:
            logger.debug("family_skipped", family_key=family.key, reason="single spouse without children")
            continue
        if orphan and suppress_orphans:
            logger.debug("family_skipped", family_key=family.key, reason="orphan")
            continue
        xref = f"@F{len(plan.families) + 1}@"
        plan.families.append(PlannedFamily(xref=xref, family=family, orphan=orphan))
        plan.family_xrefs[family.key] = xref

    memberships = _memberships(graph)
    for person in persons:
        if person.id in plan.person_xrefs:
            logger.warning("duplicate_person", person_id=person.id)
            continue
        families = memberships.get(person.id, [])
        if suppress_orphans and families and all(connectivity.is_orphan(key) for key in families):
            logger.debug("person_skipped", person_id=person.id, reason="orphan")
            continue
        plan.persons.append(person)
        plan.person_xrefs[person.id] = f"@I{len(plan.persons)}@"

    for person in plan.persons:
        if person.full_details is None:
            continue
        for source in person.full_details.source_descriptions:
            if source.id not in plan.sources:
                plan.sources[source.id] = PlannedSource(
                    xref=f"@S{len(plan.sources) + 1}@", source=source
                )

    logger.debug(
        "export_planned",
        persons=len(plan.persons),
        families=len(plan.families),
        sources=len(plan.sources),
    )
    return plan


def _memberships(graph: FamilyGraph) -> dict[str, list[str]]:
    """Family keys each person belongs to, as spouse or child."""
    memberships: dict[str, list[str]] = {}
    for key, family in graph.families.items():
        for member in family.members:
            memberships.setdefault(member, []).append(key)
    return memberships
