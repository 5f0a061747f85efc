"""Fetch a pedigree with per-person details for GEDCOM conversion."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..client import FamilySearchClient
from ..errors import FamilySearchAPIError, FamilySearchError
from ..logging import get_logger
from ..models.pedigree import EnhancedPerson, PedigreeData
from ..models.relationship import Relationship, RelationshipDetails, RelationshipKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressUpdate:
    stage: str
    current: int
    total: int
    percent: int


ProgressCallback = Callable[[ProgressUpdate], None]


def _report(callback: ProgressCallback | None, stage: str, current: int, total: int, percent: int) -> None:
    if callback is not None:
        callback(ProgressUpdate(stage=stage, current=current, total=total, percent=percent))


async def fetch_pedigree(
    client: FamilySearchClient,
    person_id: str | None = None,
    generations: int = 4,
    on_progress: ProgressCallback | None = None,
    include_details: bool = True,
    include_notes: bool = True,
    include_relationship_details: bool = True,
) -> PedigreeData:
    """Fetch ancestry plus details, notes and couple relationship facts.

    Args:
        client: An authenticated client inside its ``async with`` block
        person_id: Root person; the signed-in user's tree person when None
        generations: Ancestry depth (1-8)
        on_progress: Called with coarse progress updates

    Returns:
        PedigreeData whose ``ancestry_person_ids`` seed orphan filtering

    Raises:
        FamilySearchError: If no root person can be determined or the
            ancestry is empty
    """
    target = person_id
    if not target:
        _report(on_progress, "getting_current_user", 0, 1, 0)
        user = await client.get_current_user()
        if user is None:
            raise FamilySearchError("Could not determine person ID for current user")
        target = user.tree_person_id

    _report(on_progress, "fetching_ancestry_structure", 1, 3, 10)
    ancestry = await client.get_ancestry(target, generations)
    if not ancestry.persons:
        raise FamilySearchError("No persons found in ancestry")

    total = len(ancestry.persons)
    _report(on_progress, "fetching_person_details", 0, total, 20)
    persons: list[EnhancedPerson] = []
    for index, person in enumerate(ancestry.persons, start=1):
        _report(on_progress, "fetching_person_details", index, total, 20 + (index * 45) // total)
        persons.append(await _enhance(client, person, include_details, include_notes))

    relationships = ancestry.relationships
    if include_relationship_details and relationships:
        count = len(relationships)
        _report(on_progress, "fetching_relationship_details", 0, count, 65)
        enriched: list[Relationship] = []
        for index, rel in enumerate(relationships, start=1):
            _report(on_progress, "fetching_relationship_details", index, count, 65 + (index * 25) // count)
            enriched.append(await _with_couple_details(client, rel))
        relationships = enriched

    _report(on_progress, "completing_data_fetch", 1, 1, 98)
    logger.info("pedigree_fetched", person_id=target, persons=len(persons), relationships=len(relationships))
    return PedigreeData(
        persons=persons,
        relationships=relationships,
        environment=client.environment,
        ancestry_person_ids=[person.id for person in ancestry.persons],
    )


async def _enhance(
    client: FamilySearchClient, person: EnhancedPerson, include_details: bool, include_notes: bool
) -> EnhancedPerson:
    try:
        update = {}
        if include_details:
            update["full_details"] = await client.get_person_with_details(person.id)
        if include_notes:
            update["notes"] = await client.get_person_notes(person.id)
        return person.model_copy(update=update)
    except FamilySearchAPIError as e:
        logger.warning("person_details_failed", person_id=person.id, error=str(e))
        return person


async def _with_couple_details(client: FamilySearchClient, rel: Relationship) -> Relationship:
    if rel.kind is not RelationshipKind.COUPLE:
        return rel
    try:
        detail = await client.get_couple_relationship(rel.id)
    except FamilySearchAPIError as e:
        logger.warning("relationship_details_failed", relationship_id=rel.id, error=str(e))
        return rel
    if detail is None:
        return rel
    return rel.model_copy(update={"details": RelationshipDetails(facts=detail.facts)})
