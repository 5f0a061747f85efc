"""Convert FamilySearch pedigree data into a GEDCOM 5.5 document."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ..environment import Environment
from ..errors import ConversionError
from ..logging import get_logger
from ..models.pedigree import PedigreeData
from .aggregate import merge_relationships
from .assign import plan_export
from .connectivity import resolve_connectivity
from .emitter import emit_document
from .families import build_family_graph

logger = get_logger(__name__)

DEFAULT_TREE_NAME = "FamilySearch Import"


class GedcomOptions(BaseModel):
    """Options for GEDCOM conversion."""

    model_config = {"extra": "forbid"}

    tree_name: str = Field(default=DEFAULT_TREE_NAME, description="Written to the header FILE line")
    include_links: bool = Field(default=True, description="Emit FamilySearch website links")
    include_notes: bool = Field(default=True, description="Emit person notes")
    environment: Environment = Field(default=Environment.PRODUCTION)
    allow_orphan_families: bool = Field(
        default=False, description="Keep families not connected to the ancestry"
    )
    export_date: date | None = Field(default=None, description="Header date; today when unset")


def convert_to_gedcom(
    pedigree: PedigreeData | dict[str, Any],
    options: GedcomOptions | None = None,
    ancestry_ids: Iterable[str] | None = None,
) -> str:
    """Convert FamilySearch pedigree data to GEDCOM 5.5 text.

    Args:
        pedigree: Persons and relationships already fetched from FamilySearch,
            as a model or its raw JSON form
        options: Conversion options (defaults when None)
        ancestry_ids: Root ancestry person ids; overrides
            ``pedigree.ancestry_person_ids``. When empty every family counts
            as connected.

    Returns:
        Newline-joined GEDCOM lines, from ``0 HEAD`` to ``0 TRLR``

    Raises:
        ConversionError: If the pedigree has no persons
    """
    if isinstance(pedigree, dict):
        pedigree = PedigreeData.model_validate(pedigree)
    if pedigree is None or not pedigree.persons:
        raise ConversionError("Invalid FamilySearch data: no persons found")

    options = options or GedcomOptions()
    seed = list(ancestry_ids) if ancestry_ids is not None else list(pedigree.ancestry_person_ids)

    relationships = merge_relationships(pedigree.relationships, pedigree.persons)
    graph = build_family_graph(relationships, (person.id for person in pedigree.persons))
    connectivity = resolve_connectivity(graph, seed)
    plan = plan_export(
        pedigree.persons,
        graph,
        connectivity,
        allow_orphan_families=options.allow_orphan_families,
    )

    lines = emit_document(
        plan,
        graph,
        relationships,
        tree_name=options.tree_name,
        export_date=options.export_date or datetime.now(UTC).date(),
        include_links=options.include_links,
        include_notes=options.include_notes,
        environment=options.environment,
    )
    logger.info(
        "gedcom_converted",
        persons=len(plan.persons),
        families=len(plan.families),
        sources=len(plan.sources),
        dropped_persons=len(pedigree.persons) - len(plan.persons),
    )
    return "\n".join(lines)


def export_gedcom(
    pedigree: PedigreeData,
    out_file: Path,
    options: GedcomOptions | None = None,
    ancestry_ids: Iterable[str] | None = None,
) -> Path:
    """Convert and write the document to ``out_file`` (UTF-8), creating parent directories."""
    text = convert_to_gedcom(pedigree, options, ancestry_ids)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")
    return out_file


# Alias kept for callers using the FamilySearch-prefixed name
convert_familysearch_to_gedcom = convert_to_gedcom
