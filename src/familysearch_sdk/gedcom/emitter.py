"""Serialize an export plan as GEDCOM 5.5 lines."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from ..environment import Environment
from ..logging import get_logger
from ..models.pedigree import EnhancedPerson
from ..models.person import PersonData, SourceReference
from ..models.relationship import Relationship
from .assign import ExportPlan, PlannedFamily, PlannedSource
from .extract import DatePlace, extract_birth, extract_death, extract_gender, extract_name
from .facts import BIRTH, DEATH, FAMILY_EVENT_TAGS, fact_lines, single_line, tag_for
from .families import FamilyGraph, couple_key
from .urls import person_link, source_web_url

logger = get_logger(__name__)

SUBMITTER_XREF = "@SUBM1@"

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


def gedcom_date(value: date) -> str:
    """``5 MAR 2024``: unpadded day, English month, independent of locale."""
    return f"{value.day} {MONTHS[value.month - 1]} {value.year}"


def header_lines(tree_name: str, export_date: date) -> list[str]:
    return [
        "0 HEAD",
        "1 SOUR FamilySearch",
        "2 VERS 1.0",
        "2 NAME FamilySearch API",
        "1 DEST ANY",
        f"1 DATE {gedcom_date(export_date)}",
        f"1 SUBM {SUBMITTER_XREF}",
        f"1 FILE {tree_name}",
        "1 GEDC",
        "2 VERS 5.5",
        "2 FORM LINEAGE-LINKED",
        "1 CHAR UTF-8",
    ]


def submitter_lines() -> list[str]:
    return [f"0 {SUBMITTER_XREF} SUBM", "1 NAME FamilySearch User"]


def source_lines(planned: PlannedSource, include_links: bool, environment: Environment) -> list[str]:
    source = planned.source
    lines = [f"0 {planned.xref} SOUR"]
    if source.title:
        lines.append(f"1 TITL {single_line(source.title)}")
    if source.citation:
        lines.append(f"1 TEXT {single_line(source.citation)}")
    if include_links and source.url:
        lines.append(f"1 _LINK {source_web_url(source.url, environment)}")
    if source.resource_type:
        lines.append(f"1 NOTE Resource type: {source.resource_type}")
    return lines


def _event_lines(tag: str, event: DatePlace | None) -> list[str]:
    if event is None:
        return []
    lines = [f"1 {tag}"]
    if event.date:
        lines.append(f"2 DATE {event.date}")
    if event.place:
        lines.append(f"2 PLAC {event.place}")
    return lines


def _citation_lines(ref: SourceReference, plan: ExportPlan, person_id: str) -> list[str]:
    planned = plan.sources.get(ref.source_id or "")
    if planned is None:
        logger.debug("citation_skipped", person_id=person_id, description=ref.description)
        return []
    lines = [f"1 SOUR {planned.xref}"]
    for qualifier in ref.qualifiers:
        if qualifier.value:
            label = (qualifier.name or "Qualifier").rsplit("/", 1)[-1]
            lines.append(f"2 NOTE {label}: {single_line(qualifier.value)}")
    if ref.attribution and ref.attribution.change_message:
        lines.append(f"2 NOTE {single_line(ref.attribution.change_message)}")
    return lines


def individual_lines(
    person: EnhancedPerson,
    xref: str,
    plan: ExportPlan,
    include_links: bool = True,
    include_notes: bool = True,
    environment: Environment = Environment.PRODUCTION,
) -> list[str]:
    """One INDI record, without FAMC/FAMS back-references."""
    detail = person.detail
    lines = [f"0 {xref} INDI", f"1 _FSFTID {person.id}"]

    if include_links:
        href = person.person_link or detail.person_link
        persistent = person.persistent_identifier or detail.persistent_identifier
        lines.append(f"1 _FS_LINK {person_link(person.id, href, persistent, environment)}")

    name = extract_name(detail)
    if name:
        lines.append(f"1 NAME {name}")
    gender = extract_gender(detail)
    if gender:
        lines.append(f"1 SEX {gender}")

    lines.extend(_event_lines("BIRT", extract_birth(detail)))
    lines.extend(_event_lines("DEAT", extract_death(detail)))

    for fact in detail.facts:
        if fact.type and fact.type not in (BIRTH, DEATH):
            lines.extend(fact_lines(fact, level=1, include_links=include_links))

    if include_notes and person.notes is not None:
        for note in person.notes.notes:
            if note.text:
                lines.append(f"1 NOTE {single_line(note.text)}")

    for ref in detail.sources:
        lines.extend(_citation_lines(ref, plan, person.id))

    return lines


def orient_spouses(
    first: str, first_gender: str | None, second: str, second_gender: str | None
) -> tuple[str, str]:
    """Return ``(husband, wife)`` for a two-spouse family.

    The first spouse is the husband when he is male or the second spouse is
    female; in every other case, unknown genders included, they swap.
    """
    if first_gender == "M" or second_gender == "F":
        return first, second
    return second, first


def family_events(relationships: Sequence[Relationship], first: str, second: str, include_links: bool) -> list[str]:
    """Family event lines from the first relationship joining the two spouses."""
    key = couple_key(first, second)
    for rel in relationships:
        a, b = rel.person1_id, rel.person2_id
        if not a or not b or couple_key(a, b) != key:
            continue
        lines: list[str] = []
        for fact in rel.all_facts():
            if fact.type and tag_for(fact) in FAMILY_EVENT_TAGS:
                lines.extend(fact_lines(fact, level=1, include_links=include_links))
        return lines
    return []


def family_lines(
    planned: PlannedFamily,
    plan: ExportPlan,
    details: dict[str, PersonData],
    relationships: Sequence[Relationship],
    include_links: bool = True,
) -> list[str]:
    family = planned.family
    spouses = [s for s in family.spouses if s in plan.person_xrefs]
    lines = [f"0 {planned.xref} FAM"]

    if len(spouses) == 2:
        first, second = spouses
        husband, wife = orient_spouses(
            first, extract_gender(details.get(first)), second, extract_gender(details.get(second))
        )
        lines.append(f"1 HUSB {plan.person_xrefs[husband]}")
        lines.append(f"1 WIFE {plan.person_xrefs[wife]}")
        lines.extend(family_events(relationships, first, second, include_links))
    elif len(spouses) == 1:
        role = "HUSB" if extract_gender(details.get(spouses[0])) == "M" else "WIFE"
        lines.append(f"1 {role} {plan.person_xrefs[spouses[0]]}")

    for child in family.children:
        child_xref = plan.person_xrefs.get(child)
        if child_xref:
            lines.append(f"1 CHIL {child_xref}")

    if planned.orphan:
        lines.append("1 _ORPHAN Y")
    return lines


def splice_back_references(
    blocks: dict[str, list[str]], graph: FamilyGraph, plan: ExportPlan
) -> None:
    """Insert FAMC then FAMS lines right after each INDI header line."""
    for child in graph.child_to_parents:
        fam_xref = plan.family_xref_for_child(graph, child)
        if fam_xref is None:
            continue
        block = blocks.get(child)
        if block is None:
            logger.debug("splice_skipped", person_id=child, tag="FAMC")
            continue
        block.insert(1, f"1 FAMC {fam_xref}")

    for planned in plan.families:
        for spouse in planned.family.spouses:
            block = blocks.get(spouse)
            if block is None:
                logger.debug("splice_skipped", person_id=spouse, tag="FAMS")
                continue
            index = 1
            while index < len(block) and block[index].startswith(("1 FAMC ", "1 FAMS ")):
                index += 1
            block.insert(index, f"1 FAMS {planned.xref}")


def emit_document(
    plan: ExportPlan,
    graph: FamilyGraph,
    relationships: Sequence[Relationship],
    tree_name: str,
    export_date: date,
    include_links: bool = True,
    include_notes: bool = True,
    environment: Environment = Environment.PRODUCTION,
) -> list[str]:
    """All document lines from ``0 HEAD`` to ``0 TRLR``."""
    lines = header_lines(tree_name, export_date)
    lines.extend(submitter_lines())

    for planned in plan.sources.values():
        lines.extend(source_lines(planned, include_links, environment))

    blocks = {
        person.id: individual_lines(
            person,
            plan.person_xrefs[person.id],
            plan,
            include_links=include_links,
            include_notes=include_notes,
            environment=environment,
        )
        for person in plan.persons
    }

    details = {person.id: person.detail for person in plan.persons}
    family_records = [
        family_lines(planned, plan, details, relationships, include_links) for planned in plan.families
    ]

    splice_back_references(blocks, graph, plan)

    for block in blocks.values():
        lines.extend(block)
    for record in family_records:
        lines.extend(record)

    lines.append("0 TRLR")
    return lines
