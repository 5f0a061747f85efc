"""Builders for FamilySearch-shaped test records."""
from __future__ import annotations

from typing import Any

from familysearch_sdk.models import EnhancedPerson, PedigreeData, Relationship

GENDERS = {"M": "http://gedcomx.org/Male", "F": "http://gedcomx.org/Female"}


def fact(kind: str, date: str | None = None, place: str | None = None, value: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {"type": f"http://gedcomx.org/{kind}"}
    if date:
        data["date"] = {"original": date}
    if place:
        data["place"] = {"original": place}
    if value:
        data["value"] = value
    return data


def person(
    pid: str,
    given: str | None = None,
    surname: str | None = None,
    gender: str | None = None,
    facts: list[dict[str, Any]] | None = None,
    **details: Any,
) -> EnhancedPerson:
    """A pedigree person; ``details`` lands in ``fullDetails`` next to the person record."""
    record: dict[str, Any] = {"id": pid, "facts": facts or []}
    if given or surname:
        parts = []
        if given:
            parts.append({"type": "http://gedcomx.org/Given", "value": given})
        if surname:
            parts.append({"type": "http://gedcomx.org/Surname", "value": surname})
        record["names"] = [{"nameForms": [{"fullText": f"{given or ''} {surname or ''}".strip(), "parts": parts}]}]
    if gender:
        record["gender"] = {"type": GENDERS[gender]}
    sources = details.pop("sources", None)
    if sources is not None:
        record["sources"] = sources
    if details or sources is not None:
        return EnhancedPerson.model_validate({**record, "fullDetails": {"persons": [record], **details}})
    return EnhancedPerson.model_validate(record)


def couple(rid: str, a: str, b: str, facts: list[dict[str, Any]] | None = None) -> Relationship:
    return Relationship.model_validate({
        "id": rid,
        "type": "http://gedcomx.org/Couple",
        "person1": {"resourceId": a},
        "person2": {"resourceId": b},
        "facts": facts or [],
    })


def parent_child(rid: str, parent: str, child: str, parent2: str | None = None) -> Relationship:
    data: dict[str, Any] = {
        "id": rid,
        "type": "http://gedcomx.org/ParentChild",
        "person1": {"resourceId": parent},
        "person2": {"resourceId": child},
    }
    if parent2:
        data["parent2"] = {"resourceId": parent2}
    return Relationship.model_validate(data)


def pedigree(persons: list[EnhancedPerson], relationships: list[Relationship], ancestry: list[str] | None = None) -> PedigreeData:
    return PedigreeData(persons=persons, relationships=relationships, ancestry_person_ids=ancestry or [])


def records(text: str, kind: str) -> list[str]:
    """Level-0 header lines of the given record kind."""
    return [line for line in text.splitlines() if line.startswith("0 @") and line.endswith(f" {kind}")]


def block(text: str, xref: str) -> list[str]:
    """Lines of the level-0 record ``xref`` (header included)."""
    lines = text.splitlines()
    start = next(i for i, line in enumerate(lines) if line.startswith(f"0 {xref} "))
    end = next((i for i in range(start + 1, len(lines)) if lines[i].startswith("0 ")), len(lines))
    return lines[start:end]
