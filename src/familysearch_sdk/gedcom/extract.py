"""Derive display-ready values from person records.

Structured fields win; the ``display`` summary is the fallback.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..models.person import PersonData
from .facts import BIRTH, DEATH, format_date


@dataclass(frozen=True)
class DatePlace:
    date: str | None = None
    place: str | None = None


def extract_name(person: PersonData | None) -> str | None:
    """GEDCOM name (``Given /Surname/``), full text, or display name."""
    if person is None:
        return None

    if person.names and person.names[0].name_forms:
        form = person.names[0].name_forms[0]
        given = form.part("Given") or ""
        surname = form.part("Surname") or ""
        if given or surname:
            return f"{given} /{surname}/".strip()
        if form.full_text:
            return form.full_text

    if person.display and person.display.name:
        return person.display.name
    return None


def extract_gender(person: PersonData | None) -> str | None:
    """``M``, ``F`` or None when unknown."""
    if person is None:
        return None
    gender_type = person.gender.type if person.gender else None
    if gender_type:
        if "Female" in gender_type:
            return "F"
        if "Male" in gender_type:
            return "M"
    display_gender = person.display.gender if person.display else None
    if display_gender == "Female":
        return "F"
    if display_gender == "Male":
        return "M"
    return None


def extract_birth(person: PersonData | None) -> DatePlace | None:
    return _extract_event(person, BIRTH)


def extract_death(person: PersonData | None) -> DatePlace | None:
    return _extract_event(person, DEATH)


def _extract_event(person: PersonData | None, fact_type: str) -> DatePlace | None:
    if person is None:
        return None

    date = place = None
    facts = person.facts_of_type(fact_type)
    if facts:
        date = format_date(facts[0].date)
        place = facts[0].place.original if facts[0].place else None

    display = person.display
    if display is not None:
        if fact_type == BIRTH:
            date = date or display.birth_date
            place = place or display.birth_place
        else:
            date = date or display.death_date
            place = place or display.death_place

    if not date and not place:
        return None
    return DatePlace(date=date, place=place)
