"""Map GEDCOM X fact types onto GEDCOM 5.5 event and attribute tags."""
from __future__ import annotations

import re
from types import MappingProxyType

from ..models.person import DateInfo, PersonFact
from .urls import to_web_url

BIRTH = "http://gedcomx.org/Birth"
DEATH = "http://gedcomx.org/Death"

GENERIC_EVENT_TAG = "EVEN"

FACT_TAGS = MappingProxyType({
    "http://gedcomx.org/Adoption": "ADOP",
    "http://gedcomx.org/AdultChristening": "CHRA",
    "http://gedcomx.org/Annulment": "ANUL",
    "http://gedcomx.org/Baptism": "BAPM",
    "http://gedcomx.org/BarMitzvah": "BARM",
    "http://gedcomx.org/BatMitzvah": "BASM",
    "http://gedcomx.org/Burial": "BURI",
    "http://gedcomx.org/Caste": "CAST",
    "http://gedcomx.org/Census": "CENS",
    "http://gedcomx.org/Christening": "CHR",
    "http://gedcomx.org/Confirmation": "CONF",
    "http://gedcomx.org/Cremation": "CREM",
    "http://gedcomx.org/Divorce": "DIV",
    "http://gedcomx.org/DivorceFiling": "DIVF",
    "http://gedcomx.org/Education": "EDUC",
    "http://gedcomx.org/Emigration": "EMIG",
    "http://gedcomx.org/Engagement": "ENGA",
    "http://gedcomx.org/FirstCommunion": "FCOM",
    "http://gedcomx.org/Graduation": "GRAD",
    "http://gedcomx.org/Immigration": "IMMI",
    "http://gedcomx.org/Marriage": "MARR",
    "http://gedcomx.org/MarriageBanns": "MARB",
    "http://gedcomx.org/MarriageContract": "MARC",
    "http://gedcomx.org/MarriageLicense": "MARL",
    "http://gedcomx.org/MarriageSettlement": "MARS",
    "http://gedcomx.org/Nationality": "NATI",
    "http://gedcomx.org/Naturalization": "NATU",
    "http://gedcomx.org/NumberOfChildren": "NCHI",
    "http://gedcomx.org/NumberOfMarriages": "NMR",
    "http://gedcomx.org/Occupation": "OCCU",
    "http://gedcomx.org/Ordination": "ORDN",
    "http://gedcomx.org/PhysicalDescription": "DSCR",
    "http://gedcomx.org/Probate": "PROB",
    "http://gedcomx.org/Property": "PROP",
    "http://gedcomx.org/Religion": "RELI",
    "http://gedcomx.org/Residence": "RESI",
    "http://gedcomx.org/Retirement": "RETI",
    "http://gedcomx.org/Will": "WILL",
})

# Tags whose fact value belongs on the tag line itself
ATTRIBUTE_TAGS = frozenset({"CAST", "DSCR", "EDUC", "NATI", "NCHI", "NMR", "OCCU", "PROP", "RELI"})

FAMILY_EVENT_TAGS = frozenset({"ANUL", "DIV", "DIVF", "ENGA", "MARB", "MARC", "MARL", "MARR", "MARS"})

_SIGN = re.compile(r"^[-+]")


def tag_for(fact: PersonFact) -> str:
    """GEDCOM tag for a fact; unmapped types become a generic ``EVEN``."""
    return FACT_TAGS.get(fact.type or "", GENERIC_EVENT_TAG)


def format_date(date: DateInfo | None) -> str | None:
    """Formal date (else original) with any leading sign removed."""
    if date is None:
        return None
    text = date.formal or date.original
    if not text:
        return None
    return _SIGN.sub("", text)


def fact_lines(fact: PersonFact, level: int = 1, include_links: bool = True) -> list[str]:
    """Render one fact as a GEDCOM event block rooted at ``level``.

    Returns an empty list for facts without a type.
    """
    if not fact.type:
        return []

    tag = tag_for(fact)
    sub = level + 1
    lines: list[str] = []

    if tag in ATTRIBUTE_TAGS and fact.value:
        lines.append(f"{level} {tag} {single_line(fact.value)}")
    else:
        lines.append(f"{level} {tag}")
    if tag == GENERIC_EVENT_TAG and fact.type_name:
        lines.append(f"{sub} TYPE {fact.type_name}")

    if include_links and fact.links and fact.links.href:
        lines.append(f"{sub} _FS_LINK {to_web_url(fact.links.href)}")

    date = format_date(fact.date)
    if date:
        lines.append(f"{sub} DATE {date}")
    if fact.place and fact.place.original:
        lines.append(f"{sub} PLAC {fact.place.original}")

    if fact.value and tag not in ATTRIBUTE_TAGS:
        lines.append(f"{sub} NOTE {single_line(fact.value)}")

    return lines


def single_line(text: str) -> str:
    return " ".join(text.splitlines()).strip()
