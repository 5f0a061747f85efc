"""Person records as returned by the FamilySearch tree API."""
from __future__ import annotations

from pydantic import BaseModel, Field

PERSISTENT_IDENTIFIER = "http://gedcomx.org/Persistent"


class Href(BaseModel):
    href: str | None = None


class DateInfo(BaseModel):
    """Date information."""

    original: str | None = None
    formal: str | None = None


class PlaceInfo(BaseModel):
    """Place information."""

    original: str | None = None


class Qualifier(BaseModel):
    name: str | None = None
    value: str | None = None


class FactLinks(BaseModel):
    conclusion: Href | None = None
    person: Href | None = None

    @property
    def href(self) -> str | None:
        """The conclusion link, falling back to the owning person link."""
        if self.conclusion and self.conclusion.href:
            return self.conclusion.href
        if self.person and self.person.href:
            return self.person.href
        return None


class PersonFact(BaseModel):
    """A dated/placed event or attribute (birth, marriage, occupation, ...)."""

    type: str | None = None
    date: DateInfo | None = None
    place: PlaceInfo | None = None
    value: str | None = None
    links: FactLinks | None = None
    qualifiers: list[Qualifier] = []

    @property
    def type_name(self) -> str | None:
        """Last segment of the fact type URI, e.g. ``Birth``."""
        if not self.type:
            return None
        return self.type.rsplit("/", 1)[-1].removeprefix("data:,") or None


class NamePart(BaseModel):
    """A part of a person's name (given, surname, etc.)."""

    type: str | None = None
    value: str | None = None


class NameForm(BaseModel):
    """A form of a person's name."""

    model_config = {"populate_by_name": True}

    full_text: str | None = Field(None, alias="fullText")
    parts: list[NamePart] = []

    def part(self, kind: str) -> str | None:
        """First part value whose type mentions ``kind`` (``Given``, ``Surname``)."""
        for part in self.parts:
            if part.type and kind in part.type and part.value:
                return part.value
        return None


class Name(BaseModel):
    """A person's name."""

    model_config = {"populate_by_name": True}

    name_forms: list[NameForm] = Field(default_factory=list, alias="nameForms")
    preferred: bool = False


class Gender(BaseModel):
    """Gender information."""

    type: str | None = None


class PersonDisplay(BaseModel):
    """Display summary the API attaches to person records."""

    model_config = {"populate_by_name": True}

    name: str | None = None
    gender: str | None = None
    birth_date: str | None = Field(None, alias="birthDate")
    birth_place: str | None = Field(None, alias="birthPlace")
    death_date: str | None = Field(None, alias="deathDate")
    death_place: str | None = Field(None, alias="deathPlace")
    lifespan: str | None = None


class Attribution(BaseModel):
    model_config = {"populate_by_name": True}

    change_message: str | None = Field(None, alias="changeMessage")


class SourceReference(BaseModel):
    """A person's reference to a source description."""

    model_config = {"populate_by_name": True}

    description: str | None = None
    description_id: str | None = Field(None, alias="descriptionId")
    qualifiers: list[Qualifier] = []
    attribution: Attribution | None = None

    @property
    def source_id(self) -> str | None:
        """Identifier of the referenced source description, if resolvable."""
        if self.description_id:
            return self.description_id
        if not self.description:
            return None
        if self.description.startswith("#"):
            return self.description[1:] or None
        tail = self.description.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
        return tail or None


class PersonData(BaseModel):
    """Person record, either the ancestry summary or the full detail form."""

    id: str
    display: PersonDisplay | None = None
    names: list[Name] = []
    gender: Gender | None = None
    facts: list[PersonFact] = []
    links: dict[str, Href] = {}
    identifiers: dict[str, list[str]] = {}
    sources: list[SourceReference] = []

    @property
    def person_link(self) -> str | None:
        link = self.links.get("person")
        return link.href if link else None

    @property
    def persistent_identifier(self) -> str | None:
        values = self.identifiers.get(PERSISTENT_IDENTIFIER) or []
        return values[0] if values else None

    def facts_of_type(self, type_uri: str) -> list[PersonFact]:
        return [fact for fact in self.facts if fact.type == type_uri]


class Note(BaseModel):
    subject: str | None = None
    text: str | None = None


class NotesHolder(BaseModel):
    notes: list[Note] = []


class PersonNotes(BaseModel):
    """Response of the person notes endpoint."""

    persons: list[NotesHolder] = []

    @property
    def notes(self) -> list[Note]:
        return self.persons[0].notes if self.persons else []


class FamilySearchUser(BaseModel):
    """The signed-in FamilySearch user."""

    model_config = {"populate_by_name": True}

    id: str
    contact_name: str | None = Field(None, alias="contactName")
    display_name: str | None = Field(None, alias="displayName")
    given_name: str | None = Field(None, alias="givenName")
    family_name: str | None = Field(None, alias="familyName")
    email: str | None = None
    gender: str | None = None
    person_id: str | None = Field(None, alias="personId")
    tree_user_id: str | None = Field(None, alias="treeUserId")

    @property
    def tree_person_id(self) -> str:
        return self.person_id or self.tree_user_id or self.id
