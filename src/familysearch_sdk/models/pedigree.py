"""Pedigree payloads assembled by the fetch layer and consumed by the converter."""
from __future__ import annotations

from pydantic import BaseModel, Field

from ..environment import Environment
from .person import PersonData, PersonNotes
from .relationship import ChildAndParentsRelationship, Relationship
from .source import SourceDescription


class PersonWithRelationships(BaseModel):
    """Response of ``/platform/tree/persons/{id}?sourceDescriptions=true``."""

    model_config = {"populate_by_name": True}

    persons: list[PersonData] = []
    relationships: list[Relationship] = []
    child_and_parents_relationships: list[ChildAndParentsRelationship] = Field(
        default_factory=list, alias="childAndParentsRelationships"
    )
    source_descriptions: list[SourceDescription] = Field(
        default_factory=list, alias="sourceDescriptions"
    )


class EnhancedPerson(PersonData):
    """A pedigree person plus its separately fetched details and notes."""

    model_config = {"populate_by_name": True}

    full_details: PersonWithRelationships | None = Field(None, alias="fullDetails")
    notes: PersonNotes | None = None

    @property
    def detail(self) -> PersonData:
        """The detailed record when one was fetched, otherwise this record."""
        if self.full_details and self.full_details.persons:
            return self.full_details.persons[0]
        return self


class PedigreeData(BaseModel):
    """Everything the GEDCOM converter needs, already in memory."""

    model_config = {"populate_by_name": True}

    persons: list[EnhancedPerson] = []
    relationships: list[Relationship] = []
    environment: Environment | None = None
    ancestry_person_ids: list[str] = Field(default_factory=list, alias="ancestryPersonIds")
