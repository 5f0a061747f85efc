"""Relationship records: couples, parent-child edges and composite records."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .person import PersonFact

COUPLE_TYPE = "http://gedcomx.org/Couple"
PARENT_CHILD_TYPE = "http://gedcomx.org/ParentChild"


class RelationshipKind(str, Enum):
    COUPLE = "couple"
    PARENT_CHILD = "parent_child"
    OTHER = "other"


class ResourceReference(BaseModel):
    """Reference to a person by id (``resourceId``) and/or URI."""

    model_config = {"populate_by_name": True}

    resource_id: str | None = Field(None, alias="resourceId")
    resource: str | None = None


class RelationshipPersonDetail(BaseModel):
    facts: list[PersonFact] = []


class RelationshipDetails(BaseModel):
    """Detail blob fetched separately for couple relationships."""

    facts: list[PersonFact] = []
    persons: list[RelationshipPersonDetail] = []


class Relationship(BaseModel):
    """A couple or parent-child relationship.

    For ``ParentChild`` records ``person1`` is the parent, ``person2`` the
    child and ``parent2`` the optional co-parent.
    """

    id: str
    type: str | None = None
    person1: ResourceReference | None = None
    person2: ResourceReference | None = None
    parent1: ResourceReference | None = None
    parent2: ResourceReference | None = None
    child: ResourceReference | None = None
    facts: list[PersonFact] = []
    details: RelationshipDetails | None = None

    @property
    def kind(self) -> RelationshipKind:
        if self.type and "Couple" in self.type:
            return RelationshipKind.COUPLE
        if self.type and "ParentChild" in self.type:
            return RelationshipKind.PARENT_CHILD
        return RelationshipKind.OTHER

    @property
    def person1_id(self) -> str | None:
        return self.person1.resource_id if self.person1 else None

    @property
    def person2_id(self) -> str | None:
        return self.person2.resource_id if self.person2 else None

    @property
    def parent2_id(self) -> str | None:
        return self.parent2.resource_id if self.parent2 else None

    def all_facts(self) -> list[PersonFact]:
        """Facts from the record itself, ``details.facts`` and ``details.persons[].facts``."""
        facts = list(self.facts)
        if self.details:
            facts.extend(self.details.facts)
            for person in self.details.persons:
                facts.extend(person.facts)
        return facts


class ChildAndParentsRelationship(BaseModel):
    """Composite record linking a child to up to two parents."""

    model_config = {"populate_by_name": True}

    id: str
    parent1: ResourceReference | None = None
    parent2: ResourceReference | None = None
    child: ResourceReference | None = None
    parent1_facts: list[PersonFact] = Field(default_factory=list, alias="parent1Facts")
    parent2_facts: list[PersonFact] = Field(default_factory=list, alias="parent2Facts")

    @property
    def parent1_id(self) -> str | None:
        return self.parent1.resource_id if self.parent1 else None

    @property
    def parent2_id(self) -> str | None:
        return self.parent2.resource_id if self.parent2 else None

    @property
    def child_id(self) -> str | None:
        return self.child.resource_id if self.child else None
