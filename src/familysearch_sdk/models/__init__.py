"""Pydantic models for FamilySearch API records."""

from .pedigree import EnhancedPerson, PedigreeData, PersonWithRelationships
from .person import (
    Attribution,
    DateInfo,
    FactLinks,
    FamilySearchUser,
    Gender,
    Href,
    Name,
    NameForm,
    NamePart,
    Note,
    PersonData,
    PersonDisplay,
    PersonFact,
    PersonNotes,
    PlaceInfo,
    Qualifier,
    SourceReference,
)
from .relationship import (
    ChildAndParentsRelationship,
    Relationship,
    RelationshipDetails,
    RelationshipKind,
    ResourceReference,
)
from .source import SourceDescription, TextValue

__all__ = [
    "Attribution",
    "ChildAndParentsRelationship",
    "DateInfo",
    "EnhancedPerson",
    "FactLinks",
    "FamilySearchUser",
    "Gender",
    "Href",
    "Name",
    "NameForm",
    "NamePart",
    "Note",
    "PedigreeData",
    "PersonData",
    "PersonDisplay",
    "PersonFact",
    "PersonNotes",
    "PersonWithRelationships",
    "PlaceInfo",
    "Qualifier",
    "Relationship",
    "RelationshipDetails",
    "RelationshipKind",
    "ResourceReference",
    "SourceDescription",
    "SourceReference",
    "TextValue",
]
