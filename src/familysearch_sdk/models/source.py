"""Source descriptions attached to person detail responses."""
from __future__ import annotations

from pydantic import BaseModel, Field

from .person import Href


class TextValue(BaseModel):
    lang: str | None = None
    value: str | None = None


class SourceDescription(BaseModel):
    """A source (record, document, book) cited by one or more persons."""

    model_config = {"populate_by_name": True}

    id: str
    titles: list[TextValue] = []
    citations: list[TextValue] = []
    about: str | None = None
    resource_type: str | None = Field(None, alias="resourceType")
    links: dict[str, Href] = {}

    @property
    def title(self) -> str | None:
        return next((t.value for t in self.titles if t.value), None)

    @property
    def citation(self) -> str | None:
        return next((c.value for c in self.citations if c.value), None)

    @property
    def url(self) -> str | None:
        """Where the source lives: ``about`` first, then the description link."""
        if self.about:
            return self.about
        link = self.links.get("description")
        return link.href if link else None
