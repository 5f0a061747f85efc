"""FamilySearch pedigree to GEDCOM 5.5 conversion.

Stages, each a pure function over the previous stage's output:

- ``aggregate``: merge and deduplicate relationship records
- ``families``: rebuild couple and single-parent families
- ``connectivity``: find what hangs off the root ancestry
- ``assign``: drop orphan/invalid records and number the rest
- ``emitter``: write HEAD, SUBM, SOUR, INDI, FAM and TRLR records
"""
from __future__ import annotations

from .aggregate import merge_relationships, split_child_and_parents
from .assign import ExportPlan, PlannedFamily, PlannedSource, plan_export
from .connectivity import Connectivity, resolve_connectivity
from .converter import (
    DEFAULT_TREE_NAME,
    GedcomOptions,
    convert_familysearch_to_gedcom,
    convert_to_gedcom,
    export_gedcom,
)
from .emitter import emit_document, orient_spouses
from .extract import DatePlace, extract_birth, extract_death, extract_gender, extract_name
from .facts import FACT_TAGS, fact_lines, format_date, tag_for
from .families import Family, FamilyGraph, build_family_graph, couple_key, single_key
from .urls import person_link, source_web_url, to_web_url

__all__ = [
    "DEFAULT_TREE_NAME",
    "Connectivity",
    "DatePlace",
    "ExportPlan",
    "FACT_TAGS",
    "Family",
    "FamilyGraph",
    "GedcomOptions",
    "PlannedFamily",
    "PlannedSource",
    "build_family_graph",
    "convert_familysearch_to_gedcom",
    "convert_to_gedcom",
    "couple_key",
    "emit_document",
    "export_gedcom",
    "extract_birth",
    "extract_death",
    "extract_gender",
    "extract_name",
    "fact_lines",
    "format_date",
    "merge_relationships",
    "orient_spouses",
    "person_link",
    "plan_export",
    "resolve_connectivity",
    "single_key",
    "source_web_url",
    "split_child_and_parents",
    "tag_for",
    "to_web_url",
]
