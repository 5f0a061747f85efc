"""Shared pytest fixtures."""
from __future__ import annotations

from datetime import date

import pytest

from familysearch_sdk.gedcom import GedcomOptions


@pytest.fixture
def options() -> GedcomOptions:
    """Options with a fixed header date."""
    return GedcomOptions(export_date=date(2024, 3, 5))
