"""Exception hierarchy for the FamilySearch SDK."""
from __future__ import annotations

from typing import Any


class FamilySearchError(Exception):
    """Base class for every error raised by this package."""


class ConversionError(FamilySearchError, ValueError):
    """Raised when pedigree data cannot be converted at all."""


class AuthenticationError(FamilySearchError):
    """Raised when an OAuth step fails or no usable token is available."""


class FamilySearchAPIError(FamilySearchError):
    """Raised when an API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response
