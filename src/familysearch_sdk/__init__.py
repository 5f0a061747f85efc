"""FamilySearch SDK - API client and pedigree-to-GEDCOM conversion."""

__version__ = "0.3.0"

from .environment import Environment
from .errors import AuthenticationError, ConversionError, FamilySearchAPIError, FamilySearchError
from .gedcom import GedcomOptions, convert_to_gedcom, export_gedcom
from .models import PedigreeData


# Lazy imports keep httpx out of pure conversion use
def __getattr__(name: str):
    if name in ("FamilySearchClient", "ClientConfig"):
        from . import client
        return getattr(client, name)
    if name == "fetch_pedigree":
        from .tree import fetch_pedigree
        return fetch_pedigree
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AuthenticationError",
    "ConversionError",
    "Environment",
    "FamilySearchAPIError",
    "FamilySearchError",
    "GedcomOptions",
    "PedigreeData",
    "__version__",
    "convert_to_gedcom",
    "export_gedcom",
]
