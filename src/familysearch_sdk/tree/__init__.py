"""Tree helpers that assemble pedigree data from the API."""

from .pedigree import ProgressCallback, ProgressUpdate, fetch_pedigree

__all__ = ["ProgressCallback", "ProgressUpdate", "fetch_pedigree"]
