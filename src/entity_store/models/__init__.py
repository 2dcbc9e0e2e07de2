r"""
Value objects passed across the repository / service boundary.

Example:
    from entity_store.models import SearchTerm, QueryFilterOptions, FindOptions, WriteOptions
"""

from .search_term import SearchTerm
from .options import QueryFilterOptions, FindOptions, WriteOptions

__all__ = [
    "SearchTerm",
    "QueryFilterOptions",
    "FindOptions",
    "WriteOptions",
]
