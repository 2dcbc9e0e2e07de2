"""
Option objects passed into `EntityRepository`.

- QueryFilterOptions: raw SQL predicate fragments for the query-builder lookups.
- FindOptions: store-native lookup options (equality filters, ordering, paging, eager relations).
- WriteOptions: save / update / delete behaviour.
"""
from dataclasses import dataclass, field
from typing import Any


@dataclass
class QueryFilterOptions:
    """
    Intermediate representation of a dynamically built predicate.

    `where` is the base predicate; each `and_where` fragment is AND-ed onto the
    accumulated predicate and each `or_where` fragment is OR-ed onto it, in
    that order. `limit` is applied only when positive.
    """

    where: str = ""
    and_where: list[str] = field(default_factory=list)
    or_where: list[str] = field(default_factory=list)
    limit: int | None = None


@dataclass
class FindOptions:
    """
    Lookup options understood by `EntityRepository.get_all` / `find_*_by_filter`.

    Example:
        FindOptions(where={"is_active": True}, order_by=["-created_at"], limit=20, relations=["books"])
    """

    where: dict[str, Any] = field(default_factory=dict)
    # Column names; prefix with "-" for descending order.
    order_by: list[str] = field(default_factory=list)
    offset: int | None = None
    limit: int | None = None
    # Relationship attribute names to eager-load with selectinload().
    relations: list[str] = field(default_factory=list)


@dataclass
class WriteOptions:
    # Repositories only flush by default; commit=True ends the transaction inside the call.
    commit: bool = False
