"""
entity_store: generic async CRUD, filtering and search over SQLAlchemy entities.

    from entity_store import EntityRepository, EntityService, EntityHooks, SearchTerm

    repo = EntityRepository(Author, session)
    service = EntityService(repo)
    authors = await service.search(10, [{"field": "name", "value": "Ada"}])
"""

from .exceptions import (
    ErrorKind,
    StoreError,
    BadRequestError,
    NotFoundError,
    InternalError,
)
from .models import SearchTerm, QueryFilterOptions, FindOptions, WriteOptions
from .repositories import EntityRepository
from .services import EntityHooks, EntityService, build_search_filter
from .validators import (
    ValidationIssue,
    EntityValidator,
    ColumnConstraintValidator,
    SchemaValidator,
)

__all__ = [
    "ErrorKind",
    "StoreError",
    "BadRequestError",
    "NotFoundError",
    "InternalError",
    "SearchTerm",
    "QueryFilterOptions",
    "FindOptions",
    "WriteOptions",
    "EntityRepository",
    "EntityService",
    "EntityHooks",
    "build_search_filter",
    "ValidationIssue",
    "EntityValidator",
    "ColumnConstraintValidator",
    "SchemaValidator",
]
