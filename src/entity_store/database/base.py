"""
Declarative base for every entity handled by the store.

Entities managed by `EntityRepository` must derive from `Base` and expose an
integer primary key named `id`.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# Naming convention for constraints and indexes.
# Stable constraint names let the integrity classifier report them in error details.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


def get_mapped_class(entity_name: str) -> type[Base] | None:
    """
    Look up a mapped class registered on `Base` by its class name.

    Returns None when no entity with that name has been declared (or imported yet).
    """
    for mapper in Base.registry.mappers:
        if mapper.class_.__name__ == entity_name:
            return mapper.class_
    return None
