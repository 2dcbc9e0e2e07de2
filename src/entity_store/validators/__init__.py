from .entity_validators import (
    ValidationIssue,
    EntityValidator,
    ColumnConstraintValidator,
    SchemaValidator,
    entity_values,
    find_unknown_model_kwargs,
    get_required_columns,
)

__all__ = [
    "ValidationIssue",
    "EntityValidator",
    "ColumnConstraintValidator",
    "SchemaValidator",
    "entity_values",
    "find_unknown_model_kwargs",
    "get_required_columns",
]
