"""
Entity validation capability used by `EntityService.is_valid`.

A validator inspects one entity (mapped instance or plain mapping) and returns
the list of violations it found; an empty list means valid. Validators never
raise for invalid data; the service turns issues into a `BadRequestError`.

Two implementations ship with the package:
  - ColumnConstraintValidator: checks the SQLAlchemy table metadata
    (NOT NULL columns without defaults, value types, String lengths, unknown keys).
  - SchemaValidator: runs a pydantic model against the entity's values.
"""
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError
from sqlalchemy import JSON, String, inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.sql.elements import ClauseElement


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    constraint: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@runtime_checkable
class EntityValidator(Protocol):
    def validate(self, entity: Any, *, partial: bool = False) -> list[ValidationIssue]:
        """Return violations; `partial=True` checks only the values that are present."""
        ...


def entity_values(entity: Any) -> dict[str, Any]:
    """
    Return the currently set values of an entity without triggering lazy loads.

    - mappings are copied as-is
    - mapped instances expose only their loaded attribute state
    - any other object falls back to its __dict__
    """
    if isinstance(entity, Mapping):
        return dict(entity)
    try:
        state = sa_inspect(entity)
    except NoInspectionAvailable:
        return {k: v for k, v in vars(entity).items() if not k.startswith("_")}
    return {k: v for k, v in state.dict.items() if not k.startswith("_")}


def find_unknown_model_kwargs(model, kwargs: Mapping[str, Any]) -> list[str]:
    """
    Return the keys that are not mapped attributes (columns or relationships) of `model`.
    """
    mapper = sa_inspect(model)
    allowed = {attr.key for attr in mapper.attrs}
    return [k for k in kwargs.keys() if k not in allowed]


def get_required_columns(model) -> list[str]:
    """
    Attribute keys of columns that are NOT NULL, have no client/server default
    and are not primary keys (ids are assigned by the store).
    """
    required = []
    for attr in sa_inspect(model).column_attrs:
        col = attr.columns[0]
        has_default = col.default is not None or col.server_default is not None
        if not col.nullable and not has_default and not col.primary_key:
            required.append(attr.key)
    return required


def column_python_type(col_type) -> type | None:
    """
    The Python type a column binds, or None when it cannot be checked
    (no `python_type`, JSON documents, or plain `object`).
    """
    if isinstance(col_type, JSON):
        return None
    try:
        python_type = col_type.python_type
    except NotImplementedError:
        return None
    return None if python_type is object else python_type


def matches_python_type(value: Any, python_type: type) -> bool:
    if isinstance(value, ClauseElement):
        return True
    if python_type is bool:
        return isinstance(value, bool)
    if issubclass(python_type, numbers.Number):
        return isinstance(value, numbers.Number) and not isinstance(value, bool)
    return isinstance(value, python_type)


class ColumnConstraintValidator:
    """
    Validate an entity against its table metadata.

    Foreign-key columns count as provided when the matching relationship is set
    (e.g. `book.author = author` before `author_id` is known).
    """

    def __init__(self, model):
        self.model = model

    def validate(self, entity: Any, *, partial: bool = False) -> list[ValidationIssue]:
        values = entity_values(entity)
        issues: list[ValidationIssue] = []

        if isinstance(entity, Mapping):
            for key in find_unknown_model_kwargs(self.model, entity):
                issues.append(ValidationIssue(key, "unknown_field", f"{key} is not a field of {self.model.__name__}"))

        mapper = sa_inspect(self.model)

        satisfied: set[str] = set()
        for rel in mapper.relationships:
            if values.get(rel.key) is not None:
                satisfied.update(c.key for c in rel.local_columns)

        if not partial:
            for key in get_required_columns(self.model):
                if values.get(key) is None and key not in satisfied:
                    issues.append(ValidationIssue(key, "required", f"{key} is required"))

        for attr in mapper.column_attrs:
            value = values.get(attr.key)
            col_type = attr.columns[0].type
            if value is None:
                continue
            python_type = column_python_type(col_type)
            if python_type is not None and not matches_python_type(value, python_type):
                issues.append(
                    ValidationIssue(
                        attr.key,
                        "type",
                        f"{attr.key} must be of type {python_type.__name__}",
                    )
                )
                continue
            if isinstance(value, str) and isinstance(col_type, String) and col_type.length:
                if len(value) > col_type.length:
                    issues.append(
                        ValidationIssue(
                            attr.key,
                            "max_length",
                            f"{attr.key} must be at most {col_type.length} characters",
                        )
                    )

        return issues


class SchemaValidator:
    """
    Validate an entity's values with a pydantic model.

    Example:
        class AuthorSchema(BaseModel):
            name: str = Field(min_length=2)

        EntityService(repo, validators=[SchemaValidator(AuthorSchema)])
    """

    def __init__(self, schema: type[BaseModel]):
        self.schema = schema

    def validate(self, entity: Any, *, partial: bool = False) -> list[ValidationIssue]:
        try:
            self.schema.model_validate(entity_values(entity))
        except ValidationError as exc:
            issues = []
            for err in exc.errors():
                if partial and err["type"] == "missing":
                    continue
                field = ".".join(str(part) for part in err["loc"]) or "__root__"
                issues.append(ValidationIssue(field, err["type"], err["msg"]))
            return issues
        return []
