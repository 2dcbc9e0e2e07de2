"""
Generic entity service built on top of `EntityRepository`.

The service adds what the repository does not know about:
  - id and entity validation (`valid_id`, `is_valid`)
  - lifecycle hooks (`EntityHooks`), run synchronously around each call
  - translation of caller search terms into `QueryFilterOptions`
  - the service error policy: `StoreError` passes through, anything else becomes `InternalError`

Example:
    hooks = EntityHooks(pre_delete=lambda author: setattr(author, "deleted_at", datetime.now(UTC)))
    service = EntityService(EntityRepository(Author, session), hooks=hooks)
    await service.soft_delete(42)
"""
import logging
import math
import numbers
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from entity_store.exceptions.base import BadRequestError, NotFoundError
from entity_store.exceptions.mapper import service_error_boundary, sync_service_error_boundary
from entity_store.models.options import QueryFilterOptions, FindOptions
from entity_store.models.search_term import SearchTerm
from entity_store.repositories.base_repository import EntityRepository
from entity_store.validators.entity_validators import (
    ColumnConstraintValidator,
    EntityValidator,
    ValidationIssue,
    entity_values,
)

ModelType = TypeVar("ModelType")
Hook = Callable[[Any], None]

DEFAULT_OPERATOR = " = "

logger = logging.getLogger(__name__)


@dataclass
class EntityHooks:
    """
    Optional per-entity lifecycle callbacks.

    Each hook receives the entity, may mutate it in place and returns nothing.
    `pre_result` runs on every entity handed back to the caller, once per
    element for collection results.
    """

    pre_save: Hook | None = None
    pre_update: Hook | None = None
    pre_delete: Hook | None = None
    pre_result: Hook | None = None


def build_search_filter(
    limit: int | None,
    search_terms: Sequence[SearchTerm | Mapping[str, Any]] | None,
    *,
    entity_name: str = "Search",
) -> QueryFilterOptions:
    """
    Turn search terms into a conjunctive `QueryFilterOptions`.

    Each term renders as `"<field> <operator> <value>"` with `' = '` as the
    default operator. Values wrapped in parentheses are treated as a ready
    SQL expression and left unquoted; everything else is single-quoted. The
    first fragment becomes `where`, the rest go to `and_where`.

    The fragments are plain string concatenation. Field, operator and value
    must come from trusted input.

    Raises:
        BadRequestError: negative or non-integer limit, no terms, or a term without field or value.
    """
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
        raise BadRequestError(f"{entity_name}: Invalid search limit: {limit!r}")
    if not search_terms:
        raise BadRequestError(f"{entity_name}: At least one search term is required")

    options = QueryFilterOptions(limit=limit)
    for position, raw_term in enumerate(search_terms):
        term = SearchTerm.new_search_term(raw_term)
        if not term.field or term.value is None:
            raise BadRequestError(
                f"{entity_name}: Search term {position} requires both a field and a value",
                details={"position": position, "field": term.field},
            )

        value = str(term.value)
        if not (value.startswith("(") and value.endswith(")")):
            value = f"'{value}'"
        fragment = f"{term.field} {term.operator or DEFAULT_OPERATOR} {value}"

        if position == 0:
            options.where = fragment
        else:
            options.and_where.append(fragment)
    return options


class EntityService(Generic[ModelType]):
    """
    Validation, hooks and error policy around one `EntityRepository`.

    Args:
        repository: the adapter bound to the entity type.
        hooks: lifecycle callbacks; all no-ops when omitted.
        validators: `EntityValidator`s run by `is_valid`. Defaults to the
            table-metadata `ColumnConstraintValidator`.
    """

    def __init__(
        self,
        repository: EntityRepository[ModelType],
        hooks: EntityHooks | None = None,
        validators: Iterable[EntityValidator] | None = None,
    ):
        self.repository = repository
        self.hooks = hooks or EntityHooks()
        if validators is None:
            validators = [ColumnConstraintValidator(repository.model)]
        self.validators = list(validators)
        self.entity_name: str = repository.entity_name

    def _boundary(self, operation: str):
        return service_error_boundary(self.entity_name, operation)

    # -----------------------------------------------------------------------------------------------------------------
    # Hooks
    # -----------------------------------------------------------------------------------------------------------------

    @staticmethod
    def _run_hook(hook: Hook | None, entity: Any) -> None:
        if hook is not None:
            hook(entity)

    def _apply_pre_result(self, result):
        if result is None or self.hooks.pre_result is None:
            return result
        if isinstance(result, list):
            for entity in result:
                self.hooks.pre_result(entity)
        else:
            self.hooks.pre_result(result)
        return result

    # -----------------------------------------------------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------------------------------------------------

    @staticmethod
    def valid_id(entity_id: Any) -> bool:
        """True iff `entity_id` is a real number greater than zero. Never raises."""
        if entity_id is None or isinstance(entity_id, bool):
            return False
        if not isinstance(entity_id, numbers.Real):
            return False
        if math.isnan(entity_id):
            return False
        return entity_id > 0

    def _require_valid_id(self, entity_id: Any) -> None:
        if not self.valid_id(entity_id):
            logger.info("service.invalid_id", extra={"model": self.entity_name, "entity_id": repr(entity_id)})
            raise BadRequestError(f"{self.entity_name}: Invalid id: {entity_id!r}")

    async def is_valid(self, entity: Any, *, partial: bool = False) -> bool:
        """
        Run every validator against `entity`.

        Raises:
            BadRequestError: with `details` listing each issue, or when a validator itself fails.
        """
        issues: list[ValidationIssue] = []
        try:
            for validator in self.validators:
                issues.extend(validator.validate(entity, partial=partial))
        except Exception as exc:
            raise BadRequestError(f"{self.entity_name}: Unable to validate request: {exc}") from exc

        if issues:
            logger.info(
                "service.validation_failed",
                extra={"model": self.entity_name, "fields": [issue.field for issue in issues]},
            )
            raise BadRequestError(
                f"{self.entity_name}: Validation failed on the provided request",
                details=[issue.to_dict() for issue in issues],
            )
        return True

    # -----------------------------------------------------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------------------------------------------------

    async def find_all(self) -> list[ModelType]:
        async with self._boundary("find_all"):
            return self._apply_pre_result(await self.repository.get_all())

    async def find_all_by_filter(self, options: FindOptions) -> list[ModelType]:
        async with self._boundary("find_all_by_filter"):
            return self._apply_pre_result(await self.repository.find_many_by_filter(options))

    async def find_one_by_id(self, entity_id: Any) -> ModelType:
        """
        Raises:
            BadRequestError: the id is missing, non-numeric, NaN or not positive; the repository is not called.
            NotFoundError: no record with this id.
        """
        async with self._boundary("find_one_by_id"):
            self._require_valid_id(entity_id)
            return self._apply_pre_result(await self.repository.find_one_by_id(entity_id))

    async def find_one_by_filter(self, options: FindOptions) -> ModelType:
        async with self._boundary("find_one_by_filter"):
            return self._apply_pre_result(await self.repository.find_one_by_filter(options))

    async def find_one_with_query_builder(self, options: QueryFilterOptions) -> ModelType:
        async with self._boundary("find_one_with_query_builder"):
            result = await self.repository.find_one_with_query_builder(options)
            if result is None:
                raise NotFoundError(f"{self.entity_name}: No record matched the query: {options.where!r}")
            return self._apply_pre_result(result)

    async def find_many_with_query_builder(self, options: QueryFilterOptions) -> list[ModelType]:
        async with self._boundary("find_many_with_query_builder"):
            return self._apply_pre_result(await self.repository.find_many_with_query_builder(options))

    async def search(
        self,
        limit: int | None,
        search_terms: Sequence[SearchTerm | Mapping[str, Any]] | None,
    ) -> list[ModelType]:
        async with self._boundary("search"):
            options = self.get_search_filter(limit, search_terms)
            logger.debug(
                "service.search",
                extra={"model": self.entity_name, "terms": len(search_terms), "limit": limit},
            )
            return self._apply_pre_result(await self.repository.find_many_with_query_builder(options))

    # -----------------------------------------------------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------------------------------------------------

    async def save(self, entity: ModelType) -> ModelType:
        async with self._boundary("save"):
            await self.is_valid(entity)
            self._run_hook(self.hooks.pre_save, entity)
            result = await self.repository.save(entity)
            logger.debug("service.save", extra={"model": self.entity_name, "entity_id": getattr(result, "id", None)})
            return self._apply_pre_result(result)

    async def save_all(self, entities: Sequence[ModelType], resolve_relations: bool = False) -> list[ModelType]:
        """
        Validate every entity first (stopping at the first invalid one), then
        run `pre_save` on each and save the batch.
        """
        async with self._boundary("save_all"):
            for entity in entities:
                await self.is_valid(entity)
            for entity in entities:
                self._run_hook(self.hooks.pre_save, entity)
            results = await self.repository.save_all(entities, resolve_relations=resolve_relations)
            return self._apply_pre_result(results)

    async def update(self, entity: ModelType | Mapping[str, Any], entity_id: Any) -> ModelType:
        """
        Partially update record `entity_id`; only the values present on `entity` are validated and written.
        """
        async with self._boundary("update"):
            self._require_valid_id(entity_id)
            await self.is_valid(entity, partial=True)
            self._run_hook(self.hooks.pre_update, entity)
            result = await self.repository.update_one_by_id(entity_id, entity)
            return self._apply_pre_result(result)

    async def update_all(self, entities: Sequence[ModelType | Mapping[str, Any]]) -> list[ModelType]:
        async with self._boundary("update_all"):
            for entity in entities:
                self._require_valid_id(entity_values(entity).get("id"))
                await self.is_valid(entity, partial=True)
            for entity in entities:
                self._run_hook(self.hooks.pre_update, entity)
            results = await self.repository.update_all(entities)
            return self._apply_pre_result(results)

    async def delete(self, entity_id: Any) -> ModelType:
        async with self._boundary("delete"):
            self._require_valid_id(entity_id)
            entity = await self.repository.find_one_by_id(entity_id)
            self._run_hook(self.hooks.pre_delete, entity)
            result = await self.repository.delete(entity)
            logger.debug("service.delete", extra={"model": self.entity_name, "entity_id": entity_id})
            return self._apply_pre_result(result)

    async def soft_delete(self, entity_id: Any) -> ModelType:
        """
        Logical delete: `pre_delete` is expected to stamp a deletion marker,
        and the entity is persisted through `save` rather than removed.
        """
        async with self._boundary("soft_delete"):
            self._require_valid_id(entity_id)
            entity = await self.repository.find_one_by_id(entity_id)
            self._run_hook(self.hooks.pre_delete, entity)
            result = await self.repository.save(entity)
            logger.debug("service.soft_delete", extra={"model": self.entity_name, "entity_id": entity_id})
            return self._apply_pre_result(result)

    # -----------------------------------------------------------------------------------------------------------------
    # Search filter
    # -----------------------------------------------------------------------------------------------------------------

    def get_search_filter(
        self,
        limit: int | None,
        search_terms: Sequence[SearchTerm | Mapping[str, Any]] | None,
    ) -> QueryFilterOptions:
        with sync_service_error_boundary(self.entity_name, "get_search_filter"):
            return build_search_filter(limit, search_terms, entity_name=self.entity_name)
