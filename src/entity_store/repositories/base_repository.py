"""
Generic repository (store adapter) over SQLAlchemy async sessions.

One `EntityRepository` binds one mapped entity class and one `AsyncSession`.
It translates CRUD and query intents into session calls and guarantees that
every failure leaving it is a `StoreError`:

  - records that are asked for but absent raise `NotFoundError`
  - statement execution failures raise `InternalError` (after a rollback)
  - anything else raised while talking to the store raises `BadRequestError`

The repository flushes but never commits unless `WriteOptions(commit=True)` is
passed; transaction boundaries belong to the caller.
"""
import json
import logging
import time
from collections.abc import Awaitable, Iterable, Mapping
from contextlib import asynccontextmanager
from typing import TypeVar, Generic, Type, Any, Sequence

from sqlalchemy import Select, and_, or_, select, text, update, inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from entity_store.database.base import Base, get_mapped_class
from entity_store.exceptions.base import BadRequestError, NotFoundError
from entity_store.exceptions.mapper import store_error_boundary
from entity_store.models.options import FindOptions, QueryFilterOptions, WriteOptions
from entity_store.validators.entity_validators import entity_values, find_unknown_model_kwargs

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)
ResultType = TypeVar("ResultType")

logger = logging.getLogger(__name__)


class EntityRepository(Generic[ModelType]):
    """
    Store adapter for a single entity type.

    Type Parameters:
        ModelType: the mapped class this repository manages (must have an integer `id`).
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: the mapped class itself (e.g. `Author`, not `Author()`).
            db: the async session all statements run on.
        """
        self.model = model
        self.db = db
        self.entity_name: str = model.__name__
        self.table_name: str = model.__tablename__

    @classmethod
    def for_entity_name(cls, entity_name: str, db: AsyncSession) -> "EntityRepository":
        """
        Build a repository from an entity class name registered on `Base`.

        Raises:
            BadRequestError: no mapped class with that name exists.
        """
        model = get_mapped_class(entity_name)
        if model is None:
            raise BadRequestError(f"{entity_name}: No entity is registered under this name")
        return cls(model, db)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(entity={self.entity_name!r}, table={self.table_name!r})>"

    # =================================================================================================================
    # Error boundary
    # =================================================================================================================

    @asynccontextmanager
    async def _boundary(self, operation: str):
        async with store_error_boundary(self.db, self.entity_name, operation):
            yield

    async def execute(self, operation: Awaitable[ResultType], operation_name: str = "execute") -> ResultType:
        """
        Await an arbitrary store call through the repository's error boundary.

        Subclasses adding custom queries should route them through here (or through
        `_boundary`) so their failures are normalized like the built-in operations.
        """
        async with self._boundary(operation_name):
            return await operation

    # =================================================================================================================
    # Statement helpers
    # =================================================================================================================

    def _column(self, name: str):
        mapper = sa_inspect(self.model)
        if name not in mapper.column_attrs:
            raise ValueError(f"'{name}' is not a column of {self.entity_name}")
        return getattr(self.model, name)

    def _with_relations(self, stmt: Select, relations: Iterable[str] | None) -> Select:
        if not relations:
            return stmt
        mapper = sa_inspect(self.model)
        for name in relations:
            if name not in mapper.relationships:
                raise ValueError(f"'{name}' is not a relation of {self.entity_name}")
            stmt = stmt.options(selectinload(getattr(self.model, name)))
        return stmt

    def _apply_find_options(self, stmt: Select, options: FindOptions | None) -> Select:
        if options is None:
            return stmt
        for key, value in options.where.items():
            stmt = stmt.where(self._column(key) == value)
        for name in options.order_by:
            column = self._column(name.lstrip("-"))
            stmt = stmt.order_by(column.desc() if name.startswith("-") else column.asc())
        if options.offset:
            stmt = stmt.offset(options.offset)
        if options.limit:
            stmt = stmt.limit(options.limit)
        return self._with_relations(stmt, options.relations)

    def _select_by_id(self, entity_id: int, relations: Iterable[str] | None = None) -> Select:
        # populate_existing: a re-fetch must overwrite stale identity-map state
        # (server defaults, onupdate columns, rows changed by bulk UPDATE).
        stmt = (
            select(self.model)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        return self._with_relations(stmt, relations)

    def _build_query(self, options: QueryFilterOptions) -> Select:
        """
        Compose `where`, then AND each `and_where`, then OR each `or_where`.

        Fragments are raw SQL and are executed as-is; only pass fragments built
        from trusted identifiers.
        """
        condition = text(options.where) if options.where else None
        for fragment in options.and_where or []:
            condition = text(fragment) if condition is None else and_(condition, text(fragment))
        for fragment in options.or_where or []:
            condition = text(fragment) if condition is None else or_(condition, text(fragment))

        stmt = select(self.model)
        if condition is not None:
            stmt = stmt.where(condition)
        return stmt

    def _update_values(self, record: Any) -> dict[str, Any]:
        if isinstance(record, Mapping):
            unknown = find_unknown_model_kwargs(self.model, record)
            if unknown:
                raise ValueError(f"Unknown field(s) for {self.entity_name}: {', '.join(sorted(unknown))}")
        mapper = sa_inspect(self.model)
        primary_keys = {col.key for col in mapper.primary_key}
        return {
            key: value
            for key, value in entity_values(record).items()
            if key in mapper.column_attrs and key not in primary_keys
        }

    async def _flush(self, options: WriteOptions | None) -> None:
        await self.db.flush()
        if options is not None and options.commit:
            await self.db.commit()

    def _not_found(self, entity_id: Any = None) -> NotFoundError:
        if entity_id is None:
            return NotFoundError(f"{self.entity_name}: The requested record was not found")
        return NotFoundError(f"{self.entity_name}: The requested record was not found: {entity_id}")

    def _ids_not_found(self, id_list: Sequence[Any], **details: Any) -> NotFoundError:
        return NotFoundError(
            f"{self.entity_name}: None of the requested records were found: {json.dumps(list(id_list), default=str)}",
            details=details or None,
        )

    # =================================================================================================================
    # Read operations
    # =================================================================================================================

    async def get_all(self, options: FindOptions | None = None) -> list[ModelType]:
        """
        Return every entity matching the optional options. An empty list is a valid result.
        """
        async with self._boundary("get_all"):
            stmt = self._apply_find_options(select(self.model), options)
            result = await self.db.execute(stmt)
            entities = list(result.scalars().all())
            logger.debug("repo.get_all", extra={"model": self.entity_name, "count": len(entities)})
            return entities

    async def find_many_by_filter(self, options: FindOptions) -> list[ModelType]:
        """
        Like `get_all`, but a missing (None) result raises NotFoundError.
        An empty list is returned as-is.
        """
        async with self._boundary("find_many_by_filter"):
            stmt = self._apply_find_options(select(self.model), options)
            result = await self.db.execute(stmt)
            records = result.scalars().all()
            if records is None:
                raise self._not_found()
            return list(records)

    async def find_one_by_id(self, entity_id: int) -> ModelType:
        """
        Raises:
            NotFoundError: no row with this id.
        """
        async with self._boundary("find_one_by_id"):
            result = await self.db.execute(self._select_by_id(entity_id))
            record = result.scalars().first()
            if record is None:
                logger.info("repo.not_found", extra={"model": self.entity_name, "entity_id": entity_id})
                raise self._not_found(entity_id)
            return record

    async def find_one_by_id_with_options(self, entity_id: int, options: FindOptions | None = None) -> ModelType:
        """
        Single-id lookup routed through the multi-id query so eager relations
        and other find options apply.
        """
        async with self._boundary("find_one_by_id_with_options"):
            records = await self._find_by_ids([entity_id], options)
            if not records:
                logger.info("repo.not_found", extra={"model": self.entity_name, "entity_id": entity_id})
                raise self._not_found(entity_id)
            return records[0]

    async def find_many_by_id(self, id_list: Sequence[int], options: FindOptions | None = None) -> list[ModelType]:
        """
        Return the rows whose id is in `id_list`.

        Raises:
            NotFoundError: none of the ids exist. A partial match is returned as-is.
        """
        async with self._boundary("find_many_by_id"):
            records = await self._find_by_ids(id_list, options)
            if not records:
                logger.info("repo.not_found", extra={"model": self.entity_name, "entity_ids": list(id_list)})
                raise self._ids_not_found(id_list)
            return records

    async def _find_by_ids(self, id_list: Sequence[int], options: FindOptions | None) -> list[ModelType]:
        stmt = (
            select(self.model)
            .where(self.model.id.in_(list(id_list)))
            .execution_options(populate_existing=True)
        )
        stmt = self._apply_find_options(stmt, options)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_one_by_filter(self, options: FindOptions) -> ModelType:
        async with self._boundary("find_one_by_filter"):
            stmt = self._apply_find_options(select(self.model), options)
            if options is None or not options.limit:
                stmt = stmt.limit(1)
            result = await self.db.execute(stmt)
            record = result.scalars().first()
            if record is None:
                raise self._not_found()
            return record

    # =================================================================================================================
    # Write operations
    # =================================================================================================================

    async def save(self, record: ModelType, options: WriteOptions | None = None) -> ModelType:
        """
        Insert or update one entity (merge on primary key) and flush.

        When the saved entity has an id it is fetched again so store-computed
        columns and eager relations are populated; the fetched instance is
        returned instead of the raw merge result.

        Raises:
            NotFoundError: the store returned nothing for the save.
        """
        async with self._boundary("save"):
            start = time.perf_counter()
            result = await self.db.merge(record)
            await self._flush(options)
            if result is None:
                raise NotFoundError(f"{self.entity_name}: The record was not saved: {record!r}")

            logger.debug(
                "repo.save.success",
                extra={
                    "model": self.entity_name,
                    "entity_id": getattr(result, "id", None),
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )
            entity_id = getattr(result, "id", None)
            if entity_id:
                return await self.find_one_by_id(entity_id)
            return result

    async def save_all(
        self,
        records: Sequence[ModelType],
        options: WriteOptions | None = None,
        resolve_relations: bool = False,
    ) -> list[ModelType]:
        """
        Save a batch in one flush.

        With `resolve_relations` every saved entity that has an id is re-fetched,
        one at a time and in input order; entities without an id are dropped
        from that result.
        """
        async with self._boundary("save_all"):
            results = [await self.db.merge(record) for record in records]
            await self._flush(options)
            if results is None:
                raise NotFoundError(f"{self.entity_name}: The records were not saved")

            logger.debug("repo.save_all.success", extra={"model": self.entity_name, "count": len(results)})

            if resolve_relations:
                eager_results = []
                for result in results:
                    if getattr(result, "id", None):
                        eager_results.append(await self.find_one_by_id(result.id))
                return eager_results
            return results

    async def update_one_by_id(
        self,
        entity_id: int,
        record: ModelType | Mapping[str, Any],
        options: WriteOptions | None = None,
    ) -> ModelType:
        """
        Update the row `entity_id` with the column values set on `record`.

        `record` may be an entity instance or a mapping of attribute names; the
        primary key is never updated. The row is re-fetched after the UPDATE.

        Raises:
            NotFoundError: the row does not exist.
            BadRequestError: `record` names fields the entity does not have.
        """
        async with self._boundary("update_one_by_id"):
            await self.find_one_by_id(entity_id)

            values = self._update_values(record)
            if values:
                stmt = (
                    update(self.model)
                    .where(self.model.id == entity_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await self.db.execute(stmt)
            else:
                logger.warning("repo.update.no_values", extra={"model": self.entity_name, "entity_id": entity_id})
            await self._flush(options)

            logger.debug(
                "repo.update.success",
                extra={"model": self.entity_name, "entity_id": entity_id, "updated_keys": sorted(values)},
            )
            return await self.find_one_by_id(entity_id)

    async def update_all(
        self,
        records: Sequence[ModelType | Mapping[str, Any]],
        options: WriteOptions | None = None,
    ) -> list[ModelType]:
        """
        Update each record by its own id, sequentially, returning results in input order.

        Raises:
            BadRequestError: a record carries no id.
            NotFoundError: a record's id does not exist (earlier updates stay flushed).
        """
        async with self._boundary("update_all"):
            updated = []
            for record in records:
                entity_id = entity_values(record).get("id")
                if not entity_id:
                    raise BadRequestError(f"{self.entity_name}: Cannot update a record without an id")
                updated.append(await self.update_one_by_id(entity_id, record, options))
            return updated

    # =================================================================================================================
    # Delete operations
    # =================================================================================================================

    async def delete(self, record: ModelType, options: WriteOptions | None = None) -> ModelType:
        """
        Remove an entity the caller already holds. No existence check is made.
        """
        async with self._boundary("delete"):
            await self.db.delete(record)
            await self._flush(options)
            logger.debug("repo.delete.success", extra={"model": self.entity_name, "entity_id": getattr(record, "id", None)})
            return record

    async def delete_one_by_id(
        self,
        entity_id: int,
        find_options: FindOptions | None = None,
        delete_options: WriteOptions | None = None,
    ) -> ModelType:
        async with self._boundary("delete_one_by_id"):
            if find_options:
                record = await self.find_one_by_id_with_options(entity_id, find_options)
            else:
                record = await self.find_one_by_id(entity_id)
            if record is None:
                raise self._not_found(entity_id)
            return await self.delete(record, delete_options)

    async def delete_many_by_id(
        self,
        id_list: Sequence[int],
        delete_options: WriteOptions | None = None,
    ) -> list[ModelType]:
        """
        Delete every row in `id_list`, or none of them.

        Raises:
            NotFoundError: at least one id does not exist; the message lists the full id list.
        """
        async with self._boundary("delete_many_by_id"):
            records = await self.find_many_by_id(id_list)
            found = {record.id for record in records}
            missing = [entity_id for entity_id in id_list if entity_id not in found]
            if missing:
                logger.info("repo.not_found", extra={"model": self.entity_name, "entity_ids": list(id_list)})
                raise self._ids_not_found(id_list, missing=missing)

            for record in records:
                await self.db.delete(record)
            await self._flush(delete_options)
            logger.debug("repo.delete_many.success", extra={"model": self.entity_name, "count": len(records)})
            return records

    # =================================================================================================================
    # Query builder lookups
    # =================================================================================================================

    async def find_one_with_query_builder(self, options: QueryFilterOptions) -> ModelType | None:
        """
        First entity matching the composed predicate, or None. Absence is not an error here.
        """
        async with self._boundary("find_one_with_query_builder"):
            stmt = self._build_query(options).limit(1)
            result = await self.db.execute(stmt)
            return result.scalars().first()

    async def find_many_with_query_builder(self, options: QueryFilterOptions) -> list[ModelType]:
        async with self._boundary("find_many_with_query_builder"):
            stmt = self._build_query(options)
            if options.limit and options.limit > 0:
                stmt = stmt.limit(options.limit)
            result = await self.db.execute(stmt)
            entities = list(result.scalars().all())
            logger.debug(
                "repo.query_builder",
                extra={"model": self.entity_name, "count": len(entities), "limit": options.limit},
            )
            return entities
