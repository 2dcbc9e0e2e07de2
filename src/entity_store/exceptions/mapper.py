"""
Translation of raw failures into `StoreError` kinds.

Two policies, one per layer:

| Failure                          | Adapter (repository) | Service           |
| -------------------------------- | -------------------- | ----------------- |
| already a `StoreError`           | unchanged            | unchanged         |
| `DBAPIError` (statement failed)  | `InternalError`      | `InternalError`   |
| anything else                    | `BadRequestError`    | `InternalError`   |

The adapter treats unclassified errors as caller mistakes (bad filter options,
unknown columns, wrong types); anything unclassified that reaches the service
has already passed validation and is treated as an internal condition.
"""
import logging
from contextlib import asynccontextmanager, contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .base import StoreError, BadRequestError, InternalError
from .integrity_classifier import classify_integrity_error

logger = logging.getLogger(__name__)


def translate_adapter_error(exc: BaseException, entity_name: str) -> StoreError:
    if isinstance(exc, StoreError):
        return exc

    if isinstance(exc, DBAPIError):
        raw = str(exc.orig) if exc.orig is not None else str(exc)
        details = None
        if isinstance(exc, IntegrityError):
            details = classify_integrity_error(exc).to_dict()
        return InternalError(f"{entity_name}: {raw}", details=details)

    return BadRequestError(f"{entity_name}: {exc}", details={"error": type(exc).__name__})


def translate_service_error(exc: BaseException, entity_name: str) -> StoreError:
    if isinstance(exc, StoreError):
        return exc
    return InternalError(f"{entity_name}: {exc}", details={"error": type(exc).__name__})


async def _rollback(db: AsyncSession, entity_name: str, operation: str | None) -> None:
    try:
        await db.rollback()
    except Exception:
        logger.exception(
            "Failed to rollback session after statement failure",
            extra={"model": entity_name, "operation": operation},
        )


@asynccontextmanager
async def store_error_boundary(db: AsyncSession, entity_name: str, operation: str | None = None):
    """
    Usage:
        async with store_error_boundary(self.db, self.entity_name, "find_one_by_id"):
            ... session calls ...

    Rolls the session back when a statement fails, then raises the translated error.
    Caller errors that leave the transaction inactive (e.g. a value the driver
    cannot bind during flush) also roll back, so the session stays usable.
    """
    try:
        yield
    except StoreError:
        raise
    except DBAPIError as exc:
        await _rollback(db, entity_name, operation)
        logger.warning(
            "repo.statement_failed",
            extra={"model": entity_name, "operation": operation, "error": type(exc).__name__},
        )
        raise translate_adapter_error(exc, entity_name) from exc
    except Exception as exc:
        if not getattr(db, "is_active", True):
            await _rollback(db, entity_name, operation)
        logger.info(
            "repo.bad_request",
            extra={"model": entity_name, "operation": operation, "error": type(exc).__name__},
        )
        raise translate_adapter_error(exc, entity_name) from exc


@asynccontextmanager
async def service_error_boundary(entity_name: str, operation: str | None = None):
    try:
        yield
    except StoreError as exc:
        # Expected outcomes (not found, validation) are client errors: no stack trace.
        logger.info(
            "service.error",
            extra={"model": entity_name, "operation": operation, "kind": exc.kind.value},
        )
        raise
    except Exception as exc:
        logger.exception("Unexpected error in %s.%s", entity_name, operation, extra={"model": entity_name})
        raise translate_service_error(exc, entity_name) from exc


@contextmanager
def sync_service_error_boundary(entity_name: str, operation: str | None = None):
    """Synchronous twin of `service_error_boundary` for pure builders."""
    try:
        yield
    except StoreError:
        raise
    except Exception as exc:
        logger.exception("Unexpected error in %s.%s", entity_name, operation, extra={"model": entity_name})
        raise translate_service_error(exc, entity_name) from exc
