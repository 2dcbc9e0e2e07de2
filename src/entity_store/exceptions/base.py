"""
Error taxonomy shared by the repository and service layers.

Every failure that leaves `EntityRepository` or `EntityService` is a `StoreError`
carrying one of three kinds:

| Kind          | Class             | HTTP | Raised for                                              |
| ------------- | ----------------- | ---- | ------------------------------------------------------- |
| `bad_request` | `BadRequestError` | 400  | invalid ids, failed validation, malformed search input   |
| `not_found`   | `NotFoundError`   | 404  | requested record(s) absent                              |
| `internal`    | `InternalError`   | 500  | statement execution failures, unclassified failures     |
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class StoreError(Exception):
    """
    Base exception for repository/service errors.

    - message: human-friendly message, prefixed with the entity name by the raisers
    - kind: one of ErrorKind
    - details: optional structured context (validation issues, integrity diagnostics)
    """

    KIND_TO_STATUS = {
        ErrorKind.BAD_REQUEST: 400,
        ErrorKind.NOT_FOUND: 404,
        ErrorKind.INTERNAL: 500,
    }

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, details: Any = None, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"

    def to_payload(self) -> dict:
        """
        JSON-serializable shape for callers that expose errors over a wire:
            {"detail": "...", "code": "not_found", "details": [...]}
        `details` is omitted when empty.
        """
        payload: dict[str, Any] = {"detail": self.message, "code": self.kind.value}
        if self.details:
            payload["details"] = self.details
        return payload

    def http_status(self) -> int:
        return self.KIND_TO_STATUS.get(self.kind, 500)


class BadRequestError(StoreError):
    kind = ErrorKind.BAD_REQUEST


class NotFoundError(StoreError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Not found", *, details: Any = None):
        super().__init__(message, details=details)


class InternalError(StoreError):
    kind = ErrorKind.INTERNAL


def is_store_error(error: BaseException | None) -> bool:
    """True when `error` already carries one of the three kinds."""
    return isinstance(error, StoreError)


__all__ = [
    "ErrorKind",
    "StoreError",
    "BadRequestError",
    "NotFoundError",
    "InternalError",
    "is_store_error",
]
