# entity_store/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # ErrorKind + StoreError, BadRequestError, NotFoundError, InternalError
# │   ├── integrity_classifier.py    # IntegrityError -> constraint diagnostics
# │   └── mapper.py                  # adapter / service translation policies and error boundaries

from .base import (
    ErrorKind,
    StoreError,
    BadRequestError,
    NotFoundError,
    InternalError,
    is_store_error,
)
from .mapper import (
    translate_adapter_error,
    translate_service_error,
    store_error_boundary,
    service_error_boundary,
)

__all__ = [
    "ErrorKind",
    "StoreError",
    "BadRequestError",
    "NotFoundError",
    "InternalError",
    "is_store_error",
    "translate_adapter_error",
    "translate_service_error",
    "store_error_boundary",
    "service_error_boundary",
]
