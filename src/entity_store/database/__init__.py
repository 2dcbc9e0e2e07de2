from .base import Base, get_mapped_class
from .session import create_engine_from_settings, create_session_factory, get_async_session

__all__ = [
    "Base",
    "get_mapped_class",
    "create_engine_from_settings",
    "create_session_factory",
    "get_async_session",
]
