from .base_repository import EntityRepository

__all__ = ["EntityRepository"]
