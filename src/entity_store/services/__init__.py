from .base_service import EntityHooks, EntityService, build_search_filter

__all__ = ["EntityHooks", "EntityService", "build_search_filter"]
