from .memory_cache_store import InMemoryCacheStore

__all__ = ["InMemoryCacheStore"]
