from .cache_store import CacheStore
from .identity_provider import IdentityProvider
from .query_executor import QueryExecutor

__all__ = [
    "CacheStore",
    "IdentityProvider",
    "QueryExecutor",
]
