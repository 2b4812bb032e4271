"""
Query caching package.

Results are cached raw under request-shaped keys and normalized on read.
Writes go through the mutation dispatcher, which invalidates explicitly.
"""

from .keys import build_detail_key, build_key, key_matches
from .mutations import MutationDispatcher
from .query_cache import QueryCacheStore, QueryOptions, QueryResult, QueryStatus, Subscription

__all__ = [
    "build_key",
    "build_detail_key",
    "key_matches",
    "MutationDispatcher",
    "QueryCacheStore",
    "QueryOptions",
    "QueryResult",
    "QueryStatus",
    "Subscription",
]
