"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-deduplicating query layer.

Quick start::

    from kairos.cache import InMemoryStorage
    from kairos.query import QueryCache

    queries = QueryCache(storage=InMemoryStorage())
    user = await queries.fetch("user:1", lambda: api.get_user(1), ttl_s=60)
    queries.invalidate("user:")
"""

from .cache import Producer, QueryCache
from .patterns import KeyPattern, KeyPredicate, compile_key_pattern

__all__ = [
    "QueryCache",
    "Producer",
    "KeyPattern",
    "KeyPredicate",
    "compile_key_pattern",
]
