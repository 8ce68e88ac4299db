"""
Core Interfaces Module

Protocols for pluggable core components.

Components:
-----------
- **cache.py**: CacheBackend protocol and the InMemoryCache test backend

Usage:
------
```python
from flight_search.core.interfaces import CacheBackend

async def lookup(cache: CacheBackend, key: str) -> str | None:
    return await cache.get(key)
```
"""

from flight_search.core.interfaces.cache import CacheBackend, InMemoryCache

__all__ = [
    "CacheBackend",
    "InMemoryCache",
]
