"""
Short link store module.

This module implements the Strategy Pattern for pluggable record persistence.
"""

from .strategies import (
    ShortLinkStore,
    InMemoryShortLinkStore,
    SQLAlchemyShortLinkStore,
    RedisShortLinkStore,
    DynamoDBShortLinkStore,
)
from .factory import ShortLinkStoreFactory, StoreBackend

__all__ = [
    "ShortLinkStore",
    "InMemoryShortLinkStore",
    "SQLAlchemyShortLinkStore",
    "RedisShortLinkStore",
    "DynamoDBShortLinkStore",
    "ShortLinkStoreFactory",
    "StoreBackend",
]
