"""
Factory for creating short link store instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum

from .strategies import (
    ShortLinkStore,
    InMemoryShortLinkStore,
    SQLAlchemyShortLinkStore,
    RedisShortLinkStore,
    DynamoDBShortLinkStore,
)
from shortlink_app.config import settings
from shortlink_app.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Available short link store backends"""
    SQLALCHEMY = "sqlalchemy"
    REDIS = "redis"
    DYNAMODB = "dynamodb"
    MEMORY = "memory"


class ShortLinkStoreFactory:
    """
    Simple factory for creating short link stores.

    Uses Singleton Pattern - creates instance once, reuses it.
    Gets configuration from settings (not passed as parameters).

    Unlike a cache, a store never falls back to memory when its backend is
    down: links written there would vanish on restart.
    """

    _instance: ShortLinkStore = None  # Single cached instance

    @classmethod
    def create(cls, backend: StoreBackend) -> ShortLinkStore:
        """
        Create or return cached store instance.

        Args:
            backend: Type of store backend (from enum)

        Returns:
            Singleton store instance

        Raises:
            StoreUnavailable: If the backend cannot be reached at startup
        """
        if cls._instance is not None:
            return cls._instance

        if backend == StoreBackend.SQLALCHEMY:
            from shortlink_app.database.connection import Base, SessionLocal, engine

            Base.metadata.create_all(bind=engine)
            cls._instance = SQLAlchemyShortLinkStore(SessionLocal)
            logger.info("SQLAlchemy short link store initialized")

        elif backend == StoreBackend.REDIS:
            import redis

            try:
                redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=True,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                redis_client.ping()
            except redis.RedisError as e:
                logger.error("Redis connection failed: %s", e)
                raise StoreUnavailable("Short link store is unavailable") from e

            cls._instance = RedisShortLinkStore(redis_client)
            logger.info("Redis short link store initialized")

        elif backend == StoreBackend.DYNAMODB:
            import boto3

            dynamodb = boto3.resource(
                "dynamodb",
                region_name=settings.aws_region,
                endpoint_url=settings.dynamodb_endpoint_url,
            )
            cls._instance = DynamoDBShortLinkStore(dynamodb.Table(settings.short_links_table_name))
            logger.info("DynamoDB short link store initialized (table=%s)", settings.short_links_table_name)

        elif backend == StoreBackend.MEMORY:
            cls._instance = InMemoryShortLinkStore()
            logger.info("In-memory short link store initialized")

        else:
            raise ValueError(f"Unknown store backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
