"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the store, signer and slug
strategy, and builds the per-request services on top of them.

Pattern: Dependency Injection
- Loose coupling between components
- Easy to test (override with fakes)
- Flexible (swap implementations via config)
"""

from functools import lru_cache

from fastapi import Depends

from shortlink_app.config import settings
from shortlink_app.services.link_lifecycle import LinkLifecycleManager
from shortlink_app.services.link_resolver import LinkResolver
from shortlink_app.services.slug_factory import SlugFactory
from shortlink_app.services.slug_strategies import SlugStrategy
from shortlink_app.signing.factory import SignedURLProviderFactory, SignerBackend
from shortlink_app.signing.strategies import SignedURLProvider
from shortlink_app.storage.factory import ShortLinkStoreFactory, StoreBackend
from shortlink_app.storage.strategies import ShortLinkStore


@lru_cache()
def get_store() -> ShortLinkStore:
    """
    Get short link store instance (singleton).

    Factory gets config from settings internally.
    """
    backend = StoreBackend(settings.store_backend)
    return ShortLinkStoreFactory.create(backend)


@lru_cache()
def get_signer() -> SignedURLProvider:
    """Get signed URL provider instance (singleton)."""
    backend = SignerBackend(settings.signer_backend)
    return SignedURLProviderFactory.create(backend)


@lru_cache()
def get_slug_strategy() -> SlugStrategy:
    return SlugFactory.create_strategy()


def get_link_resolver(
    store: ShortLinkStore = Depends(get_store),
    signer: SignedURLProvider = Depends(get_signer),
) -> LinkResolver:
    """Build the resolver for one request. Holds no state across requests."""
    return LinkResolver(store=store, signer=signer)


def get_lifecycle_manager(
    store: ShortLinkStore = Depends(get_store),
    slug_strategy: SlugStrategy = Depends(get_slug_strategy),
) -> LinkLifecycleManager:
    return LinkLifecycleManager(store=store, slug_strategy=slug_strategy)
