"""
Test configuration and fixtures for the quote short links service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Settings are read at import time, so configure the environment first
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("SIGNER_BACKEND", "local")
os.environ.setdefault("PUBLIC_BASE_URL", "https://aquote.link")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

import boto3
import fakeredis
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.database.connection import Base
from shortlink_app.dependencies import get_link_resolver, get_signer, get_store
from shortlink_app.errors import SignerError, StoreUnavailable
from shortlink_app.services.link_lifecycle import LinkLifecycleManager
from shortlink_app.services.link_resolver import LinkResolver
from shortlink_app.services.slug_strategies import Sha256SlugStrategy
from shortlink_app.signing.strategies import SignedURLProvider
from shortlink_app.storage.strategies import (
    DynamoDBShortLinkStore,
    InMemoryShortLinkStore,
    RedisShortLinkStore,
    SQLAlchemyShortLinkStore,
)

NOW = 1_760_000_000
TTL = 3600
BUFFER = 60
MARGIN = 300


class FrozenClock:
    """Clock returning a fixed epoch time that tests can move."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingSigner(SignedURLProvider):
    """Signer that records its calls and issues predictable URLs."""

    def __init__(self):
        self.calls = []
        self.fail = False

    async def issue(self, storage_key: str, ttl_seconds: int) -> str:
        self.calls.append((storage_key, ttl_seconds))
        if self.fail:
            raise SignerError()
        return f"https://signed.example.com/{storage_key}?ttl={ttl_seconds}&n={len(self.calls)}"


class FlakyStore(InMemoryShortLinkStore):
    """
    In-memory store that raises StoreUnavailable on demand.

    fail_on: names of methods that always fail
    deletes_before_failure: number of deletes allowed before delete fails
    """

    def __init__(self):
        super().__init__()
        self.fail_on = set()
        self.deletes_before_failure = None

    def _maybe_fail(self, method: str):
        if method in self.fail_on:
            raise StoreUnavailable()

    async def get_by_slug(self, slug):
        self._maybe_fail("get_by_slug")
        return await super().get_by_slug(slug)

    async def put(self, record):
        self._maybe_fail("put")
        await super().put(record)

    async def update(self, slug, fields, expected_artifact_key=None):
        self._maybe_fail("update")
        return await super().update(slug, fields, expected_artifact_key=expected_artifact_key)

    async def query_by_document(self, document_id):
        self._maybe_fail("query_by_document")
        return await super().query_by_document(document_id)

    async def delete(self, slug):
        self._maybe_fail("delete")
        if self.deletes_before_failure is not None:
            if self.deletes_before_failure <= 0:
                raise StoreUnavailable()
            self.deletes_before_failure -= 1
        await super().delete(slug)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def signer():
    return RecordingSigner()


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def resolver(store, signer, clock):
    return LinkResolver(
        store=store,
        signer=signer,
        presigned_ttl_seconds=TTL,
        refresh_buffer_seconds=BUFFER,
        credential_safety_margin_seconds=MARGIN,
        clock=clock,
    )


@pytest.fixture
def manager(store):
    return LinkLifecycleManager(
        store=store,
        slug_strategy=Sha256SlugStrategy(),
        public_base_url="https://aquote.link",
    )


@pytest.fixture
def memory_store():
    return InMemoryShortLinkStore()


@pytest.fixture
def sql_store(tmp_path):
    """SQLAlchemy store on a throwaway SQLite file."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield SQLAlchemyShortLinkStore(session_factory)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def redis_store():
    return RedisShortLinkStore(fakeredis.FakeRedis(decode_responses=True))


@pytest.fixture
def dynamodb_store():
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = DynamoDBShortLinkStore.create_table(dynamodb, "test-short-links")
        yield DynamoDBShortLinkStore(table)


@pytest.fixture
def client(store, signer, clock):
    """
    Create a test client with store, signer and clock overridden.
    This is the main fixture that API tests will use.
    """
    def override_get_link_resolver():
        return LinkResolver(
            store=store,
            signer=signer,
            presigned_ttl_seconds=TTL,
            refresh_buffer_seconds=BUFFER,
            credential_safety_margin_seconds=MARGIN,
            clock=clock,
        )

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_signer] = lambda: signer
    app.dependency_overrides[get_link_resolver] = override_get_link_resolver

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
