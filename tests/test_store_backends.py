"""
Contract tests run against every short link store backend.
"""
import asyncio
from datetime import datetime, timezone

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shortlink_app.errors import ShortLinkNotFound, StoreUnavailable
from shortlink_app.schemas.short_link import ShortLinkRecord
from shortlink_app.storage.factory import ShortLinkStoreFactory, StoreBackend
from shortlink_app.storage.strategies import (
    InMemoryShortLinkStore,
    RedisShortLinkStore,
    SQLAlchemyShortLinkStore,
)

BACKENDS = ["memory_store", "sql_store", "redis_store", "dynamodb_store"]

CREATED = datetime(2024, 12, 1, tzinfo=timezone.utc)


def make_record(slug="abc123de", document_id="01QUOTE123", locale="en", **extra):
    return ShortLinkRecord(
        slug=slug,
        document_id=document_id,
        locale=locale,
        artifact_key=extra.pop("artifact_key", f"user_1/{document_id}/quote_{locale}.pdf"),
        created_at=CREATED,
        updated_at=CREATED,
        **extra,
    )


@pytest.fixture(params=BACKENDS)
def backend(request):
    return request.getfixturevalue(request.param)


class TestStoreContract:
    """Behaviour every backend must share"""

    def test_get_missing_slug(self, backend):
        assert asyncio.run(backend.get_by_slug("nothere1")) is None

    def test_put_then_get(self, backend):
        """Test a stored record reads back with the same fields"""
        asyncio.run(backend.put(make_record()))

        record = asyncio.run(backend.get_by_slug("abc123de"))

        assert record.document_id == "01QUOTE123"
        assert record.locale == "en"
        assert record.artifact_key == "user_1/01QUOTE123/quote_en.pdf"
        assert record.cached_signed_url is None
        assert record.cached_expires_at is None

    def test_put_overwrites(self, backend):
        """Test put replaces an existing record unconditionally"""
        asyncio.run(backend.put(make_record(cached_signed_url="https://old", cached_expires_at=5)))
        asyncio.run(backend.put(make_record(artifact_key="new.pdf")))

        record = asyncio.run(backend.get_by_slug("abc123de"))

        assert record.artifact_key == "new.pdf"
        assert record.cached_signed_url is None
        assert record.cached_expires_at is None

    def test_lookup_by_document_and_locale(self, backend):
        asyncio.run(backend.put(make_record("slugEn01", locale="en")))
        asyncio.run(backend.put(make_record("slugEs01", locale="es")))

        record = asyncio.run(backend.get_by_document_and_locale("01QUOTE123", "es"))

        assert record.slug == "slugEs01"
        assert asyncio.run(backend.get_by_document_and_locale("01QUOTE123", "fr")) is None

    def test_update_merges_fields(self, backend):
        """Test update changes only the given fields and sets updated_at"""
        asyncio.run(backend.put(make_record()))

        asyncio.run(backend.update("abc123de", {
            "cached_signed_url": "https://signed/1",
            "cached_expires_at": 1_760_003_600,
        }))
        record = asyncio.run(backend.get_by_slug("abc123de"))

        assert record.cached_signed_url == "https://signed/1"
        assert record.cached_expires_at == 1_760_003_600
        assert record.artifact_key == "user_1/01QUOTE123/quote_en.pdf"
        assert record.document_id == "01QUOTE123"
        assert record.updated_at != CREATED

    def test_update_with_none_clears_fields(self, backend):
        asyncio.run(backend.put(make_record(cached_signed_url="https://old", cached_expires_at=5)))

        asyncio.run(backend.update("abc123de", {
            "artifact_key": "v2.pdf",
            "cached_signed_url": None,
            "cached_expires_at": None,
        }))
        record = asyncio.run(backend.get_by_slug("abc123de"))

        assert record.artifact_key == "v2.pdf"
        assert record.cached_signed_url is None
        assert record.cached_expires_at is None

    def test_update_missing_slug(self, backend):
        with pytest.raises(ShortLinkNotFound):
            asyncio.run(backend.update("nothere1", {"artifact_key": "x.pdf"}))

    def test_guarded_update_applies_when_key_matches(self, backend):
        asyncio.run(backend.put(make_record()))

        written = asyncio.run(backend.update(
            "abc123de",
            {"cached_signed_url": "https://signed/1", "cached_expires_at": 10},
            expected_artifact_key="user_1/01QUOTE123/quote_en.pdf",
        ))

        assert written is True
        assert asyncio.run(backend.get_by_slug("abc123de")).cached_signed_url == "https://signed/1"

    def test_guarded_update_skips_when_key_changed(self, backend):
        """Test a cache write for a replaced artifact leaves the record alone"""
        asyncio.run(backend.put(make_record(artifact_key="new.pdf")))

        written = asyncio.run(backend.update(
            "abc123de",
            {"cached_signed_url": "https://signed/old", "cached_expires_at": 10},
            expected_artifact_key="old.pdf",
        ))

        record = asyncio.run(backend.get_by_slug("abc123de"))
        assert written is False
        assert record.artifact_key == "new.pdf"
        assert record.cached_signed_url is None
        assert record.cached_expires_at is None

    def test_guarded_update_missing_slug(self, backend):
        with pytest.raises(ShortLinkNotFound):
            asyncio.run(backend.update(
                "nothere1",
                {"cached_signed_url": "https://signed/1", "cached_expires_at": 10},
                expected_artifact_key="old.pdf",
            ))

    def test_update_rejects_unknown_fields(self, backend):
        asyncio.run(backend.put(make_record()))

        with pytest.raises(ValueError):
            asyncio.run(backend.update("abc123de", {"document_id": "other"}))

    def test_query_by_document(self, backend):
        """Test every locale of a document is listed, and nothing else"""
        asyncio.run(backend.put(make_record("slugEn01", locale="en")))
        asyncio.run(backend.put(make_record("slugEs01", locale="es")))
        asyncio.run(backend.put(make_record("other001", document_id="01OTHER", locale="en")))

        records = asyncio.run(backend.query_by_document("01QUOTE123"))

        assert sorted(r.slug for r in records) == ["slugEn01", "slugEs01"]
        assert asyncio.run(backend.query_by_document("01NOPE")) == []

    def test_delete(self, backend):
        asyncio.run(backend.put(make_record()))

        asyncio.run(backend.delete("abc123de"))

        assert asyncio.run(backend.get_by_slug("abc123de")) is None
        assert asyncio.run(backend.query_by_document("01QUOTE123")) == []

    def test_delete_missing_slug_is_noop(self, backend):
        asyncio.run(backend.delete("nothere1"))


class TestDynamoDBLayout:
    def test_dynamodb_item_layout(self, dynamodb_store):
        """Test items use the camelCase attribute names the GSI is defined on"""
        asyncio.run(dynamodb_store.put(make_record(cached_signed_url="https://signed/1", cached_expires_at=10)))

        item = dynamodb_store.table.get_item(Key={"slug": "abc123de"})["Item"]

        assert item["documentId"] == "01QUOTE123"
        assert item["artifactKey"] == "user_1/01QUOTE123/quote_en.pdf"
        assert item["cachedSignedUrl"] == "https://signed/1"
        assert item["cachedExpiresAt"] == 10


class TestBackendFailures:
    """Driver errors surface as StoreUnavailable"""

    def test_sql_store_unreachable(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
        store = SQLAlchemyShortLinkStore(sessionmaker(bind=engine))

        with pytest.raises(StoreUnavailable):
            asyncio.run(store.get_by_slug("abc123de"))

    def test_redis_store_unreachable(self):
        server = fakeredis.FakeServer()
        server.connected = False
        store = RedisShortLinkStore(fakeredis.FakeRedis(server=server, decode_responses=True))

        with pytest.raises(StoreUnavailable):
            asyncio.run(store.get_by_slug("abc123de"))

    def test_dynamodb_missing_table(self, dynamodb_store):
        table = dynamodb_store.table
        table.delete()
        table.wait_until_not_exists()

        with pytest.raises(StoreUnavailable):
            asyncio.run(dynamodb_store.get_by_slug("abc123de"))


class TestStoreFactory:
    """Test store factory"""

    def setup_method(self):
        ShortLinkStoreFactory.clear_instance()

    def teardown_method(self):
        ShortLinkStoreFactory.clear_instance()

    def test_creates_memory_store(self):
        store = ShortLinkStoreFactory.create(StoreBackend.MEMORY)
        assert isinstance(store, InMemoryShortLinkStore)

    def test_returns_singleton(self):
        first = ShortLinkStoreFactory.create(StoreBackend.MEMORY)
        second = ShortLinkStoreFactory.create(StoreBackend.MEMORY)
        assert first is second
