"""
Short link store strategies using Strategy Pattern.

Allows switching between persistence backends for short link records:
- In-memory: development/testing
- SQLAlchemy: any SQL database (SQLite by default)
- Redis: shared key-value store
- DynamoDB: the serverless deployment (table keyed by slug + GSI)

Every backend is atomic at the single-record level and reports its driver's
failures as StoreUnavailable. Nothing else is guaranteed across records.
"""

import logging
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

import redis
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from shortlink_app.errors import ShortLinkNotFound, StoreUnavailable
from shortlink_app.models.short_link import ShortLink
from shortlink_app.schemas.short_link import ShortLinkRecord, utc_now

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"artifact_key", "cached_signed_url", "cached_expires_at"})


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")


class ShortLinkStore(ABC):
    """
    Abstract base class for short link stores.

    This is the persistence contract the resolver and lifecycle manager
    depend on. Methods are async for interface consistency; backends with
    synchronous drivers simply run the call inline.
    """

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Optional[ShortLinkRecord]:
        """Get a record by its slug, or None."""
        pass

    @abstractmethod
    async def get_by_document_and_locale(
        self,
        document_id: str,
        locale: str
    ) -> Optional[ShortLinkRecord]:
        """Get the record for a (document, locale) pair via the secondary index."""
        pass

    @abstractmethod
    async def put(self, record: ShortLinkRecord) -> None:
        """Insert or unconditionally overwrite a record."""
        pass

    @abstractmethod
    async def update(
        self,
        slug: str,
        fields: Dict[str, Any],
        expected_artifact_key: Optional[str] = None
    ) -> bool:
        """
        Merge-patch a record.

        Args:
            slug: Slug of the record to patch
            fields: Subset of artifact_key, cached_signed_url, cached_expires_at.
                    A None value clears the field. Fields not given are untouched.
            expected_artifact_key: If given, patch only while the stored
                    artifact_key still equals it (checked atomically)

        Returns:
            True if the patch was applied, False if the artifact key no longer
            matched and nothing was written

        updated_at is always set. Raises ShortLinkNotFound if the slug is absent.
        """
        pass

    @abstractmethod
    async def query_by_document(self, document_id: str) -> List[ShortLinkRecord]:
        """List every locale's record for a document."""
        pass

    @abstractmethod
    async def delete(self, slug: str) -> None:
        """Delete a record. Deleting a missing slug is not an error."""
        pass


class InMemoryShortLinkStore(ShortLinkStore):
    """
    In-memory store using a Python dict.

    Pros:
    - No external services
    - Good for development and testing

    Cons:
    - Not shared between processes
    - Lost on restart
    """

    def __init__(self):
        self._records: Dict[str, ShortLinkRecord] = {}
        self._lock = threading.Lock()

    async def get_by_slug(self, slug: str) -> Optional[ShortLinkRecord]:
        with self._lock:
            record = self._records.get(slug)
            return record.model_copy() if record else None

    async def get_by_document_and_locale(
        self,
        document_id: str,
        locale: str
    ) -> Optional[ShortLinkRecord]:
        with self._lock:
            for record in self._records.values():
                if record.document_id == document_id and record.locale == locale:
                    return record.model_copy()
        return None

    async def put(self, record: ShortLinkRecord) -> None:
        with self._lock:
            self._records[record.slug] = record.model_copy()

    async def update(
        self,
        slug: str,
        fields: Dict[str, Any],
        expected_artifact_key: Optional[str] = None
    ) -> bool:
        _check_fields(fields)
        with self._lock:
            record = self._records.get(slug)
            if record is None:
                raise ShortLinkNotFound(f"Short link {slug} not found")
            if expected_artifact_key is not None and record.artifact_key != expected_artifact_key:
                return False
            changes = dict(fields, updated_at=utc_now())
            self._records[slug] = ShortLinkRecord.model_validate(
                {**record.model_dump(), **changes}
            )
            return True

    async def query_by_document(self, document_id: str) -> List[ShortLinkRecord]:
        with self._lock:
            return sorted(
                (r.model_copy() for r in self._records.values() if r.document_id == document_id),
                key=lambda r: r.locale,
            )

    async def delete(self, slug: str) -> None:
        with self._lock:
            self._records.pop(slug, None)

    def __len__(self) -> int:
        return len(self._records)


class SQLAlchemyShortLinkStore(ShortLinkStore):
    """
    SQL implementation backed by the short_links table.

    Each operation runs in its own session and transaction, so a record is
    never left half-written. A composite index on (document_id, locale)
    serves the lifecycle lookups.
    """

    def __init__(self, session_factory):
        """
        Initialize SQL store.

        Args:
            session_factory: sessionmaker bound to the target engine
        """
        self.session_factory = session_factory

    async def get_by_slug(self, slug: str) -> Optional[ShortLinkRecord]:
        try:
            with self.session_factory() as session:
                row = session.get(ShortLink, slug)
                return ShortLinkRecord.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailable("Failed to read short link") from e

    async def get_by_document_and_locale(
        self,
        document_id: str,
        locale: str
    ) -> Optional[ShortLinkRecord]:
        stmt = select(ShortLink).where(
            ShortLink.document_id == document_id,
            ShortLink.locale == locale,
        )
        try:
            with self.session_factory() as session:
                row = session.execute(stmt).scalars().first()
                return ShortLinkRecord.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailable("Failed to read short link") from e

    async def put(self, record: ShortLinkRecord) -> None:
        try:
            with self.session_factory() as session:
                session.merge(ShortLink(**record.model_dump()))
                session.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Failed to write short link") from e

    async def update(
        self,
        slug: str,
        fields: Dict[str, Any],
        expected_artifact_key: Optional[str] = None
    ) -> bool:
        _check_fields(fields)
        try:
            with self.session_factory() as session:
                row = session.get(ShortLink, slug, with_for_update=True)
                if row is None:
                    raise ShortLinkNotFound(f"Short link {slug} not found")
                if expected_artifact_key is not None and row.artifact_key != expected_artifact_key:
                    return False
                for name, value in fields.items():
                    setattr(row, name, value)
                row.updated_at = utc_now()
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise StoreUnavailable("Failed to update short link") from e

    async def query_by_document(self, document_id: str) -> List[ShortLinkRecord]:
        stmt = (
            select(ShortLink)
            .where(ShortLink.document_id == document_id)
            .order_by(ShortLink.locale)
        )
        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).scalars().all()
                return [ShortLinkRecord.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable("Failed to query short links") from e

    async def delete(self, slug: str) -> None:
        try:
            with self.session_factory() as session:
                session.execute(delete(ShortLink).where(ShortLink.slug == slug))
                session.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable("Failed to delete short link") from e


class RedisShortLinkStore(ShortLinkStore):
    """
    Redis implementation.

    Layout:
    - short_link:<slug>                 hash with the record fields
    - short_link:document:<document_id> set of slugs (secondary index)

    Absent optional fields are simply missing from the hash. Writes that
    touch both keys run in a MULTI/EXEC transaction; update and delete WATCH
    the record so they never act on a record deleted underneath them.
    """

    RECORD_PREFIX = "short_link:"
    DOCUMENT_PREFIX = "short_link:document:"

    def __init__(self, redis_client):
        """
        Initialize Redis store.

        Args:
            redis_client: Redis client created with decode_responses=True
        """
        self.redis = redis_client

    def _record_key(self, slug: str) -> str:
        return f"{self.RECORD_PREFIX}{slug}"

    def _document_key(self, document_id: str) -> str:
        return f"{self.DOCUMENT_PREFIX}{document_id}"

    @staticmethod
    def _to_hash(record: ShortLinkRecord) -> Dict[str, str]:
        data = record.model_dump(mode="json", exclude_none=True)
        return {name: str(value) for name, value in data.items()}

    def _load(self, slug: str) -> Optional[ShortLinkRecord]:
        data = self.redis.hgetall(self._record_key(slug))
        return ShortLinkRecord.model_validate(data) if data else None

    async def get_by_slug(self, slug: str) -> Optional[ShortLinkRecord]:
        try:
            return self._load(slug)
        except redis.RedisError as e:
            raise StoreUnavailable("Failed to read short link") from e

    async def get_by_document_and_locale(
        self,
        document_id: str,
        locale: str
    ) -> Optional[ShortLinkRecord]:
        for record in await self.query_by_document(document_id):
            if record.locale == locale:
                return record
        return None

    async def put(self, record: ShortLinkRecord) -> None:
        key = self._record_key(record.slug)

        def _write(pipe):
            previous_document = pipe.hget(key, "document_id")
            pipe.multi()
            if previous_document and previous_document != record.document_id:
                pipe.srem(self._document_key(previous_document), record.slug)
            pipe.delete(key)
            pipe.hset(key, mapping=self._to_hash(record))
            pipe.sadd(self._document_key(record.document_id), record.slug)

        try:
            self.redis.transaction(_write, key)
        except redis.RedisError as e:
            raise StoreUnavailable("Failed to write short link") from e

    async def update(
        self,
        slug: str,
        fields: Dict[str, Any],
        expected_artifact_key: Optional[str] = None
    ) -> bool:
        _check_fields(fields)
        key = self._record_key(slug)
        to_set = {name: str(value) for name, value in fields.items() if value is not None}
        to_set["updated_at"] = utc_now().isoformat()
        to_clear = [name for name, value in fields.items() if value is None]
        applied = False

        def _patch(pipe):
            nonlocal applied
            if not pipe.exists(key):
                raise ShortLinkNotFound(f"Short link {slug} not found")
            if expected_artifact_key is not None:
                if pipe.hget(key, "artifact_key") != expected_artifact_key:
                    applied = False
                    return
            pipe.multi()
            pipe.hset(key, mapping=to_set)
            if to_clear:
                pipe.hdel(key, *to_clear)
            applied = True

        try:
            self.redis.transaction(_patch, key)
        except redis.RedisError as e:
            raise StoreUnavailable("Failed to update short link") from e
        return applied

    async def query_by_document(self, document_id: str) -> List[ShortLinkRecord]:
        try:
            slugs = self.redis.smembers(self._document_key(document_id))
            records = [self._load(slug) for slug in slugs]
        except redis.RedisError as e:
            raise StoreUnavailable("Failed to query short links") from e
        # Index entries can outlive a record removed by another writer
        return sorted(
            (r for r in records if r is not None and r.document_id == document_id),
            key=lambda r: r.locale,
        )

    async def delete(self, slug: str) -> None:
        key = self._record_key(slug)

        def _remove(pipe):
            document_id = pipe.hget(key, "document_id")
            pipe.multi()
            pipe.delete(key)
            if document_id:
                pipe.srem(self._document_key(document_id), slug)

        try:
            self.redis.transaction(_remove, key)
        except redis.RedisError as e:
            raise StoreUnavailable("Failed to delete short link") from e


class DynamoDBShortLinkStore(ShortLinkStore):
    """
    DynamoDB implementation for the serverless deployment.

    Table layout:
    - Partition key: slug
    - GSI documentId-locale-index: documentId (hash) + locale (range)

    Attribute names are camelCase, following DynamoDB item conventions;
    ATTRIBUTES maps them to the record fields.
    """

    DOCUMENT_INDEX = "documentId-locale-index"

    ATTRIBUTES = {
        "slug": "slug",
        "document_id": "documentId",
        "locale": "locale",
        "artifact_key": "artifactKey",
        "cached_signed_url": "cachedSignedUrl",
        "cached_expires_at": "cachedExpiresAt",
        "created_at": "createdAt",
        "updated_at": "updatedAt",
    }

    def __init__(self, table):
        """
        Initialize DynamoDB store.

        Args:
            table: boto3 DynamoDB Table resource
        """
        self.table = table

    @classmethod
    def create_table(cls, dynamodb, table_name: str):
        """Create the short links table with its GSI (local development and tests)."""
        table = dynamodb.create_table(
            TableName=table_name,
            KeySchema=[{"AttributeName": "slug", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "slug", "AttributeType": "S"},
                {"AttributeName": "documentId", "AttributeType": "S"},
                {"AttributeName": "locale", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": cls.DOCUMENT_INDEX,
                    "KeySchema": [
                        {"AttributeName": "documentId", "KeyType": "HASH"},
                        {"AttributeName": "locale", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        logger.info("Created DynamoDB table %s", table_name)
        return table

    def _to_item(self, record: ShortLinkRecord) -> Dict[str, Any]:
        data = record.model_dump(mode="json", exclude_none=True)
        return {self.ATTRIBUTES[name]: value for name, value in data.items()}

    def _from_item(self, item: Dict[str, Any]) -> ShortLinkRecord:
        data = {}
        for name, attribute in self.ATTRIBUTES.items():
            if attribute in item:
                value = item[attribute]
                data[name] = int(value) if isinstance(value, Decimal) else value
        return ShortLinkRecord.model_validate(data)

    def _query(self, condition) -> List[Dict[str, Any]]:
        items = []
        kwargs = {"IndexName": self.DOCUMENT_INDEX, "KeyConditionExpression": condition}
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    async def get_by_slug(self, slug: str) -> Optional[ShortLinkRecord]:
        try:
            item = self.table.get_item(Key={"slug": slug}).get("Item")
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable("Failed to read short link") from e
        return self._from_item(item) if item else None

    async def get_by_document_and_locale(
        self,
        document_id: str,
        locale: str
    ) -> Optional[ShortLinkRecord]:
        condition = Key("documentId").eq(document_id) & Key("locale").eq(locale)
        try:
            items = self._query(condition)
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable("Failed to query short links") from e
        return self._from_item(items[0]) if items else None

    async def put(self, record: ShortLinkRecord) -> None:
        try:
            self.table.put_item(Item=self._to_item(record))
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable("Failed to write short link") from e

    async def update(
        self,
        slug: str,
        fields: Dict[str, Any],
        expected_artifact_key: Optional[str] = None
    ) -> bool:
        _check_fields(fields)
        names = {"#slug": "slug", "#updatedAt": "updatedAt"}
        values = {":updatedAt": utc_now().isoformat()}
        set_clauses = ["#updatedAt = :updatedAt"]
        remove_clauses = []
        condition = "attribute_exists(#slug)"
        if expected_artifact_key is not None:
            names["#artifactKey"] = "artifactKey"
            values[":expectedArtifactKey"] = expected_artifact_key
            condition += " AND #artifactKey = :expectedArtifactKey"

        for name, value in fields.items():
            attribute = self.ATTRIBUTES[name]
            names[f"#{attribute}"] = attribute
            if value is None:
                remove_clauses.append(f"#{attribute}")
            else:
                set_clauses.append(f"#{attribute} = :{attribute}")
                values[f":{attribute}"] = value

        expression = "SET " + ", ".join(set_clauses)
        if remove_clauses:
            expression += " REMOVE " + ", ".join(remove_clauses)

        try:
            self.table.update_item(
                Key={"slug": slug},
                UpdateExpression=expression,
                ConditionExpression=condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                raise StoreUnavailable("Failed to update short link") from e
            # The condition cannot tell a missing record from a changed key
            if expected_artifact_key is None or await self.get_by_slug(slug) is None:
                raise ShortLinkNotFound(f"Short link {slug} not found") from e
            return False
        except BotoCoreError as e:
            raise StoreUnavailable("Failed to update short link") from e
        return True

    async def query_by_document(self, document_id: str) -> List[ShortLinkRecord]:
        try:
            items = self._query(Key("documentId").eq(document_id))
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable("Failed to query short links") from e
        return [self._from_item(item) for item in items]

    async def delete(self, slug: str) -> None:
        try:
            self.table.delete_item(Key={"slug": slug})
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable("Failed to delete short link") from e
