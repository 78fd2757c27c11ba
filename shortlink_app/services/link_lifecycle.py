import logging
from typing import Optional

from shortlink_app.config import settings
from shortlink_app.errors import SlugCollision, StoreUnavailable
from shortlink_app.schemas.short_link import ShortLinkRecord, utc_now
from shortlink_app.services.slug_factory import SlugFactory
from shortlink_app.services.slug_strategies import SlugStrategy
from shortlink_app.storage.strategies import ShortLinkStore

logger = logging.getLogger(__name__)


class LinkLifecycleManager:
    """
    Keep short link records in step with their documents.

    Called by the document pipeline: upsert after every render, and
    delete_all_for_document when a document is removed.
    """

    def __init__(
        self,
        store: ShortLinkStore,
        slug_strategy: Optional[SlugStrategy] = None,
        public_base_url: Optional[str] = None,
    ):
        self.store = store
        self.slug_strategy = slug_strategy or SlugFactory.create_strategy()
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    def short_url(self, slug: str) -> str:
        """Public URL for a slug."""
        return f"{self.public_base_url}/link/{slug}"

    async def upsert(self, document_id: str, locale: str, artifact_key: str) -> str:
        """
        Create or update the short link for a rendered document.

        Process:
        1. Compute the slug from (document_id, locale)
        2. Absent -> insert a record with an empty URL cache
        3. Present -> update artifact_key; if the key changed, clear the
           cached URL so the old artifact is never served again
        4. Return the slug

        Repeating a call with the same arguments leaves the same record.

        Raises:
            SlugCollision: The slug belongs to another (document, locale)
            StoreUnavailable: The store failed
        """
        slug = self.slug_strategy.generate(document_id, locale)
        existing = await self.store.get_by_slug(slug)

        if existing is None:
            now = utc_now()
            await self.store.put(ShortLinkRecord(
                slug=slug,
                document_id=document_id,
                locale=locale,
                artifact_key=artifact_key,
                created_at=now,
                updated_at=now,
            ))
            logger.info("Created short link %s for document %s (%s)", slug, document_id, locale)
            return slug

        if existing.document_id != document_id or existing.locale != locale:
            logger.error(
                "Slug collision on %s: requested %s (%s), stored %s (%s)",
                slug, document_id, locale, existing.document_id, existing.locale,
            )
            raise SlugCollision()

        fields = {"artifact_key": artifact_key}
        if existing.artifact_key != artifact_key:
            fields["cached_signed_url"] = None
            fields["cached_expires_at"] = None

        await self.store.update(slug, fields)
        logger.info("Updated short link %s for document %s (%s)", slug, document_id, locale)
        return slug

    async def delete_all_for_document(self, document_id: str) -> int:
        """
        Delete every locale's short link for a document.

        Best effort: a store failure is logged and swallowed, and the number
        of records deleted before it is returned. Document deletion must not
        fail because link cleanup did; an orphaned link fails closed once its
        artifact is gone from storage.
        """
        deleted = 0
        try:
            records = await self.store.query_by_document(document_id)
            for record in records:
                await self.store.delete(record.slug)
                deleted += 1
                logger.info("Deleted short link %s for document %s", record.slug, document_id)
        except StoreUnavailable as e:
            logger.warning(
                "Failed to delete short links for document %s after %d deletions: %s",
                document_id, deleted, e,
            )
        return deleted
