import logging
import time
from typing import Callable, Optional

from shortlink_app.config import settings
from shortlink_app.errors import ShortLinkNotFound, StoreUnavailable
from shortlink_app.signing.strategies import SignedURLProvider
from shortlink_app.storage.strategies import ShortLinkStore

logger = logging.getLogger(__name__)


def epoch_seconds() -> int:
    return int(time.time())


class LinkResolver:
    """
    Resolve a slug to a signed URL, regenerating the URL lazily.

    The resolver holds no state between requests: the last signed URL and
    its expiry are cached on the record itself. Two concurrent requests for
    the same stale slug may both call the signer and both write the cache;
    the last write wins and both redirects are valid.
    """

    MAX_ATTEMPTS = 3

    def __init__(
        self,
        store: ShortLinkStore,
        signer: SignedURLProvider,
        presigned_ttl_seconds: Optional[int] = None,
        refresh_buffer_seconds: Optional[int] = None,
        credential_safety_margin_seconds: Optional[int] = None,
        clock: Callable[[], int] = epoch_seconds,
    ):
        """
        Args:
            store: Short link store
            signer: Signed URL provider
            presigned_ttl_seconds: Lifetime requested from the signer
            refresh_buffer_seconds: Minimum remaining validity to serve from cache
            credential_safety_margin_seconds: Subtracted from the TTL when
                recording the expiry, in case the signing credentials die first
            clock: Returns the current epoch time in seconds
        """
        self.store = store
        self.signer = signer
        self.presigned_ttl_seconds = (
            settings.presigned_ttl_seconds if presigned_ttl_seconds is None else presigned_ttl_seconds
        )
        self.refresh_buffer_seconds = (
            settings.refresh_buffer_seconds if refresh_buffer_seconds is None else refresh_buffer_seconds
        )
        self.credential_safety_margin_seconds = (
            settings.credential_safety_margin_seconds
            if credential_safety_margin_seconds is None
            else credential_safety_margin_seconds
        )
        self.clock = clock

    async def resolve(self, slug: str) -> str:
        """
        Return the redirect target for a slug.

        Flow:
        1. Look up the record (absent -> ShortLinkNotFound)
        2. Cached URL valid beyond the refresh buffer -> return it, no writes
        3. Otherwise issue a new URL and store it with its expiry, but only
           while the record still points at the artifact that was signed
        4. If a re-render replaced the artifact in the meantime, start over
           so the URL for the old artifact is neither cached nor returned

        StoreUnavailable and SignerError propagate: a failed resolution must
        be visible to the caller, never replaced by a guess.
        """
        for _ in range(self.MAX_ATTEMPTS):
            record = await self.store.get_by_slug(slug)
            if record is None:
                logger.info("Short link not found: %s", slug)
                raise ShortLinkNotFound()

            now = self.clock()
            if record.is_cache_fresh(now, self.refresh_buffer_seconds):
                logger.debug("Serving cached signed URL for %s (expires at %s)", slug, record.cached_expires_at)
                return record.cached_signed_url

            url = await self.signer.issue(record.artifact_key, ttl_seconds=self.presigned_ttl_seconds)
            expires_at = now + self.presigned_ttl_seconds - self.credential_safety_margin_seconds

            written = await self.store.update(
                slug,
                {"cached_signed_url": url, "cached_expires_at": expires_at},
                expected_artifact_key=record.artifact_key,
            )
            if written:
                logger.info("Refreshed signed URL for %s (expires at %s)", slug, expires_at)
                return url
            logger.info("Artifact for %s changed while signing, resolving again", slug)

        raise StoreUnavailable(f"Short link {slug} kept changing during resolution")
