"""
Slug generation strategies for quote short links.
Uses Strategy Pattern so the digest algorithm can be chosen per deployment.
"""

import hashlib
from abc import ABC, abstractmethod

from shortlink_app.services import base62


SLUG_LENGTH = 8
HASH_BITS = 48


class SlugStrategy(ABC):
    """
    Abstract base class for slug generation strategies.

    A strategy must be a pure function of (document_id, locale): no randomness,
    no clock, no machine-dependent state. The same inputs always give the
    same slug, which is what lets upsert find an existing record.
    """

    length = SLUG_LENGTH

    def generate(self, document_id: str, locale: str) -> str:
        """
        Generate the slug for a document in a locale.

        Process:
        1. Digest "<document_id>_<locale>"
        2. Keep the first 48 bits of the digest
        3. Fold into the 62^8 code space
        4. Encode as fixed-width Base62

        Note: 2^48 is larger than 62^8, so step 3 is required for every
        value to fit in 8 characters. Collisions are governed by the
        birthday bound over ~2.2e14 values.
        """
        digest = self._digest(f"{document_id}_{locale}".encode("utf-8"))
        value = int(digest[:HASH_BITS // 4], 16)
        value %= base62.capacity(self.length)
        return base62.encode(value, self.length)

    @abstractmethod
    def _digest(self, data: bytes) -> str:
        """Return the hex digest of ``data``."""
        pass


class Sha256SlugStrategy(SlugStrategy):
    """
    SHA-256 digest strategy.

    Default strategy. Switching strategies after links have been issued
    gives every document a new slug on its next upsert.
    """

    def _digest(self, data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()


class Blake2bSlugStrategy(SlugStrategy):
    """BLAKE2b digest strategy (faster, same avalanche properties)."""

    def _digest(self, data: bytes) -> str:
        return hashlib.blake2b(data, digest_size=32).hexdigest()
