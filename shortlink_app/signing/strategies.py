"""
Signed URL providers using Strategy Pattern.

A provider turns a storage key into a time-limited, credential-free URL:
- S3: presigned GET URLs for the PDF bucket (production)
- Local: HMAC-signed URLs for development without AWS credentials
"""

import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

from botocore.exceptions import BotoCoreError, ClientError

from shortlink_app.errors import SignerError

logger = logging.getLogger(__name__)


class SignedURLProvider(ABC):
    """
    Abstract base class for signed URL providers.

    Providers never cache: every call issues a new URL. Caching is the
    resolver's job and lives in the short link record.
    """

    @abstractmethod
    async def issue(self, storage_key: str, ttl_seconds: int) -> str:
        """
        Issue a signed retrieval URL.

        Args:
            storage_key: Storage-layer key of the artifact
            ttl_seconds: Requested lifetime of the URL

        Returns:
            The signed URL

        Raises:
            SignerError: If the URL cannot be issued
        """
        pass


class S3SignedURLProvider(SignedURLProvider):
    """
    S3 presigned GET URLs.

    Note: presigning is a local computation, but the URL is only as durable
    as the credentials that signed it. With temporary credentials (e.g. a
    Lambda role) the URL dies when the session does, whatever ExpiresIn says.
    """

    def __init__(self, s3_client, bucket: str):
        """
        Args:
            s3_client: boto3 S3 client
            bucket: Bucket holding the rendered PDFs
        """
        self.s3 = s3_client
        self.bucket = bucket

    async def issue(self, storage_key: str, ttl_seconds: int) -> str:
        if not storage_key:
            raise SignerError("Storage key must be a non-empty string")
        try:
            url = self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": storage_key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to presign s3://%s/%s: %s", self.bucket, storage_key, e)
            raise SignerError() from e
        logger.debug("Generated presigned URL for s3://%s/%s", self.bucket, storage_key)
        return url


class LocalSignedURLProvider(SignedURLProvider):
    """
    HMAC-signed URLs on the service's own host.

    Used in development, where there is no bucket to presign against.
    The signature covers the key and the expiry, so neither can be altered.
    Artifacts are read from ``files_dir`` by the /files route.
    """

    def __init__(self, base_url: str, secret_key: str, files_dir: str, clock=time.time):
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key.encode("utf-8")
        self.files_dir = Path(files_dir).resolve()
        self.clock = clock

    def _signature(self, storage_key: str, expires: int) -> str:
        message = f"{storage_key}:{expires}".encode("utf-8")
        return hmac.new(self.secret_key, message, hashlib.sha256).hexdigest()

    async def issue(self, storage_key: str, ttl_seconds: int) -> str:
        if not storage_key:
            raise SignerError("Storage key must be a non-empty string")
        expires = int(self.clock()) + ttl_seconds
        query = urlencode({
            "expires": expires,
            "signature": self._signature(storage_key, expires),
        })
        return f"{self.base_url}/files/{quote(storage_key)}?{query}"

    def verify(self, storage_key: str, expires: int, signature: str) -> bool:
        """Check a signature issued by this provider and that it has not expired."""
        if expires < int(self.clock()):
            return False
        return hmac.compare_digest(self._signature(storage_key, expires), signature)

    def locate(self, storage_key: str) -> Optional[Path]:
        """Path of the artifact under files_dir, or None if absent or outside it."""
        path = (self.files_dir / storage_key).resolve()
        if not path.is_relative_to(self.files_dir) or not path.is_file():
            return None
        return path
