"""
Factory for creating signed URL providers.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum

from .strategies import SignedURLProvider, S3SignedURLProvider, LocalSignedURLProvider
from shortlink_app.config import settings

logger = logging.getLogger(__name__)


class SignerBackend(Enum):
    """Available signed URL backends"""
    S3 = "s3"
    LOCAL = "local"


class SignedURLProviderFactory:
    """
    Simple factory for creating signed URL providers.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: SignedURLProvider = None  # Single cached instance

    @classmethod
    def create(cls, backend: SignerBackend) -> SignedURLProvider:
        """
        Create or return cached provider instance.

        Args:
            backend: Type of signer backend (from enum)

        Returns:
            Singleton provider instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == SignerBackend.S3:
            import boto3

            s3_client = boto3.client(
                "s3",
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,
            )
            cls._instance = S3SignedURLProvider(s3_client, settings.pdf_bucket_name)
            logger.info("S3 signed URL provider initialized (bucket=%s)", settings.pdf_bucket_name)

        elif backend == SignerBackend.LOCAL:
            cls._instance = LocalSignedURLProvider(
                settings.public_base_url,
                settings.secret_key,
                settings.local_files_dir,
            )
            logger.info("Local signed URL provider initialized")

        else:
            raise ValueError(f"Unknown signer backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
