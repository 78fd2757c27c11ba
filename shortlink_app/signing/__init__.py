"""
Signed URL module.
Implements Strategy Pattern for issuing time-limited retrieval URLs.
"""

from .strategies import SignedURLProvider, S3SignedURLProvider, LocalSignedURLProvider
from .factory import SignedURLProviderFactory, SignerBackend

__all__ = [
    "SignedURLProvider",
    "S3SignedURLProvider",
    "LocalSignedURLProvider",
    "SignedURLProviderFactory",
    "SignerBackend",
]
