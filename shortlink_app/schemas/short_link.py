from pydantic import BaseModel, Field, computed_field, ConfigDict, model_validator
from typing import Optional
from datetime import datetime, timezone
from shortlink_app.config import settings


SLUG_PATTERN = r"^[0-9a-zA-Z]{8}$"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ShortLinkRecord(BaseModel):
    """Short link record as seen by services, independent of the store backend.

    from_attributes=True lets the SQLAlchemy backend validate ORM rows directly.
    """
    slug: str = Field(..., pattern=SLUG_PATTERN)
    document_id: str
    locale: str
    artifact_key: str
    cached_signed_url: Optional[str] = None
    cached_expires_at: Optional[int] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def check_cache_pair(self) -> "ShortLinkRecord":
        """Cached URL and its expiry are written together or not at all."""
        if (self.cached_signed_url is None) != (self.cached_expires_at is None):
            raise ValueError("cached_signed_url and cached_expires_at must be set together")
        return self

    def is_cache_fresh(self, now: int, buffer_seconds: int) -> bool:
        """True when the cached URL outlives ``now`` by more than the buffer."""
        if self.cached_signed_url is None or self.cached_expires_at is None:
            return False
        return self.cached_expires_at > now + buffer_seconds


class ShortLinkUpsert(BaseModel):
    artifact_key: str = Field(..., min_length=1, description="Storage key of the rendered PDF")


class ShortLinkResponse(BaseModel):
    """Returned to the document pipeline after an upsert."""
    slug: str
    document_id: str
    locale: str
    artifact_key: str

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.public_base_url.rstrip('/')}/link/{self.slug}"


class ShortLinkInfo(BaseModel):
    """Public metadata for a slug. Never includes the signed URL."""
    slug: str
    document_id: str
    locale: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CleanupResponse(BaseModel):
    deleted: int


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Machine-readable error kind")
    message: str
