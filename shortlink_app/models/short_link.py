from sqlalchemy import Column, String, DateTime, BigInteger, Index
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class ShortLink(Base):
    """
    Short link row: one per (document_id, locale).

    The cached signed URL lives on the row itself, so resolver processes keep
    no state of their own. cached_signed_url and cached_expires_at are always
    written together.
    """
    __tablename__ = "short_links"

    slug = Column(String(8), primary_key=True)
    document_id = Column(String, nullable=False)
    locale = Column(String(16), nullable=False)
    artifact_key = Column(String, nullable=False)
    cached_signed_url = Column(String, nullable=True)
    cached_expires_at = Column(BigInteger, nullable=True)  # epoch seconds
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_short_links_document_locale", "document_id", "locale"),
    )
