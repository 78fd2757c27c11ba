"""
Database models for quote short links.

Only the SQLAlchemy store backend uses these; the Redis and DynamoDB
backends persist the same fields in their own layouts.
"""

from .short_link import ShortLink

__all__ = ["ShortLink"]
