"""
Error kinds for the short link subsystem.

Every error carries a machine-readable ``kind`` and the HTTP status it maps to.
The API layer renders them as ``{"error": kind, "message": message}``; nothing
else (tracebacks, storage keys, table names) crosses the HTTP boundary.
"""


class ShortLinkError(Exception):
    """Base class for all short link errors."""

    kind = "InternalServerError"
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShortLinkError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Invalid request"


class ShortLinkNotFound(ShortLinkError):
    kind = "ShortLinkNotFound"
    status_code = 404
    default_message = "Short link not found"


class SlugCollision(ShortLinkError):
    """A computed slug is already owned by a different (document, locale)."""

    kind = "SlugCollision"
    status_code = 409
    default_message = "Short link slug is already in use"


class StoreUnavailable(ShortLinkError):
    kind = "StoreUnavailable"
    status_code = 500
    default_message = "Short link store is unavailable"


class SignerError(ShortLinkError):
    kind = "SignerError"
    status_code = 500
    default_message = "Failed to issue a signed URL"


class EncodingOverflow(ShortLinkError):
    """Base62 value does not fit the requested width. Always a programming error."""

    kind = "EncodingOverflow"
    status_code = 500
    default_message = "Value does not fit the requested encoding width"


class SignatureInvalid(ShortLinkError):
    """A locally signed file URL was tampered with or has expired."""

    kind = "SignatureInvalid"
    status_code = 403
    default_message = "Signed URL is invalid or has expired"


class ArtifactNotFound(ShortLinkError):
    kind = "ArtifactNotFound"
    status_code = 404
    default_message = "File not found"
