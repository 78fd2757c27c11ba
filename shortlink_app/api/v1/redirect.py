import re

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from shortlink_app.dependencies import get_link_resolver
from shortlink_app.errors import ValidationError
from shortlink_app.schemas.short_link import SLUG_PATTERN, ErrorResponse
from shortlink_app.services.link_resolver import LinkResolver

router = APIRouter(
    tags=["redirect"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

_SLUG_RE = re.compile(SLUG_PATTERN)


def validate_slug(slug: str) -> str:
    """Reject anything that is not exactly 8 Base62 characters."""
    if not _SLUG_RE.fullmatch(slug):
        raise ValidationError("Invalid or missing slug")
    return slug


@router.get("/link/{slug:path}", status_code=status.HTTP_302_FOUND)
async def follow_short_link(
    slug: str,
    resolver: LinkResolver = Depends(get_link_resolver)
):
    """
    Redirect to a currently valid signed URL for the document.

    The redirect itself must never be cached: its target changes every time
    the signed URL is regenerated.
    """
    target = await resolver.resolve(validate_slug(slug))
    return RedirectResponse(
        url=target,
        status_code=status.HTTP_302_FOUND,
        headers={"Cache-Control": "no-cache"},
    )
