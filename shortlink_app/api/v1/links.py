from fastapi import APIRouter, Depends

from shortlink_app.api.v1.redirect import validate_slug
from shortlink_app.dependencies import get_lifecycle_manager, get_store
from shortlink_app.errors import ShortLinkNotFound
from shortlink_app.schemas.short_link import (
    CleanupResponse,
    ErrorResponse,
    ShortLinkInfo,
    ShortLinkResponse,
    ShortLinkUpsert,
)
from shortlink_app.services.link_lifecycle import LinkLifecycleManager
from shortlink_app.storage.strategies import ShortLinkStore

router = APIRouter(
    tags=["links"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.put(
    "/documents/{document_id}/links/{locale}",
    response_model=ShortLinkResponse,
    responses={409: {"model": ErrorResponse}},
)
async def upsert_short_link(
    document_id: str,
    locale: str,
    payload: ShortLinkUpsert,
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager)
):
    """Create or refresh the short link after a document is rendered"""
    slug = await manager.upsert(document_id, locale, payload.artifact_key)
    return ShortLinkResponse(
        slug=slug,
        document_id=document_id,
        locale=locale,
        artifact_key=payload.artifact_key,
    )


@router.delete("/documents/{document_id}/links", response_model=CleanupResponse)
async def delete_short_links(
    document_id: str,
    manager: LinkLifecycleManager = Depends(get_lifecycle_manager)
):
    """Remove every locale's short link for a deleted document (best effort)"""
    deleted = await manager.delete_all_for_document(document_id)
    return CleanupResponse(deleted=deleted)


@router.get(
    "/links/{slug:path}",
    response_model=ShortLinkInfo,
    responses={404: {"model": ErrorResponse}},
)
async def get_short_link_info(
    slug: str,
    store: ShortLinkStore = Depends(get_store)
):
    """Get metadata for a short link (never the signed URL)"""
    record = await store.get_by_slug(validate_slug(slug))
    if record is None:
        raise ShortLinkNotFound()
    return ShortLinkInfo.model_validate(record, from_attributes=True)
