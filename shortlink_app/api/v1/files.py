from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from shortlink_app.dependencies import get_signer
from shortlink_app.errors import ArtifactNotFound, SignatureInvalid
from shortlink_app.schemas.short_link import ErrorResponse
from shortlink_app.signing.strategies import LocalSignedURLProvider, SignedURLProvider

router = APIRouter(
    tags=["files"],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.get("/files/{storage_key:path}")
async def download_signed_file(
    storage_key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    signer: SignedURLProvider = Depends(get_signer)
):
    """
    Serve a PDF behind a URL issued by the local signer.

    Only exists for the "local" signer backend; with S3 the redirect goes
    straight to the bucket and this route always answers 404.
    """
    if not isinstance(signer, LocalSignedURLProvider):
        raise ArtifactNotFound()
    if not signer.verify(storage_key, expires, signature):
        raise SignatureInvalid()

    path = signer.locate(storage_key)
    if path is None:
        raise ArtifactNotFound()
    return FileResponse(path, media_type="application/pdf", filename=path.name)
