"""Standalone document upload. Returns a reference that can be attached to any permit slot."""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.dependencies import get_current_actor, get_uploads
from app.schemas.move_permit import UploadResponse
from app.services.auth import Actor
from app.services.uploads import LocalUploadStore, UploadError, UploadErrorKind

router = APIRouter(prefix="/uploads", tags=["uploads"])

_STATUS_BY_KIND = {
    UploadErrorKind.too_large: 413,
    UploadErrorKind.bad_type: 415,
    UploadErrorKind.storage_failed: 502,
}


@router.post("/", response_model=UploadResponse, status_code=201)
def upload_document(
    file: UploadFile = File(...),
    uploads: LocalUploadStore = Depends(get_uploads),
    actor: Actor = Depends(get_current_actor),
):
    result = uploads.upload(file.filename or "", file.file)
    if isinstance(result, UploadError):
        raise HTTPException(status_code=_STATUS_BY_KIND[result.kind], detail=result.message)
    return UploadResponse(reference=result.reference, filename=result.filename)
