from fastapi import APIRouter, Depends, Request

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.user.note import UploadUrlOut
from studypartner.services.shares.storage import StorageService, get_storage_service

router = APIRouter(prefix="/files", tags=["Uploads"])


@router.post("/upload-url", response_model=UploadUrlOut)
async def create_upload_url(
    storage: StorageService = Depends(get_storage_service),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await storage.generate_upload_url_async(ctx)


@router.put("/{storage_id}")
async def upload_file(
    storage_id: str,
    token: str,
    request: Request,
    storage: StorageService = Depends(get_storage_service),
):
    # the signed token in the URL is the only credential for this call
    return await storage.store_async(storage_id, token, request.stream())
