from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.admin.user import AdminUserOut, ApproveTutorSchema
from studypartner.schemas.shares.profile import TokenAdjustSchema
from studypartner.services.admin.admin import AdminService
from studypartner.services.shares.profile import ProfileService

router = APIRouter(prefix="/admin/users", tags=["Admin Users"])


@router.get("", response_model=list[AdminUserOut])
async def list_users(
    role: Optional[str] = None,
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.list_users_async(ctx, role)


@router.post("/approve-tutor")
async def approve_tutor(
    schema: ApproveTutorSchema,
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.approve_tutor_async(ctx, schema.tutor_id, schema.approved)


@router.post("/tokens/add")
async def add_tokens(
    schema: TokenAdjustSchema,
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    balance = await service.add_tokens_async(ctx, schema.user_id, schema.amount)
    return {"user_id": schema.user_id, "tokens": balance}


@router.post("/tokens/deduct")
async def deduct_tokens(
    schema: TokenAdjustSchema,
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    balance = await service.deduct_tokens_async(ctx, schema.user_id, schema.amount)
    return {"user_id": schema.user_id, "tokens": balance}


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.delete_user_async(ctx, user_id)
