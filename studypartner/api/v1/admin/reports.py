from fastapi import APIRouter, Depends, Query

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.admin.user import SystemStatsOut
from studypartner.services.admin.admin import AdminService

router = APIRouter(prefix="/admin", tags=["Admin Reports"])


@router.get("/notes")
async def list_all_notes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.list_all_notes_async(ctx, page, limit)


@router.get("/sessions")
async def list_all_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.list_all_sessions_async(ctx, page, limit)


@router.get("/transactions")
async def list_all_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.list_all_transactions_async(ctx, page, limit)


@router.get("/stats", response_model=SystemStatsOut)
async def get_system_stats(
    service: AdminService = Depends(AdminService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["admin"])
    return await service.get_system_stats_async(ctx)
