from fastapi import APIRouter, Depends, Query, status

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.user.analytics import (
    FocusStatsOut,
    StudyAnalyticsOut,
    StudySessionCreateSchema,
)
from studypartner.services.user.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.post("/study-sessions", status_code=status.HTTP_201_CREATED)
async def track_study_session(
    schema: StudySessionCreateSchema,
    service: AnalyticsService = Depends(AnalyticsService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    record = await service.track_study_session_async(ctx, schema)
    return {"id": record.id, "date": record.date}


@router.get("/study", response_model=StudyAnalyticsOut)
async def get_study_analytics(
    days: int = Query(30, ge=1, le=365),
    service: AnalyticsService = Depends(AnalyticsService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.get_study_analytics_async(ctx, days)


@router.get("/focus", response_model=FocusStatsOut)
async def get_focus_stats(
    service: AnalyticsService = Depends(AnalyticsService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.get_focus_stats_async(ctx)
