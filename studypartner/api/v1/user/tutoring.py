from uuid import UUID

from fastapi import APIRouter, Depends, status

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.user.tutoring import (
    SessionCompleteSchema,
    SessionOut,
    SessionRateSchema,
    SessionRequestSchema,
    SessionRespondSchema,
    SessionWithStudentOut,
    SessionWithTutorOut,
)
from studypartner.services.user.tutoring import TutoringService

router = APIRouter(prefix="/tutoring", tags=["Tutoring"])


@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def request_session(
    schema: SessionRequestSchema,
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["student"])
    return await service.request_session_async(ctx, schema)


@router.get("/sessions/student", response_model=list[SessionWithTutorOut])
async def list_student_sessions(
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["student"])
    return await service.list_student_sessions_async(ctx)


@router.get("/sessions/tutor", response_model=list[SessionWithStudentOut])
async def list_tutor_sessions(
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["tutor"])
    return await service.list_tutor_sessions_async(ctx)


@router.post("/sessions/{session_id}/respond", response_model=SessionOut)
async def respond_to_session(
    session_id: UUID,
    schema: SessionRespondSchema,
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["tutor"])
    return await service.respond_to_session_async(ctx, session_id, schema)


@router.post("/sessions/{session_id}/complete", response_model=SessionOut)
async def complete_session(
    session_id: UUID,
    schema: SessionCompleteSchema,
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["tutor"])
    return await service.complete_session_async(ctx, session_id, schema)


@router.post("/sessions/{session_id}/rate", response_model=SessionOut)
async def rate_session(
    session_id: UUID,
    schema: SessionRateSchema,
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["student"])
    return await service.rate_session_async(ctx, session_id, schema)


@router.post("/sessions/{session_id}/cancel", response_model=SessionOut)
async def cancel_session(
    session_id: UUID,
    service: TutoringService = Depends(TutoringService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_role(["student"])
    return await service.cancel_session_async(ctx, session_id)
