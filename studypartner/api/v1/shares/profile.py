from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from studypartner.core.deps import AuthorizationService
from studypartner.core.errors import NotFound
from studypartner.schemas.shares.profile import (
    ProfileCreateSchema,
    ProfileOut,
    ProfileUpdateSchema,
    TutorOut,
)
from studypartner.services.shares.profile import ProfileService

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.post("", response_model=ProfileOut, status_code=status.HTTP_201_CREATED)
async def create_profile(
    schema: ProfileCreateSchema,
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    return await service.create_profile_async(ctx, schema)


@router.get("/me", response_model=ProfileOut)
async def get_my_profile(
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    profile = await service.get_profile_async(ctx)
    if not profile:
        raise NotFound("Profile not found")
    return profile


@router.put("/me", response_model=ProfileOut)
async def update_my_profile(
    schema: ProfileUpdateSchema,
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.update_profile_async(ctx, schema)


@router.get("/tutors", response_model=list[ProfileOut])
async def list_tutors(
    subject: Optional[str] = None,
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    await authorization_service.get_current_user()
    return await service.list_tutors_async(subject)


@router.get("/tutors/{tutor_id}", response_model=TutorOut)
async def get_tutor(
    tutor_id: UUID,
    service: ProfileService = Depends(ProfileService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    await authorization_service.get_current_user()
    return await service.get_tutor_async(tutor_id)
