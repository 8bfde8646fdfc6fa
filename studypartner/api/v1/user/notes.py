from uuid import UUID

from fastapi import APIRouter, Depends, status

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.user.note import (
    FlashcardPage,
    NoteCreateSchema,
    NoteOut,
    QuizOut,
    SummaryOut,
)
from studypartner.services.user.notes import NoteService

router = APIRouter(prefix="/notes", tags=["Notes"])


@router.post("", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
async def upload_note(
    schema: NoteCreateSchema,
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.upload_note_async(ctx, schema)


@router.get("", response_model=list[NoteOut])
async def list_notes(
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.list_notes_async(ctx)


@router.get("/{note_id}", response_model=NoteOut)
async def get_note(
    note_id: UUID,
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.get_note_async(ctx, note_id)


@router.delete("/{note_id}")
async def delete_note(
    note_id: UUID,
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.delete_note_async(ctx, note_id)


@router.get("/{note_id}/flashcards", response_model=FlashcardPage)
async def get_flashcards(
    note_id: UUID,
    page: int = 1,
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.get_flashcards_async(ctx, note_id, page)


@router.get("/{note_id}/quizzes", response_model=list[QuizOut])
async def get_quizzes(
    note_id: UUID,
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.get_quizzes_async(ctx, note_id)


@router.get("/{note_id}/summaries", response_model=list[SummaryOut])
async def get_summaries(
    note_id: UUID,
    service: NoteService = Depends(NoteService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await service.get_summaries_async(ctx, note_id)
