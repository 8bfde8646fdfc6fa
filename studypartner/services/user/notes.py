import math
import uuid

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import NotFound
from studypartner.core.scheduler import EnrichmentQueue, get_enrichment_queue
from studypartner.db.models.database import Flashcards, Notes, Quizzes, Summaries
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.user.note import NoteCreateSchema
from studypartner.services.shares.storage import StorageService, get_storage_service

FLASHCARDS_PER_PAGE = 5


class NoteService:
    """Student notes and the artifacts enrichment derives from them."""

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        storage: StorageService = Depends(get_storage_service),
        queue: EnrichmentQueue = Depends(get_enrichment_queue),
    ):
        self.db = db
        self.storage = storage
        self.queue = queue

    async def _get_owned_note(self, ctx: AuthContext, note_id: uuid.UUID) -> Notes:
        note = await self.db.scalar(
            select(Notes).where(Notes.id == note_id, Notes.user_id == ctx.user_id)
        )
        if not note:
            raise NotFound("Note not found")
        return note

    # ==========================================================================
    # 📤 Upload
    # ==========================================================================
    async def upload_note_async(self, ctx: AuthContext, schema: NoteCreateSchema) -> Notes:
        try:
            if schema.file_id:
                await self.storage.require_async(ctx.user_id, schema.file_id)

            now = get_now()
            note = Notes(
                id=uuid.uuid4(),
                user_id=ctx.user_id,
                title=schema.title,
                content=schema.content,
                subject=schema.subject,
                file_id=schema.file_id,
                file_type=schema.file_type,
                processed=False,
                processing_status="pending",
                created_at=now,
                updated_at=now,
            )
            self.db.add(note)
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Notes][Upload] {e}")
            raise HTTPException(500, "Failed to upload note")

        # enrichment runs out of band; the upload response never waits for it
        self.queue.enqueue(note.id)
        logger.info(f"[Notes] {ctx.user_id} uploaded note {note.id}")
        return note

    # ==========================================================================
    # 📚 Read
    # ==========================================================================
    async def list_notes_async(self, ctx: AuthContext) -> list[Notes]:
        result = await self.db.scalars(
            select(Notes)
            .where(Notes.user_id == ctx.user_id)
            .order_by(Notes.created_at.desc())
        )
        return list(result.all())

    async def get_note_async(self, ctx: AuthContext, note_id: uuid.UUID) -> Notes:
        return await self._get_owned_note(ctx, note_id)

    async def get_flashcards_async(
        self, ctx: AuthContext, note_id: uuid.UUID, page: int = 1
    ) -> dict:
        await self._get_owned_note(ctx, note_id)
        page = max(page, 1)

        total = await self.db.scalar(
            select(func.count(Flashcards.id)).where(Flashcards.note_id == note_id)
        ) or 0
        cards = (
            await self.db.scalars(
                select(Flashcards)
                .where(Flashcards.note_id == note_id)
                .order_by(Flashcards.created_at.asc(), Flashcards.id.asc())
                .offset((page - 1) * FLASHCARDS_PER_PAGE)
                .limit(FLASHCARDS_PER_PAGE)
            )
        ).all()

        return {
            "flashcards": list(cards),
            "total_count": total,
            "current_page": page,
            "total_pages": math.ceil(total / FLASHCARDS_PER_PAGE),
            "has_more": page * FLASHCARDS_PER_PAGE < total,
        }

    async def get_quizzes_async(self, ctx: AuthContext, note_id: uuid.UUID) -> list[Quizzes]:
        await self._get_owned_note(ctx, note_id)
        result = await self.db.scalars(
            select(Quizzes).where(Quizzes.note_id == note_id).order_by(Quizzes.created_at)
        )
        return list(result.all())

    async def get_summaries_async(self, ctx: AuthContext, note_id: uuid.UUID) -> list[Summaries]:
        await self._get_owned_note(ctx, note_id)
        result = await self.db.scalars(
            select(Summaries).where(Summaries.note_id == note_id).order_by(Summaries.created_at)
        )
        return list(result.all())

    # ==========================================================================
    # 🗑 Delete
    # ==========================================================================
    async def delete_note_async(self, ctx: AuthContext, note_id: uuid.UUID) -> dict:
        try:
            note = await self._get_owned_note(ctx, note_id)
            file_id = note.file_id

            # artifacts first, then the note, all in one commit
            for model in (Flashcards, Quizzes, Summaries):
                await self.db.execute(delete(model).where(model.note_id == note_id))
            await self.db.delete(note)
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Notes][Delete] {e}")
            raise HTTPException(500, "Failed to delete note")

        if file_id:
            await self.storage.delete_async(ctx.user_id, file_id)

        logger.info(f"[Notes] Deleted note {note_id}")
        return {"success": True}
