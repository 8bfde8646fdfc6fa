import uuid

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.errors import ExternalServiceError
from studypartner.core.llm import LLMService
from studypartner.db.models.database import Flashcards, Notes, Quizzes, Summaries
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.chat.enrichment import AIStudyPack
from studypartner.schemas.shares.notification import NotificationCreateSchema
from studypartner.services.shares.notification import NotificationService

SYSTEM_PROMPT = """You are an AI study assistant. Given study notes, generate:
1. Flashcards (question/answer pairs)
2. A quiz with multiple choice questions
3. A summary with key points

Respond with a single JSON object and nothing else, using this structure:
{
  "flashcards": [{"question": "...", "answer": "...", "difficulty": "easy|medium|hard"}],
  "quiz": {
    "title": "...",
    "questions": [{"question": "...", "options": ["A", "B", "C", "D"], "correctAnswer": 0, "explanation": "..."}]
  },
  "summary": {
    "content": "...",
    "keyPoints": ["point1", "point2"]
  }
}"""


def build_messages(note: Notes) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                "Please process these study notes and generate flashcards, quiz, and summary:\n\n"
                f"Title: {note.title}\n"
                f"Subject: {note.subject or 'General'}\n\n"
                f"Content:\n{note.content}"
            ),
        },
    ]


class NoteEnrichmentService:
    """
    Runs one enrichment attempt for a note:
    pending → processing → completed | failed.

    The attempt starts by claiming the note with a conditional UPDATE on
    ``processing_status = 'pending'``; a redelivered job finds nothing to
    claim and exits, so duplicate deliveries never duplicate artifacts.
    Artifact groups are committed one by one and are kept if a later step
    fails.
    """

    def __init__(
        self,
        db: AsyncSession,
        llm: LLMService,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.llm = llm
        self.notification_service = notification_service or NotificationService(db)

    async def process_note_async(self, note_id: uuid.UUID) -> str:
        if not await self._claim(note_id):
            logger.warning(f"[Enrichment] Note {note_id} not pending, skipping delivery")
            return "skipped"

        try:
            note = await self.db.get(Notes, note_id, populate_existing=True)
            if note is None:
                raise LookupError("Note not found")

            data = await self.llm.chat_json(build_messages(note))
            try:
                pack = AIStudyPack.model_validate(data)
            except ValidationError as e:
                raise ExternalServiceError(f"AI response has an unexpected shape: {e.error_count()} error(s)")

            counts = await self._persist_artifacts(note, pack)

            await self._set_status(note_id, "completed")
            await self.notification_service.create_notification_async(
                NotificationCreateSchema(
                    user_id=note.user_id,
                    title="Note Processing Complete",
                    message=(
                        f'Your note "{note.title}" has been processed successfully! '
                        "Flashcards, quiz, and summary are now available."
                    ),
                    type="success",
                    action_url=f"/student/notes/{note_id}",
                )
            )
            await self.db.commit()
            await self.notification_service.publish_pending_async()
            logger.success(f"[Enrichment] Note {note_id} completed {counts}")
            return "completed"

        except Exception as e:
            await self.db.rollback()
            self.notification_service.discard_pending()
            logger.exception(f"[Enrichment] Note {note_id} failed: {e}")
            await self._mark_failed(note_id)
            return "failed"

    async def _claim(self, note_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            update(Notes)
            .where(Notes.id == note_id, Notes.processing_status == "pending")
            .values(processing_status="processing", processed=False, updated_at=get_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def _set_status(self, note_id: uuid.UUID, status: str) -> None:
        # processed is derived here and nowhere else
        await self.db.execute(
            update(Notes)
            .where(Notes.id == note_id)
            .values(
                processing_status=status,
                processed=status == "completed",
                updated_at=get_now(),
            )
            .execution_options(synchronize_session=False)
        )

    async def _persist_artifacts(self, note: Notes, pack: AIStudyPack) -> dict:
        counts = {"flashcards": 0, "quizzes": 0, "summaries": 0}

        if pack.flashcards:
            for card in pack.flashcards:
                self.db.add(
                    Flashcards(
                        note_id=note.id,
                        user_id=note.user_id,
                        question=card.question,
                        answer=card.answer,
                        difficulty=card.difficulty,
                        subject=note.subject,
                    )
                )
            await self.db.commit()
            counts["flashcards"] = len(pack.flashcards)

        if pack.quiz and pack.quiz.questions:
            self.db.add(
                Quizzes(
                    note_id=note.id,
                    user_id=note.user_id,
                    title=pack.quiz.title or f"{note.title} Quiz",
                    questions=[q.model_dump() for q in pack.quiz.questions],
                    subject=note.subject,
                )
            )
            await self.db.commit()
            counts["quizzes"] = 1

        if pack.summary:
            self.db.add(
                Summaries(
                    note_id=note.id,
                    user_id=note.user_id,
                    content=pack.summary.content,
                    key_points=pack.summary.key_points,
                    subject=note.subject,
                )
            )
            await self.db.commit()
            counts["summaries"] = 1

        return counts

    async def _mark_failed(self, note_id: uuid.UUID) -> None:
        try:
            await self._set_status(note_id, "failed")
            row = (
                await self.db.execute(
                    select(Notes.user_id, Notes.title).where(Notes.id == note_id)
                )
            ).first()
            if row:
                user_id, title = row
                await self.notification_service.create_notification_async(
                    NotificationCreateSchema(
                        user_id=user_id,
                        title="Note Processing Failed",
                        message=f'Failed to process your note "{title}". Please try uploading again.',
                        type="error",
                        action_url=f"/student/notes/{note_id}",
                    )
                )
            await self.db.commit()
            await self.notification_service.publish_pending_async()
        except Exception as e:
            await self.db.rollback()
            self.notification_service.discard_pending()
            logger.exception(f"[Enrichment] Could not record failure for {note_id}: {e}")
