"""Unit tests for note upload, artifact listing and cascading delete."""

import uuid

import pytest
from sqlalchemy import func, select

from studypartner.core.errors import NotFound
from studypartner.core.security import SecurityService
from studypartner.db.models.database import Flashcards, Notes, Quizzes, Summaries
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.user.note import NoteCreateSchema
from studypartner.services.shares.storage import StorageService
from studypartner.services.user.notes import NoteService


class RecordingQueue:
    def __init__(self):
        self.enqueued: list[uuid.UUID] = []

    def enqueue(self, note_id):
        self.enqueued.append(note_id)
        return True


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


@pytest.fixture
def storage(tmp_path):
    return StorageService(SecurityService(), base_dir=str(tmp_path))


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def note_service(db, storage, queue):
    return NoteService(db, storage, queue)


async def _add_artifacts(db, note_id, user_id, flashcards=0):
    for i in range(flashcards):
        db.add(
            Flashcards(
                note_id=note_id, user_id=user_id, question=f"q{i}", answer=f"a{i}",
                difficulty="easy", created_at=get_now(),
            )
        )
    db.add(Quizzes(note_id=note_id, user_id=user_id, title="Quiz", questions=[], created_at=get_now()))
    db.add(Summaries(note_id=note_id, user_id=user_id, content="S", key_points=[], created_at=get_now()))
    await db.commit()


class TestUploadNote:
    @pytest.mark.asyncio
    async def test_upload_creates_pending_note_and_enqueues(self, db, student, note_service, queue):
        ctx = await student()

        note = await note_service.upload_note_async(
            ctx, NoteCreateSchema(title="Cells", content="Mitochondria...", subject="Biology")
        )

        assert note.processing_status == "pending"
        assert note.processed is False
        assert queue.enqueued == [note.id]

    @pytest.mark.asyncio
    async def test_upload_with_unknown_file_is_rejected(self, db, student, note_service, queue):
        ctx = await student()

        with pytest.raises(NotFound):
            await note_service.upload_note_async(
                ctx, NoteCreateSchema(title="T", content="C", file_id=uuid.uuid4().hex)
            )

        assert queue.enqueued == []
        assert await db.scalar(select(func.count(Notes.id))) == 0

    @pytest.mark.asyncio
    async def test_upload_with_stored_file(self, db, student, note_service, storage):
        ctx = await student()
        target = await storage.generate_upload_url_async(ctx)
        token = target["upload_url"].split("token=", 1)[1]
        await storage.store_async(target["storage_id"], token, _chunks(b"%PDF-", b"data"))

        note = await note_service.upload_note_async(
            ctx,
            NoteCreateSchema(
                title="T", content="C", file_id=target["storage_id"], file_type="application/pdf"
            ),
        )

        assert note.file_id == target["storage_id"]


class TestReadNotes:
    @pytest.mark.asyncio
    async def test_other_users_note_is_not_found(self, student, note_service):
        owner = await student()
        other = await student()
        note = await note_service.upload_note_async(owner, NoteCreateSchema(title="T", content="C"))

        with pytest.raises(NotFound):
            await note_service.get_note_async(other, note.id)
        assert await note_service.list_notes_async(other) == []

    @pytest.mark.asyncio
    async def test_flashcards_are_paged_by_five(self, db, student, note_service):
        ctx = await student()
        note = await note_service.upload_note_async(ctx, NoteCreateSchema(title="T", content="C"))
        await _add_artifacts(db, note.id, ctx.user_id, flashcards=7)

        first = await note_service.get_flashcards_async(ctx, note.id, page=1)
        second = await note_service.get_flashcards_async(ctx, note.id, page=2)

        assert len(first["flashcards"]) == 5
        assert first["total_count"] == 7
        assert first["total_pages"] == 2
        assert first["has_more"] is True
        assert len(second["flashcards"]) == 2
        assert second["has_more"] is False

    @pytest.mark.asyncio
    async def test_page_zero_is_the_first_page(self, db, student, note_service):
        ctx = await student()
        note = await note_service.upload_note_async(ctx, NoteCreateSchema(title="T", content="C"))
        await _add_artifacts(db, note.id, ctx.user_id, flashcards=7)

        zero = await note_service.get_flashcards_async(ctx, note.id, page=0)

        assert zero["current_page"] == 1
        assert len(zero["flashcards"]) == 5


class TestDeleteNote:
    @pytest.mark.asyncio
    async def test_delete_cascades_to_artifacts(self, db, student, note_service):
        ctx = await student()
        note = await note_service.upload_note_async(ctx, NoteCreateSchema(title="T", content="C"))
        await _add_artifacts(db, note.id, ctx.user_id, flashcards=3)

        assert await note_service.delete_note_async(ctx, note.id) == {"success": True}

        for model in (Flashcards, Quizzes, Summaries):
            assert await db.scalar(select(func.count(model.id)).where(model.note_id == note.id)) == 0
        assert await db.scalar(select(func.count(Notes.id))) == 0

    @pytest.mark.asyncio
    async def test_delete_removes_stored_file(self, db, student, note_service, storage):
        ctx = await student()
        target = await storage.generate_upload_url_async(ctx)
        token = target["upload_url"].split("token=", 1)[1]
        await storage.store_async(target["storage_id"], token, _chunks(b"abc"))
        note = await note_service.upload_note_async(
            ctx, NoteCreateSchema(title="T", content="C", file_id=target["storage_id"])
        )

        await note_service.delete_note_async(ctx, note.id)

        assert await storage.exists_async(ctx.user_id, target["storage_id"]) is False

    @pytest.mark.asyncio
    async def test_cannot_delete_other_users_note(self, db, student, note_service):
        owner = await student()
        other = await student()
        note = await note_service.upload_note_async(owner, NoteCreateSchema(title="T", content="C"))

        with pytest.raises(NotFound):
            await note_service.delete_note_async(other, note.id)
        assert await db.scalar(select(func.count(Notes.id))) == 1
