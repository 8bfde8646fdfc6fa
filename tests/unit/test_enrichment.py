"""Unit tests for the note enrichment pipeline against a mocked chat-completions endpoint."""

import json
import uuid

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import func, select

from studypartner.core.llm import LLMService
from studypartner.db.models.database import Flashcards, Notes, Notifications, Quizzes, Summaries
from studypartner.libs.formats.datetime import now as get_now
from studypartner.services.chat.enrichment import NoteEnrichmentService

GOOD_REPLY = {
    "flashcards": [
        {"question": "What is a derivative?", "answer": "A rate of change", "difficulty": "easy"},
        {"question": "d/dx x^2?", "answer": "2x"},
    ],
    "quiz": {
        "title": "Derivatives Quiz",
        "questions": [
            {
                "question": "d/dx sin x?",
                "options": ["cos x", "-cos x", "sin x", "tan x"],
                "correctAnswer": 0,
                "explanation": "Standard derivative",
            }
        ],
    },
    "summary": {"content": "Derivatives measure change.", "keyPoints": ["slope", "limits"]},
}


class FakeLLMEndpoint:
    """Records requests and answers with a canned chat-completions response."""

    def __init__(self, content: str | None = None, status_code: int = 200):
        self.content = content
        self.status_code = status_code
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "boom"}})
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": self.content}}]}
        )


@pytest_asyncio.fixture
async def make_service(db):
    clients = []

    def _make(endpoint: FakeLLMEndpoint) -> NoteEnrichmentService:
        http = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
        clients.append(http)
        llm = LLMService(http, base_url="http://llm.test/v1", api_key="test-key", model="test-model")
        return NoteEnrichmentService(db, llm)

    yield _make
    for http in clients:
        await http.aclose()


async def _pending_note(db, ctx, title="Calculus basics") -> uuid.UUID:
    note = Notes(
        id=uuid.uuid4(),
        user_id=ctx.user_id,
        title=title,
        content="Derivatives describe rates of change.",
        subject="Math",
        processed=False,
        processing_status="pending",
        created_at=get_now(),
        updated_at=get_now(),
    )
    db.add(note)
    await db.commit()
    return note.id


async def _state(db, note_id):
    return (
        await db.execute(
            select(Notes.processing_status, Notes.processed).where(Notes.id == note_id)
        )
    ).one()


async def _count(db, model, note_id):
    return await db.scalar(select(func.count(model.id)).where(model.note_id == note_id))


class TestEnrichmentSuccess:
    @pytest.mark.asyncio
    async def test_full_reply_creates_all_artifacts(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        endpoint = FakeLLMEndpoint(json.dumps(GOOD_REPLY))

        result = await make_service(endpoint).process_note_async(note_id)

        assert result == "completed"
        assert tuple(await _state(db, note_id)) == ("completed", True)
        assert await _count(db, Flashcards, note_id) == 2
        assert await _count(db, Quizzes, note_id) == 1
        assert await _count(db, Summaries, note_id) == 1

        quiz = await db.scalar(select(Quizzes).where(Quizzes.note_id == note_id))
        assert quiz.title == "Derivatives Quiz"
        assert quiz.questions[0]["correct_answer"] == 0
        summary = await db.scalar(select(Summaries).where(Summaries.note_id == note_id))
        assert summary.key_points == ["slope", "limits"]
        card = await db.scalar(
            select(Flashcards).where(Flashcards.note_id == note_id, Flashcards.question == "d/dx x^2?")
        )
        assert card.difficulty == "medium"
        assert card.user_id == ctx.user_id

        notif = await db.scalar(select(Notifications).where(Notifications.user_id == ctx.user_id))
        assert notif.title == "Note Processing Complete"
        assert notif.type == "success"

    @pytest.mark.asyncio
    async def test_request_uses_prompt_template(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx, title="Photosynthesis")
        endpoint = FakeLLMEndpoint(json.dumps(GOOD_REPLY))

        await make_service(endpoint).process_note_async(note_id)

        body = endpoint.requests[0]
        assert body["model"] == "test-model"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 2000
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert "Title: Photosynthesis" in body["messages"][1]["content"]
        assert "Subject: Math" in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        endpoint = FakeLLMEndpoint("```json\n" + json.dumps(GOOD_REPLY) + "\n```")

        assert await make_service(endpoint).process_note_async(note_id) == "completed"

    @pytest.mark.asyncio
    async def test_missing_groups_are_skipped(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        endpoint = FakeLLMEndpoint(json.dumps({"summary": GOOD_REPLY["summary"]}))

        assert await make_service(endpoint).process_note_async(note_id) == "completed"
        assert await _count(db, Flashcards, note_id) == 0
        assert await _count(db, Quizzes, note_id) == 0
        assert await _count(db, Summaries, note_id) == 1

    @pytest.mark.asyncio
    async def test_empty_object_completes_without_artifacts(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)

        assert await make_service(FakeLLMEndpoint("{}")).process_note_async(note_id) == "completed"
        assert tuple(await _state(db, note_id)) == ("completed", True)

    @pytest.mark.asyncio
    async def test_null_difficulty_and_key_points_use_defaults(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        reply = {
            "flashcards": [{"question": "q", "answer": "a", "difficulty": None}],
            "summary": {"content": "c", "keyPoints": None},
        }

        result = await make_service(FakeLLMEndpoint(json.dumps(reply))).process_note_async(note_id)

        assert result == "completed"
        card = await db.scalar(select(Flashcards).where(Flashcards.note_id == note_id))
        assert card.difficulty == "medium"
        summary = await db.scalar(select(Summaries).where(Summaries.note_id == note_id))
        assert summary.key_points == []

    @pytest.mark.asyncio
    async def test_blank_difficulty_defaults_to_medium(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        reply = {"flashcards": [{"question": "q", "answer": "a", "difficulty": ""}]}

        result = await make_service(FakeLLMEndpoint(json.dumps(reply))).process_note_async(note_id)

        assert result == "completed"
        card = await db.scalar(select(Flashcards).where(Flashcards.note_id == note_id))
        assert card.difficulty == "medium"


class TestEnrichmentFailure:
    async def _assert_failed_cleanly(self, db, ctx, note_id):
        assert tuple(await _state(db, note_id)) == ("failed", False)
        assert await _count(db, Flashcards, note_id) == 0
        assert await _count(db, Quizzes, note_id) == 0
        assert await _count(db, Summaries, note_id) == 0

        notifs = (
            await db.scalars(select(Notifications).where(Notifications.user_id == ctx.user_id))
        ).all()
        assert len(notifs) == 1
        assert notifs[0].title == "Note Processing Failed"
        assert notifs[0].type == "error"
        assert "Calculus basics" in notifs[0].message

    @pytest.mark.asyncio
    async def test_unparseable_reply(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        endpoint = FakeLLMEndpoint("Sure! Here are your flashcards: ...")

        assert await make_service(endpoint).process_note_async(note_id) == "failed"
        await self._assert_failed_cleanly(db, ctx, note_id)

    @pytest.mark.asyncio
    async def test_http_error(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)

        result = await make_service(FakeLLMEndpoint(status_code=500)).process_note_async(note_id)

        assert result == "failed"
        await self._assert_failed_cleanly(db, ctx, note_id)

    @pytest.mark.asyncio
    async def test_quiz_with_wrong_option_count(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        bad = {
            "quiz": {
                "title": "Q",
                "questions": [
                    {"question": "?", "options": ["a", "b", "c"], "correctAnswer": 0, "explanation": ""}
                ],
            }
        }

        assert await make_service(FakeLLMEndpoint(json.dumps(bad))).process_note_async(note_id) == "failed"
        await self._assert_failed_cleanly(db, ctx, note_id)

    @pytest.mark.asyncio
    async def test_non_object_json(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)

        assert await make_service(FakeLLMEndpoint("[1, 2, 3]")).process_note_async(note_id) == "failed"
        await self._assert_failed_cleanly(db, ctx, note_id)

    @pytest.mark.asyncio
    async def test_artifacts_written_before_a_failure_are_kept(
        self, db, student, make_service, monkeypatch
    ):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        service = make_service(FakeLLMEndpoint(json.dumps(GOOD_REPLY)))
        set_status = service._set_status

        async def failing_set_status(nid, status):
            if status == "completed":
                raise RuntimeError("database went away")
            await set_status(nid, status)

        monkeypatch.setattr(service, "_set_status", failing_set_status)

        assert await service.process_note_async(note_id) == "failed"
        assert tuple(await _state(db, note_id)) == ("failed", False)
        assert await _count(db, Flashcards, note_id) == 2
        assert await _count(db, Quizzes, note_id) == 1
        assert await _count(db, Summaries, note_id) == 1
        titles = (
            await db.scalars(select(Notifications.title).where(Notifications.user_id == ctx.user_id))
        ).all()
        assert titles == ["Note Processing Failed"]


class TestEnrichmentRedelivery:
    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_a_no_op(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)
        endpoint = FakeLLMEndpoint(json.dumps(GOOD_REPLY))
        service = make_service(endpoint)

        assert await service.process_note_async(note_id) == "completed"
        assert await service.process_note_async(note_id) == "skipped"

        assert len(endpoint.requests) == 1
        assert await _count(db, Flashcards, note_id) == 2
        assert await _count(db, Quizzes, note_id) == 1

    @pytest.mark.asyncio
    async def test_failed_note_is_not_retried(self, db, student, make_service):
        ctx = await student()
        note_id = await _pending_note(db, ctx)

        await make_service(FakeLLMEndpoint("nope")).process_note_async(note_id)
        endpoint = FakeLLMEndpoint(json.dumps(GOOD_REPLY))

        assert await make_service(endpoint).process_note_async(note_id) == "skipped"
        assert endpoint.requests == []
        assert tuple(await _state(db, note_id)) == ("failed", False)
