"""Unit tests for the enrichment queue and the pending-note sweep."""

import uuid
from datetime import timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from studypartner.core import scheduler as scheduler_module
from studypartner.core.scheduler import (
    EnrichmentQueue,
    enrich_note_job,
    enrichment_job_id,
    sweep_pending_notes_job,
)
from studypartner.db.models.database import Notes
from studypartner.libs.formats.datetime import now as get_now


@pytest.fixture
def paused_scheduler():
    sched = AsyncIOScheduler(timezone="UTC")
    return sched


class TestEnrichmentQueue:
    @pytest.mark.asyncio
    async def test_enqueue_is_idempotent_per_note(self, paused_scheduler):
        paused_scheduler.start(paused=True)
        try:
            queue = EnrichmentQueue(paused_scheduler)
            note_id = uuid.uuid4()

            assert queue.enqueue(note_id) is True
            assert queue.enqueue(note_id) is False

            jobs = paused_scheduler.get_jobs()
            assert [j.id for j in jobs] == [enrichment_job_id(note_id)]
            assert jobs[0].func is enrich_note_job
            assert jobs[0].kwargs == {"note_id": str(note_id)}
        finally:
            paused_scheduler.shutdown(wait=False)

    @pytest.mark.asyncio
    async def test_distinct_notes_get_distinct_jobs(self, paused_scheduler):
        paused_scheduler.start(paused=True)
        try:
            queue = EnrichmentQueue(paused_scheduler)
            queue.enqueue(uuid.uuid4())
            queue.enqueue(uuid.uuid4())

            assert len(paused_scheduler.get_jobs()) == 2
        finally:
            paused_scheduler.shutdown(wait=False)

    def test_job_id_format(self):
        note_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert enrichment_job_id(note_id) == "enrich-note:12345678-1234-5678-1234-567812345678"


class TestPendingSweep:
    async def _note(self, db, ctx, status: str, age_minutes: int) -> uuid.UUID:
        created = get_now() - timedelta(minutes=age_minutes)
        note = Notes(
            id=uuid.uuid4(),
            user_id=ctx.user_id,
            title="Sweep me",
            content="text",
            processed=status == "completed",
            processing_status=status,
            created_at=created,
            updated_at=created,
        )
        db.add(note)
        await db.commit()
        return note.id

    @pytest.mark.asyncio
    async def test_only_stale_pending_notes_are_requeued(
        self, db, student, session_factory, paused_scheduler, monkeypatch
    ):
        ctx = await student()
        stale = await self._note(db, ctx, "pending", age_minutes=60)
        await self._note(db, ctx, "pending", age_minutes=0)
        await self._note(db, ctx, "failed", age_minutes=60)
        await self._note(db, ctx, "completed", age_minutes=60)

        paused_scheduler.start(paused=True)
        try:
            queue = EnrichmentQueue(paused_scheduler)
            monkeypatch.setattr(scheduler_module, "AsyncSessionLocal", session_factory)
            monkeypatch.setattr(scheduler_module, "enrichment_queue", queue)

            await sweep_pending_notes_job()

            assert [j.id for j in paused_scheduler.get_jobs()] == [enrichment_job_id(stale)]

            # a second sweep finds the job already queued
            await sweep_pending_notes_job()
            assert len(paused_scheduler.get_jobs()) == 1
        finally:
            paused_scheduler.shutdown(wait=False)
