import uuid
from datetime import timedelta

import httpx
from apscheduler.jobstores.base import ConflictingIdError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger
from sqlalchemy import select

from studypartner.core.llm import LLMService
from studypartner.core.settings import settings
from studypartner.db.models.database import Notes
from studypartner.db.session import AsyncSessionLocal
from studypartner.libs.formats.datetime import now as get_now
from studypartner.services.chat.enrichment import NoteEnrichmentService

scheduler = AsyncIOScheduler(timezone="UTC")


def enrichment_job_id(note_id: uuid.UUID | str) -> str:
    return f"enrich-note:{note_id}"


class EnrichmentQueue:
    """
    Fire-and-forget queue for note enrichment, delivered at least once.

    The job id is derived from the note id, so enqueuing a note that is
    already queued is a no-op. A delivery that arrives after the note left
    ``pending`` is dropped by the enrichment step itself.
    """

    def __init__(self, sched: AsyncIOScheduler):
        self.scheduler = sched
        self.http: httpx.AsyncClient | None = None

    def bind_http(self, http: httpx.AsyncClient) -> None:
        self.http = http

    def enqueue(self, note_id: uuid.UUID) -> bool:
        try:
            self.scheduler.add_job(
                enrich_note_job,
                trigger=DateTrigger(run_date=get_now() + timedelta(seconds=1)),
                id=enrichment_job_id(note_id),
                kwargs={"note_id": str(note_id)},
                replace_existing=False,
                misfire_grace_time=None,
            )
        except ConflictingIdError:
            logger.warning(f"[Queue] {enrichment_job_id(note_id)} already queued")
            return False
        logger.info(f"[Queue] Enqueued {enrichment_job_id(note_id)}")
        return True


enrichment_queue = EnrichmentQueue(scheduler)


def get_enrichment_queue() -> EnrichmentQueue:
    return enrichment_queue


# ================================
# JOB 1 — enrich one note
# ================================
async def enrich_note_job(note_id: str):
    logger.info(f"[Enrichment] Running for note {note_id}")

    http = enrichment_queue.http
    owns_client = http is None
    if owns_client:
        http = httpx.AsyncClient(timeout=settings.OPENAI_TIMEOUT_SECONDS)

    try:
        async with AsyncSessionLocal() as session:
            service = NoteEnrichmentService(session, LLMService(http))
            status = await service.process_note_async(uuid.UUID(note_id))
            logger.info(f"[Enrichment] Note {note_id} → {status}")
    finally:
        if owns_client:
            await http.aclose()


# ================================
# JOB 2 — re-enqueue notes stuck in pending
# ================================
async def sweep_pending_notes_job():
    cutoff = get_now() - timedelta(minutes=settings.PENDING_NOTE_STALE_MINUTES)

    async with AsyncSessionLocal() as session:
        try:
            note_ids = (
                await session.scalars(
                    select(Notes.id).where(
                        Notes.processing_status == "pending",
                        Notes.created_at <= cutoff,
                    )
                )
            ).all()
        except Exception as e:
            logger.error(f"[Queue] Pending sweep failed: {e}")
            return

    requeued = sum(1 for note_id in note_ids if enrichment_queue.enqueue(note_id))
    if requeued:
        logger.success(f"[Queue] Re-enqueued {requeued} stale pending note(s)")


# ================================
# START ALL JOBS
# ================================
def start_scheduler(http_client: httpx.AsyncClient):
    enrichment_queue.bind_http(http_client)

    try:
        scheduler.add_job(
            sweep_pending_notes_job,
            trigger=IntervalTrigger(minutes=settings.PENDING_NOTE_SWEEP_MINUTES),
            next_run_time=get_now(),
            id="sweep_pending_notes_job",
            replace_existing=True,
            max_instances=1,
        )
    except ConflictingIdError:
        logger.warning("[Queue] sweep_pending_notes_job existed")

    scheduler.start()
    logger.info("[Scheduler] Started (note enrichment + pending sweep)")
