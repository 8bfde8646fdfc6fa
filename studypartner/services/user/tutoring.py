import uuid
from decimal import ROUND_CEILING, Decimal
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import InsufficientFunds, InvalidState, NotFound, Unauthorized
from studypartner.db.models.database import Profiles, TutoringSessions
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.libs.formats.datetime import to_utc_naive
from studypartner.schemas.shares.notification import NotificationCreateSchema
from studypartner.schemas.user.tutoring import (
    SessionCompleteSchema,
    SessionRateSchema,
    SessionRequestSchema,
    SessionRespondSchema,
)
from studypartner.services.shares.ledger import LedgerService
from studypartner.services.shares.notification import NotificationService
from studypartner.services.shares.profile import _profile_dict
from studypartner.services.shares.transaction import TransactionLogService


def compute_price(hourly_rate: Optional[int], duration: int) -> int:
    """hourly_rate × duration / 60, rounded up to whole tokens."""
    if not hourly_rate:
        return 0
    exact = Decimal(hourly_rate) * Decimal(duration) / Decimal(60)
    return int(exact.to_integral_value(rounding=ROUND_CEILING))


class TutoringService:
    """
    Tutoring session lifecycle:

        pending ──accept──▶ accepted ──complete──▶ completed ──rate (once)
           │
           ├──reject──▶ rejected
           └──cancel──▶ cancelled

    Every transition is a conditional UPDATE on the expected current status,
    so two racing calls cannot both move the same session. Accepting debits
    the student, credits the tutor's earnings and writes both transactions
    in the same commit as the status change.
    """

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        ledger: LedgerService = Depends(LedgerService),
        transactions: TransactionLogService = Depends(TransactionLogService),
        notification_service: NotificationService = Depends(NotificationService),
    ):
        self.db = db
        self.ledger = ledger
        self.transactions = transactions
        self.notification_service = notification_service

    # ==========================================================================
    # helpers
    # ==========================================================================
    async def _get_for_party(self, ctx: AuthContext, session_id: uuid.UUID) -> TutoringSessions:
        session = await self.db.get(TutoringSessions, session_id, populate_existing=True)
        if not session or ctx.user_id not in (session.student_id, session.tutor_id):
            raise NotFound("Session not found or access denied")
        return session

    async def _transition(
        self, session_id: uuid.UUID, expected: str, **values
    ) -> bool:
        result = await self.db.execute(
            update(TutoringSessions)
            .where(TutoringSessions.id == session_id, TutoringSessions.status == expected)
            .values(updated_at=get_now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _notify(self, user_id, title, message, type_="info", action_url=None):
        await self.notification_service.create_notification_async(
            NotificationCreateSchema(
                user_id=user_id,
                title=title,
                message=message,
                type=type_,
                action_url=action_url,
            )
        )

    async def _finish(self, session: TutoringSessions) -> TutoringSessions:
        await self.db.commit()
        await self.notification_service.publish_pending_async()
        await self.db.refresh(session)
        return session

    async def _abort(self, e: Exception, where: str):
        await self.db.rollback()
        self.notification_service.discard_pending()
        if isinstance(e, HTTPException):
            raise e
        logger.exception(f"[Tutoring][{where}] {e}")
        raise HTTPException(500, f"Failed to {where.lower()} session")

    # ==========================================================================
    # 📅 Request
    # ==========================================================================
    async def request_session_async(
        self, ctx: AuthContext, schema: SessionRequestSchema
    ) -> TutoringSessions:
        if ctx.role != "student":
            raise Unauthorized("Only students can request tutoring sessions")

        try:
            tutor = await self.db.scalar(
                select(Profiles).where(Profiles.user_id == schema.tutor_id)
            )
            if not tutor or tutor.role != "tutor":
                raise NotFound("Tutor not found")
            if not tutor.is_approved:
                raise InvalidState("Tutor is not approved")

            # snapshotted here, never recomputed
            price = compute_price(tutor.hourly_rate, schema.duration)

            balance = await self.ledger.get_balance(ctx.user_id)
            if balance < price:
                raise InsufficientFunds()

            now = get_now()
            session = TutoringSessions(
                id=uuid.uuid4(),
                student_id=ctx.user_id,
                tutor_id=schema.tutor_id,
                subject=schema.subject,
                description=schema.description,
                scheduled_time=to_utc_naive(schema.scheduled_time),
                duration=schema.duration,
                status="pending",
                price=price,
                created_at=now,
                updated_at=now,
            )
            self.db.add(session)
            await self.db.flush()

            await self._notify(
                schema.tutor_id,
                "New Tutoring Request",
                f"You have a new tutoring request for {schema.subject}",
                "info",
                f"/tutor/sessions/{session.id}",
            )
            session = await self._finish(session)
        except Exception as e:
            await self._abort(e, "Request")

        logger.info(f"[Tutoring] Session {session.id} requested ({price} tokens)")
        return session

    # ==========================================================================
    # ✅ Respond (tutor)
    # ==========================================================================
    async def respond_to_session_async(
        self, ctx: AuthContext, session_id: uuid.UUID, schema: SessionRespondSchema
    ) -> TutoringSessions:
        try:
            session = await self._get_for_party(ctx, session_id)
            if ctx.user_id != session.tutor_id:
                raise Unauthorized("Only the tutor can respond to this session")

            values = {"status": schema.response}
            if schema.meeting_link is not None:
                values["meeting_link"] = schema.meeting_link
            if not await self._transition(session_id, "pending", **values):
                raise InvalidState("Session is not pending")

            if schema.response == "accepted":
                price = session.price
                await self.ledger.debit(session.student_id, price)
                await self.transactions.record(
                    user_id=session.student_id,
                    type_="tutoring_payment",
                    amount=price,
                    tokens=price,
                    status="completed",
                    session_id=session.id,
                    description=f"Tutoring session: {session.subject}",
                )
                await self.ledger.credit_earnings(session.tutor_id, price)
                await self.transactions.record(
                    user_id=session.tutor_id,
                    type_="tutor_earning",
                    amount=price,
                    tokens=price,
                    status="completed",
                    session_id=session.id,
                    description=f"Earning from tutoring session: {session.subject}",
                )
                await self._notify(
                    session.student_id,
                    "Tutoring Request Accepted",
                    f"Your tutoring request for {session.subject} has been accepted!",
                    "success",
                    f"/student/sessions/{session.id}",
                )
            else:
                await self._notify(
                    session.student_id,
                    "Tutoring Request Rejected",
                    f"Your tutoring request for {session.subject} has been rejected.",
                    "warning",
                    f"/student/sessions/{session.id}",
                )

            session = await self._finish(session)
        except Exception as e:
            await self._abort(e, "Respond")

        logger.info(f"[Tutoring] Session {session_id} {schema.response}")
        return session

    # ==========================================================================
    # 🏁 Complete (tutor)
    # ==========================================================================
    async def complete_session_async(
        self, ctx: AuthContext, session_id: uuid.UUID, schema: SessionCompleteSchema
    ) -> TutoringSessions:
        try:
            session = await self._get_for_party(ctx, session_id)
            if ctx.user_id != session.tutor_id:
                raise Unauthorized("Only the tutor can complete this session")

            if not await self._transition(session_id, "accepted", status="completed", notes=schema.notes):
                raise InvalidState("Only accepted sessions can be completed")

            await self._notify(
                session.student_id,
                "Session Completed",
                f"Your tutoring session for {session.subject} has been completed. Please rate your experience!",
                "info",
                f"/student/sessions/{session.id}",
            )
            session = await self._finish(session)
        except Exception as e:
            await self._abort(e, "Complete")

        return session

    # ==========================================================================
    # ⭐ Rate (student, once)
    # ==========================================================================
    async def rate_session_async(
        self, ctx: AuthContext, session_id: uuid.UUID, schema: SessionRateSchema
    ) -> TutoringSessions:
        try:
            session = await self._get_for_party(ctx, session_id)
            if ctx.user_id != session.student_id:
                raise Unauthorized("Only the student can rate this session")
            if session.status != "completed":
                raise InvalidState("Can only rate completed sessions")

            result = await self.db.execute(
                update(TutoringSessions)
                .where(
                    TutoringSessions.id == session_id,
                    TutoringSessions.status == "completed",
                    TutoringSessions.rating.is_(None),
                )
                .values(rating=schema.rating, review=schema.review, updated_at=get_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidState("Session has already been rated")

            await self._notify(
                session.tutor_id,
                "New Session Rating",
                f"Your session for {session.subject} was rated {schema.rating}/5.",
                "info",
                f"/tutor/sessions/{session.id}",
            )
            session = await self._finish(session)
        except Exception as e:
            await self._abort(e, "Rate")

        return session

    # ==========================================================================
    # ✖ Cancel (student, pending only)
    # ==========================================================================
    async def cancel_session_async(
        self, ctx: AuthContext, session_id: uuid.UUID
    ) -> TutoringSessions:
        try:
            session = await self._get_for_party(ctx, session_id)
            if ctx.user_id != session.student_id:
                raise Unauthorized("Only the student can cancel this session")

            if not await self._transition(session_id, "pending", status="cancelled"):
                raise InvalidState("Only pending sessions can be cancelled")

            await self._notify(
                session.tutor_id,
                "Tutoring Request Cancelled",
                f"The tutoring request for {session.subject} was cancelled by the student.",
                "warning",
                f"/tutor/sessions/{session.id}",
            )
            session = await self._finish(session)
        except Exception as e:
            await self._abort(e, "Cancel")

        return session

    # ==========================================================================
    # 📋 Lists
    # ==========================================================================
    async def list_student_sessions_async(self, ctx: AuthContext) -> list[dict]:
        return await self._list_with_counterpart(
            TutoringSessions.student_id == ctx.user_id, counterpart="tutor"
        )

    async def list_tutor_sessions_async(self, ctx: AuthContext) -> list[dict]:
        return await self._list_with_counterpart(
            TutoringSessions.tutor_id == ctx.user_id, counterpart="student"
        )

    async def _list_with_counterpart(self, condition, counterpart: str) -> list[dict]:
        sessions = (
            await self.db.scalars(
                select(TutoringSessions)
                .where(condition)
                .order_by(TutoringSessions.created_at.desc())
            )
        ).all()
        if not sessions:
            return []

        other_ids = {getattr(s, f"{counterpart}_id") for s in sessions}
        profiles = (
            await self.db.scalars(select(Profiles).where(Profiles.user_id.in_(other_ids)))
        ).all()
        by_user = {p.user_id: _profile_dict(p) for p in profiles}

        items = []
        for s in sessions:
            row = {c.name: getattr(s, c.key) for c in TutoringSessions.__table__.columns}
            row[counterpart] = by_user.get(getattr(s, f"{counterpart}_id"))
            items.append(row)
        return items
