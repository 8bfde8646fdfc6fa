import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import InvalidState, NotFound, Unauthorized
from studypartner.db.models.database import (
    Flashcards,
    Notes,
    Notifications,
    Profiles,
    Quizzes,
    StudySessions,
    Summaries,
    Transactions,
    TutoringSessions,
    User,
)
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.shares.notification import NotificationCreateSchema
from studypartner.services.shares.notification import NotificationService
from studypartner.services.shares.profile import _profile_dict


def _page(items, total: int, page: int, limit: int) -> dict:
    total_pages = (total + limit - 1) // limit
    return {
        "page": page,
        "limit": limit,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
        "items": items,
    }


class AdminService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        notification_service: NotificationService = Depends(NotificationService),
    ):
        self.db = db
        self.notification_service = notification_service

    @staticmethod
    def _require_admin(ctx: AuthContext):
        if not ctx.is_admin:
            raise Unauthorized("Admin access required")

    async def _paged(self, model, ctx: AuthContext, page: int, limit: int) -> dict:
        self._require_admin(ctx)
        page, limit = max(page, 1), max(min(limit, 100), 1)

        total = await self.db.scalar(select(func.count()).select_from(model)) or 0
        rows = (
            await self.db.scalars(
                select(model)
                .order_by(model.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
        ).all()
        items = [{c.name: getattr(r, c.key) for c in model.__table__.columns} for r in rows]
        return _page(items, total, page, limit)

    # ==========================================================================
    # 👥 Users
    # ==========================================================================
    async def list_users_async(self, ctx: AuthContext, role: Optional[str] = None) -> list[dict]:
        self._require_admin(ctx)

        stmt = (
            select(Profiles, User.email)
            .join(User, User.id == Profiles.user_id)
            .order_by(Profiles.created_at.desc())
        )
        if role:
            stmt = stmt.where(Profiles.role == role)

        rows = (await self.db.execute(stmt)).all()
        return [{**_profile_dict(p), "email": email} for p, email in rows]

    async def approve_tutor_async(
        self, ctx: AuthContext, tutor_id: uuid.UUID, approved: bool
    ) -> dict:
        self._require_admin(ctx)
        try:
            profile = await self.db.scalar(
                select(Profiles).where(Profiles.user_id == tutor_id)
            )
            if not profile:
                raise NotFound("Tutor not found")
            if profile.role != "tutor":
                raise InvalidState("User is not a tutor")

            profile.is_approved = approved
            profile.updated_at = get_now()

            await self.notification_service.create_notification_async(
                NotificationCreateSchema(
                    user_id=tutor_id,
                    title="Tutor Application Approved" if approved else "Tutor Application Update",
                    message=(
                        "Congratulations! Your tutor profile has been approved. Students can now book sessions with you."
                        if approved
                        else "Your tutor profile approval has been revoked. Please contact support for details."
                    ),
                    type="success" if approved else "warning",
                    action_url="/tutor/dashboard",
                )
            )
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            self.notification_service.discard_pending()
            raise
        except Exception as e:
            await self.db.rollback()
            self.notification_service.discard_pending()
            logger.exception(f"[Admin][ApproveTutor] {e}")
            raise HTTPException(500, "Failed to update tutor approval")

        await self.notification_service.publish_pending_async()
        logger.info(f"[Admin] Tutor {tutor_id} approved={approved}")
        return {"success": True, "tutor_id": tutor_id, "is_approved": approved}

    async def delete_user_async(self, ctx: AuthContext, user_id: uuid.UUID) -> dict:
        """Remove an account and everything it owns in one transaction."""
        self._require_admin(ctx)
        if user_id == ctx.user_id:
            raise InvalidState("Admins cannot delete their own account")

        try:
            user = await self.db.get(User, user_id)
            if not user:
                raise NotFound("User not found")

            note_ids = select(Notes.id).where(Notes.user_id == user_id)
            for model in (Flashcards, Quizzes, Summaries):
                await self.db.execute(
                    delete(model).where(
                        or_(model.note_id.in_(note_ids), model.user_id == user_id)
                    )
                )
            await self.db.execute(delete(Notes).where(Notes.user_id == user_id))
            await self.db.execute(delete(StudySessions).where(StudySessions.user_id == user_id))
            await self.db.execute(
                delete(TutoringSessions).where(
                    or_(
                        TutoringSessions.student_id == user_id,
                        TutoringSessions.tutor_id == user_id,
                    )
                )
            )
            await self.db.execute(delete(Transactions).where(Transactions.user_id == user_id))
            await self.db.execute(delete(Notifications).where(Notifications.user_id == user_id))
            await self.db.execute(delete(Profiles).where(Profiles.user_id == user_id))
            await self.db.execute(delete(User).where(User.id == user_id))
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Admin][DeleteUser] {e}")
            raise HTTPException(500, "Failed to delete user")

        logger.info(f"[Admin] Deleted user {user_id}")
        return {"success": True}

    # ==========================================================================
    # 📋 Listings
    # ==========================================================================
    async def list_all_notes_async(self, ctx: AuthContext, page: int = 1, limit: int = 20):
        return await self._paged(Notes, ctx, page, limit)

    async def list_all_sessions_async(self, ctx: AuthContext, page: int = 1, limit: int = 20):
        return await self._paged(TutoringSessions, ctx, page, limit)

    async def list_all_transactions_async(self, ctx: AuthContext, page: int = 1, limit: int = 20):
        return await self._paged(Transactions, ctx, page, limit)

    # ==========================================================================
    # 📊 Stats
    # ==========================================================================
    async def get_system_stats_async(self, ctx: AuthContext) -> dict:
        self._require_admin(ctx)

        role_counts = dict(
            (
                await self.db.execute(
                    select(Profiles.role, func.count(Profiles.id)).group_by(Profiles.role)
                )
            ).all()
        )
        approved_tutors = await self.db.scalar(
            select(func.count(Profiles.id)).where(
                Profiles.role == "tutor", Profiles.is_approved.is_(True)
            )
        )
        session_counts = dict(
            (
                await self.db.execute(
                    select(TutoringSessions.status, func.count(TutoringSessions.id))
                    .group_by(TutoringSessions.status)
                )
            ).all()
        )
        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Transactions.amount), 0)).where(
                Transactions.type == "tutoring_payment",
                Transactions.status == "completed",
            )
        )

        return {
            "total_users": sum(role_counts.values()),
            "total_students": role_counts.get("student", 0),
            "total_tutors": role_counts.get("tutor", 0),
            "approved_tutors": approved_tutors or 0,
            "total_notes": await self.db.scalar(select(func.count(Notes.id))) or 0,
            "total_sessions": sum(session_counts.values()),
            "completed_sessions": session_counts.get("completed", 0),
            "total_transactions": await self.db.scalar(select(func.count(Transactions.id))) or 0,
            "total_revenue": float(revenue or 0),
        }
