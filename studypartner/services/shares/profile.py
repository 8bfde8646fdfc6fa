import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import DuplicateResource, NotFound, Unauthorized
from studypartner.core.settings import settings
from studypartner.db.models.database import Profiles, User
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.shares.notification import NotificationCreateSchema
from studypartner.schemas.shares.profile import ProfileCreateSchema, ProfileUpdateSchema
from studypartner.services.shares.ledger import LedgerService
from studypartner.services.shares.notification import NotificationService


class ProfileService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        ledger: LedgerService = Depends(LedgerService),
        notification_service: NotificationService = Depends(NotificationService),
    ):
        self.db = db
        self.ledger = ledger
        self.notification_service = notification_service

    async def create_profile_async(
        self, ctx: AuthContext, schema: ProfileCreateSchema
    ) -> Profiles:
        try:
            existing = await self.db.scalar(
                select(Profiles.id).where(Profiles.user_id == ctx.user_id)
            )
            if existing:
                raise DuplicateResource("Profile already exists")

            is_tutor = schema.role == "tutor"
            now = get_now()
            profile = Profiles(
                id=uuid.uuid4(),
                user_id=ctx.user_id,
                role=schema.role,
                first_name=schema.first_name,
                last_name=schema.last_name,
                bio=schema.bio,
                expertise=schema.expertise,
                hourly_rate=schema.hourly_rate,
                tokens=0 if is_tutor else settings.STUDENT_WELCOME_TOKENS,
                total_earnings=0 if is_tutor else None,
                is_approved=False if is_tutor else None,
                created_at=now,
                updated_at=now,
            )
            self.db.add(profile)
            await self.db.flush()

            await self.notification_service.create_notification_async(
                NotificationCreateSchema(
                    user_id=ctx.user_id,
                    title="Welcome!",
                    message=(
                        f"Welcome to AI Study Partner! Your {schema.role} account "
                        "has been created successfully."
                    ),
                    type="success",
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
            logger.exception(f"[Profiles][Create] {e}")
            raise HTTPException(500, "Failed to create profile")

        await self.notification_service.publish_pending_async()
        logger.info(f"[Profiles] {schema.role} profile created for {ctx.user_id}")
        return profile

    async def update_profile_async(
        self, ctx: AuthContext, schema: ProfileUpdateSchema
    ) -> Profiles:
        try:
            profile = await self._get_by_user(ctx.user_id)
            if profile is None:
                raise NotFound("Profile not found")

            for field, value in schema.model_dump(exclude_unset=True).items():
                setattr(profile, field, value)
            profile.updated_at = get_now()

            await self.db.commit()
            await self.db.refresh(profile)
        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Profiles][Update] {e}")
            raise HTTPException(500, "Failed to update profile")

        return profile

    async def get_profile_async(self, ctx: AuthContext) -> Optional[Profiles]:
        return await self._get_by_user(ctx.user_id)

    async def list_tutors_async(self, subject: Optional[str] = None) -> list[Profiles]:
        tutors = (
            await self.db.scalars(
                select(Profiles)
                .where(Profiles.role == "tutor", Profiles.is_approved.is_(True))
                .order_by(Profiles.created_at.desc())
            )
        ).all()

        if not subject:
            return list(tutors)

        needle = subject.lower()
        return [
            t for t in tutors if any(needle in exp.lower() for exp in (t.expertise or []))
        ]

    async def get_tutor_async(self, tutor_user_id: uuid.UUID) -> dict:
        row = (
            await self.db.execute(
                select(Profiles, User.email)
                .join(User, User.id == Profiles.user_id)
                .where(Profiles.user_id == tutor_user_id, Profiles.role == "tutor")
            )
        ).first()
        if not row:
            raise NotFound("Tutor not found")
        profile, email = row
        return {**_profile_dict(profile), "email": email}

    # ==============================
    # 🪙 Admin token adjustments
    # ==============================

    async def add_tokens_async(
        self, ctx: AuthContext, user_id: uuid.UUID, amount: int
    ) -> int:
        return await self._adjust_tokens(ctx, user_id, amount, self.ledger.credit)

    async def deduct_tokens_async(
        self, ctx: AuthContext, user_id: uuid.UUID, amount: int
    ) -> int:
        return await self._adjust_tokens(ctx, user_id, amount, self.ledger.debit)

    async def _adjust_tokens(self, ctx: AuthContext, user_id, amount, op) -> int:
        if not ctx.is_admin:
            raise Unauthorized("Admin access required")
        try:
            balance = await op(user_id, amount)
            await self.db.commit()
            logger.info(f"[Profiles] Admin {ctx.user_id} adjusted {user_id}: {op.__name__} {amount}")
            return balance
        except Exception:
            await self.db.rollback()
            raise

    async def _get_by_user(self, user_id: uuid.UUID) -> Optional[Profiles]:
        return await self.db.scalar(select(Profiles).where(Profiles.user_id == user_id))


def _profile_dict(profile: Profiles) -> dict:
    return {c.name: getattr(profile, c.key) for c in Profiles.__table__.columns}
