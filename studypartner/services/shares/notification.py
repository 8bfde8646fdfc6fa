import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import NotFound
from studypartner.core.ws_manager import ws_manager
from studypartner.db.models.database import Notifications
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.libs.formats.datetime import serialize
from studypartner.schemas.shares.notification import NotificationCreateSchema

DEFAULT_LIMIT = 20


def user_channel(user_id: uuid.UUID | str) -> str:
    return f"user_{user_id}"


class NotificationService:
    """
    Per-user notification inbox.

    ``create_notification_async`` only stages the row in the caller's unit of
    work; the websocket push happens in ``publish_pending_async`` once the
    caller has committed, so a rolled-back transition never reaches a client.
    """

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db
        self._outbox: list[Notifications] = []

    # ==========================================================================
    # 📨 Create + push
    # ==========================================================================
    async def create_notification_async(
        self, schema: NotificationCreateSchema
    ) -> Notifications:
        notif = Notifications(
            id=uuid.uuid4(),
            user_id=schema.user_id,
            title=schema.title,
            message=schema.message,
            type=schema.type,
            action_url=schema.action_url,
            is_read=False,
            created_at=get_now(),
        )
        self.db.add(notif)
        await self.db.flush()
        self._outbox.append(notif)
        return notif

    def discard_pending(self) -> None:
        self._outbox.clear()

    async def publish_pending_async(self) -> int:
        pending, self._outbox = self._outbox, []
        for notif in pending:
            try:
                data = await serialize(
                    {
                        "id": str(notif.id),
                        "user_id": str(notif.user_id),
                        "title": notif.title,
                        "message": notif.message,
                        "type": notif.type,
                        "is_read": notif.is_read,
                        "action_url": notif.action_url,
                        "created_at": notif.created_at,
                    }
                )
                await ws_manager.publish(user_channel(notif.user_id), "notification.created", data)
            except Exception as ws_err:
                # the row is already committed; a dead socket only loses the live push
                logger.exception(f"[Notifications][WS] Push failed: {ws_err}")
        return len(pending)

    async def notify_async(self, schema: NotificationCreateSchema) -> Notifications:
        """Standalone notification: stage, commit, push."""
        try:
            notif = await self.create_notification_async(schema)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            self.discard_pending()
            logger.exception(f"[Notifications][Create] {e}")
            raise HTTPException(500, "Failed to create notification")
        await self.publish_pending_async()
        return notif

    # ==========================================================================
    # 📋 Read side
    # ==========================================================================
    async def get_notifications_async(
        self,
        ctx: AuthContext,
        limit: int = DEFAULT_LIMIT,
        is_read: Optional[bool] = None,
    ) -> dict:
        stmt = select(Notifications).where(Notifications.user_id == ctx.user_id)
        if is_read is not None:
            stmt = stmt.where(Notifications.is_read.is_(is_read))
        items = (
            await self.db.scalars(
                stmt.order_by(Notifications.created_at.desc()).limit(limit)
            )
        ).all()

        return {
            "unread": await self.get_unread_count_async(ctx),
            "items": list(items),
        }

    async def get_unread_count_async(self, ctx: AuthContext) -> int:
        return (
            await self.db.scalar(
                select(func.count())
                .select_from(Notifications)
                .where(
                    Notifications.user_id == ctx.user_id,
                    Notifications.is_read.is_(False),
                )
            )
        ) or 0

    async def mark_as_read(self, ctx: AuthContext, notification_id: uuid.UUID) -> dict:
        try:
            notif = await self.db.get(Notifications, notification_id)
            if not notif or notif.user_id != ctx.user_id:
                raise NotFound("Notification not found")

            if not notif.is_read:
                notif.is_read = True
                notif.read_at = get_now()
            await self.db.commit()
            return {"success": True, "id": str(notification_id)}
        except Exception:
            await self.db.rollback()
            raise

    async def mark_all_as_read(self, ctx: AuthContext) -> int:
        try:
            result = await self.db.execute(
                update(Notifications)
                .where(
                    Notifications.user_id == ctx.user_id,
                    Notifications.is_read.is_(False),
                )
                .values(is_read=True, read_at=get_now())
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except Exception:
            await self.db.rollback()
            raise
