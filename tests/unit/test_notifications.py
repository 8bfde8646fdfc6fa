"""Unit tests for the per-user notification inbox."""

import pytest
from starlette.websockets import WebSocketState

from studypartner.core.errors import NotFound
from studypartner.core.ws_manager import ws_manager
from studypartner.schemas.shares.notification import NotificationCreateSchema
from studypartner.services.shares.notification import NotificationService, user_channel


class TestNotificationInbox:
    @pytest.mark.asyncio
    async def test_unread_count_and_mark_as_read(self, db, student):
        ctx = await student()
        service = NotificationService(db)
        first = await service.notify_async(
            NotificationCreateSchema(user_id=ctx.user_id, title="A", message="a")
        )
        await service.notify_async(
            NotificationCreateSchema(user_id=ctx.user_id, title="B", message="b", type="success")
        )

        inbox = await service.get_notifications_async(ctx)
        assert inbox["unread"] == 2
        assert len(inbox["items"]) == 2

        await service.mark_as_read(ctx, first.id)
        assert await service.get_unread_count_async(ctx) == 1

        unread = await service.get_notifications_async(ctx, is_read=False)
        assert [n.title for n in unread["items"]] == ["B"]

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, db, student):
        ctx = await student()
        service = NotificationService(db)
        for i in range(3):
            await service.notify_async(
                NotificationCreateSchema(user_id=ctx.user_id, title=f"n{i}", message="m")
            )

        assert await service.mark_all_as_read(ctx) == 3
        assert await service.get_unread_count_async(ctx) == 0

    @pytest.mark.asyncio
    async def test_cannot_read_someone_elses_notification(self, db, student):
        owner = await student()
        other = await student()
        service = NotificationService(db)
        notif = await service.notify_async(
            NotificationCreateSchema(user_id=owner.user_id, title="A", message="a")
        )

        with pytest.raises(NotFound):
            await service.mark_as_read(other, notif.id)

    @pytest.mark.asyncio
    async def test_discarded_outbox_is_not_published(self, db, student):
        ctx = await student()
        service = NotificationService(db)
        await service.create_notification_async(
            NotificationCreateSchema(user_id=ctx.user_id, title="A", message="a")
        )
        await db.rollback()
        service.discard_pending()

        assert await service.publish_pending_async() == 0
        assert await service.get_unread_count_async(ctx) == 0

    def test_user_channel(self):
        assert user_channel("abc") == "user_abc"


class FakeSocket:
    def __init__(self, state=WebSocketState.CONNECTED):
        self.client_state = state
        self.sent: list[dict] = []

    async def send_json(self, message):
        self.sent.append(message)


class TestLivePush:
    @pytest.mark.asyncio
    async def test_committed_notification_reaches_open_socket(self, db, student):
        ctx = await student()
        channel = user_channel(ctx.user_id)
        live, stale = FakeSocket(), FakeSocket(WebSocketState.DISCONNECTED)
        await ws_manager.connect(live, channel)
        await ws_manager.connect(stale, channel)
        try:
            await NotificationService(db).notify_async(
                NotificationCreateSchema(user_id=ctx.user_id, title="Hi", message="m", action_url="/x")
            )

            assert len(live.sent) == 1
            event = live.sent[0]
            assert event["type"] == "notification.created"
            assert event["data"]["title"] == "Hi"
            assert event["data"]["action_url"] == "/x"
            assert isinstance(event["data"]["created_at"], str)
            assert ws_manager.connection_count(channel) == 1
        finally:
            ws_manager.disconnect(live, channel)
            ws_manager.disconnect(stale, channel)
