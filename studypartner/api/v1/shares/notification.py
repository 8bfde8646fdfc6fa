from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger

from studypartner.core.deps import AuthorizationService
from studypartner.core.ws_manager import ws_manager
from studypartner.services.shares.notification import NotificationService, user_channel

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.websocket("/ws")
async def ws_notifications(websocket: WebSocket):
    await websocket.accept()

    ctx = await AuthorizationService.get_context_ws(websocket)
    if not ctx:
        return

    channel = user_channel(ctx.user_id)
    await ws_manager.connect(websocket, channel)
    logger.info(f"[WS][Notifications] {ctx.user_id} connected to {channel}")

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket, channel)


@router.get("")
async def get_notifications(
    limit: int = 20,
    is_read: Optional[bool] = None,
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    return await service.get_notifications_async(ctx, limit=limit, is_read=is_read)


@router.get("/unread-count")
async def get_unread_count(
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    return {"unread": await service.get_unread_count_async(ctx)}


@router.post("/read-all")
async def read_all_notifications(
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    updated = await service.mark_all_as_read(ctx)
    return {"success": True, "updated": updated}


@router.post("/read/{notification_id}")
async def read_notification(
    notification_id: UUID,
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    return await service.mark_as_read(ctx, notification_id)
