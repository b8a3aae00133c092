"""SSE 通知流路由

GET /api/stream/notifications: 推送调用者可接收的通知。
管理员接收 admin/all 通知，技术员接收发给自己的通知及 all 通知。
空闲时按 FIELDOPS_SSE_HEARTBEAT_INTERVAL 发送心跳。
"""

import asyncio
import json

from fastapi import APIRouter, Depends
from fieldops.core.config import SSE_HEARTBEAT_INTERVAL
from fieldops.core.models import Actor, Notification
from sse_starlette.sse import EventSourceResponse

from ..deps import get_actor, get_notification_hub
from ..services.notification_hub import NotificationHub

router = APIRouter()


def _notification_to_sse(notification: Notification) -> dict:
    return {
        "id": notification.notification_id,
        "event": "notification",
        "data": json.dumps(notification.model_dump(mode="json"), ensure_ascii=False),
    }


@router.get("/api/stream/notifications")
async def stream_notifications(
    actor: Actor = Depends(get_actor),
    hub: NotificationHub = Depends(get_notification_hub),
):
    queue = await hub.subscribe(actor)

    async def event_generator():
        try:
            while True:
                try:
                    notification = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                    yield _notification_to_sse(notification)
                except TimeoutError:
                    yield {"comment": "heartbeat"}
        finally:
            await hub.unsubscribe(actor, queue)

    return EventSourceResponse(event_generator())
