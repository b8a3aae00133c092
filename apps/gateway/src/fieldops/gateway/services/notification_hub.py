"""NotificationHub -- 内存通知广播器

每个订阅者持有一个有界 asyncio.Queue。路由规则：
- audience=admin: 所有管理员订阅者
- audience=assignee: recipient_id 对应的技术员订阅者
- audience=all: 所有订阅者
队列已满的订阅者被移除（fire-and-forget，不保证送达）。
"""

import asyncio
from collections import defaultdict

import structlog
from fieldops.core.config import NOTIFICATION_QUEUE_MAXSIZE
from fieldops.core.models import Actor, Audience, Notification
from ulid import ULID

log = structlog.get_logger()


class NotificationHub:
    """通知广播器 -- 基于 asyncio.Queue 的发布/订阅"""

    def __init__(self, queue_maxsize: int = NOTIFICATION_QUEUE_MAXSIZE) -> None:
        # actor_id -> 该员工的订阅队列
        self._by_actor: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._admins: set[asyncio.Queue] = set()
        self._queue_maxsize = queue_maxsize

    @property
    def subscriber_count(self) -> int:
        return sum(len(queues) for queues in self._by_actor.values())

    async def subscribe(self, actor: Actor) -> asyncio.Queue:
        """为调用者注册一个通知队列"""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._by_actor[actor.actor_id].add(queue)
        if actor.is_admin:
            self._admins.add(queue)
        return queue

    async def unsubscribe(self, actor: Actor, queue: asyncio.Queue) -> None:
        self._remove(actor.actor_id, queue)

    def _remove(self, actor_id: str, queue: asyncio.Queue) -> None:
        self._admins.discard(queue)
        queues = self._by_actor.get(actor_id)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._by_actor[actor_id]

    def _targets(self, notification: Notification) -> list[tuple[str, asyncio.Queue]]:
        targets: list[tuple[str, asyncio.Queue]] = []
        for actor_id, queues in self._by_actor.items():
            for queue in queues:
                if notification.audience == Audience.ALL:
                    targets.append((actor_id, queue))
                elif notification.audience == Audience.ADMIN and queue in self._admins:
                    targets.append((actor_id, queue))
                elif (
                    notification.audience == Audience.ASSIGNEE
                    and actor_id == notification.recipient_id
                ):
                    targets.append((actor_id, queue))
        return targets

    async def publish(self, notification: Notification) -> Notification:
        """广播通知，返回分配了 notification_id 的通知"""
        if not notification.notification_id:
            notification = notification.model_copy(
                update={"notification_id": str(ULID())}
            )

        dead: list[tuple[str, asyncio.Queue]] = []
        delivered = 0
        for actor_id, queue in self._targets(notification):
            try:
                queue.put_nowait(notification)
                delivered += 1
            except asyncio.QueueFull:
                dead.append((actor_id, queue))

        for actor_id, queue in dead:
            self._remove(actor_id, queue)
            await log.awarning(
                "notification_dropped_subscriber",
                actor_id=actor_id,
                notification_id=notification.notification_id,
            )

        await log.adebug(
            "notification_published",
            notification_id=notification.notification_id,
            audience=notification.audience.value,
            task_id=notification.task_id,
            delivered=delivered,
        )
        return notification
