"""TaskService -- 任务命令编排与持久化

流程：
1. 读取任务文档
2. 构建上下文（调用者、当前时间、实时位置），交给流转引擎
3. 被接受时：version + 1，单事务写入事件和任务文档
4. 发布通知（fire-and-forget）
被拒绝的命令不落盘，只记录日志并原样返回。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime

import aiosqlite
import structlog
from fieldops.core.board import BoardSummary, DailyProgress, daily_progress, summarize_board
from fieldops.core.models import Actor, Event, Notification, Task
from fieldops.core.store import StoreGroup
from fieldops.core.store.transaction import (
    append_event_and_save_task,
    create_task_with_initial_event,
    delete_task_and_events,
)
from fieldops.core.visibility import filter_visible
from fieldops.core.workflow import (
    Accepted,
    Command,
    DispatchTask,
    Rejected,
    RejectionCode,
    TransitionResult,
    WorkflowContext,
    apply_command,
    dispatch,
)
from ulid import ULID

from .notification_hub import NotificationHub
from .position_tracker import PositionTracker

log = structlog.get_logger()


def _utc_today() -> date:
    """与事件时间戳同一时钟（UTC）的当天日期"""
    return datetime.now(UTC).date()


class TaskNotFoundError(Exception):
    """任务不存在"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class TaskService:
    """任务业务服务

    同一任务的写入由 task 级 asyncio.Lock 串行化；跨进程的并发写入
    由 version 校验兜底（TaskVersionConflictError）。
    """

    def __init__(
        self,
        store_group: StoreGroup,
        notification_hub: NotificationHub | None = None,
        position_tracker: PositionTracker | None = None,
    ) -> None:
        self._stores = store_group
        self._hub = notification_hub
        self._positions = position_tracker
        self._task_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def _context(self, actor: Actor) -> WorkflowContext:
        live_position = self._positions.latest(actor.actor_id) if self._positions else None
        return WorkflowContext(
            actor=actor,
            now=datetime.now(UTC),
            live_position=live_position,
        )

    @asynccontextmanager
    async def _task_lock(self, task_id: str) -> AsyncIterator[None]:
        """task 级串行锁

        无持有者也无等待者时移除条目，锁表只保留正在处理的任务。
        """
        lock = self._task_locks.get(task_id)
        if lock is None:
            lock = asyncio.Lock()
            self._task_locks[task_id] = lock
        self._lock_users[task_id] = self._lock_users.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[task_id] - 1
            if remaining:
                self._lock_users[task_id] = remaining
            else:
                del self._lock_users[task_id]
                self._task_locks.pop(task_id, None)

    @staticmethod
    def _is_idempotency_conflict(error: Exception) -> bool:
        if not isinstance(error, aiosqlite.IntegrityError):
            return False
        text = str(error)
        return "idx_events_idempotency_key" in text or "events.idempotency_key" in text

    async def dispatch(
        self,
        request: DispatchTask,
        actor: Actor,
        idempotency_key: str | None = None,
    ) -> tuple[Task | Rejected, bool]:
        """管理员派单

        Returns:
            (task 或 Rejected, created) -- created=False 表示幂等键命中或被拒绝
        """
        if idempotency_key:
            existing_task_id = await self._stores.event_store.check_idempotency_key(
                idempotency_key
            )
            if existing_task_id:
                existing = await self._stores.task_store.get_task(existing_task_id)
                if existing is not None:
                    return existing, False

        ctx = self._context(actor)
        result = dispatch(request, ctx)
        if isinstance(result, Rejected):
            await log.ainfo(
                "task_dispatch_rejected",
                code=result.code.value,
                actor_id=actor.actor_id,
            )
            return result, False

        task = result.task
        event = Event(
            event_id=str(ULID()),
            task_id=task.task_id,
            task_seq=1,
            ts=ctx.now,
            type=result.event_type,
            actor_id=actor.actor_id,
            payload=result.payload,
            trace_id=f"trace-{task.task_id}",
            idempotency_key=idempotency_key,
        )

        try:
            await create_task_with_initial_event(
                self._stores.conn,
                self._stores.task_store,
                self._stores.event_store,
                task,
                event,
            )
        except aiosqlite.IntegrityError as e:
            if idempotency_key and self._is_idempotency_conflict(e):
                # 并发重复派单：回查幂等键返回已存在的任务
                existing_task_id = await self._stores.event_store.check_idempotency_key(
                    idempotency_key
                )
                if existing_task_id:
                    existing = await self._stores.task_store.get_task(existing_task_id)
                    if existing is not None:
                        return existing, False
            raise

        await log.ainfo(
            "task_dispatched",
            task_id=task.task_id,
            assigned_to=task.assigned_to,
            priority=task.priority.value,
            due_date=task.due_date.isoformat(),
        )
        await self._publish(result.notification)
        return task, True

    async def execute(self, task_id: str, command: Command, actor: Actor) -> TransitionResult:
        """对任务执行一条命令

        Returns:
            Accepted（task 为已落盘的新文档）或 Rejected

        Raises:
            TaskNotFoundError: 任务不存在
            TaskVersionConflictError: 任务在读取后被其他写入方修改
        """
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            ctx = self._context(actor)
            result = apply_command(task, command, ctx)
            if isinstance(result, Rejected):
                await log.ainfo(
                    "task_command_rejected",
                    task_id=task_id,
                    command=command.kind,
                    code=result.code.value,
                    status=task.status.value,
                )
                return result

            saved = result.task.model_copy(update={"version": task.version + 1})
            seq = await self._stores.event_store.get_next_task_seq(task_id)
            event = Event(
                event_id=str(ULID()),
                task_id=task_id,
                task_seq=seq,
                ts=ctx.now,
                type=result.event_type,
                actor_id=actor.actor_id,
                payload=result.payload,
                trace_id=f"trace-{task_id}",
            )
            await append_event_and_save_task(
                self._stores.conn,
                self._stores.event_store,
                self._stores.task_store,
                event,
                saved,
                expected_version=task.version,
            )

        await log.ainfo(
            "task_command_accepted",
            task_id=task_id,
            command=command.kind,
            event_type=result.event_type.value,
            from_status=task.status.value,
            to_status=saved.status.value,
            version=saved.version,
        )
        await self._publish(result.notification)
        return Accepted(
            task=saved,
            event_type=result.event_type,
            payload=result.payload,
            notification=result.notification,
        )

    async def archive(self, task_id: str, actor: Actor) -> Rejected | None:
        """管理员归档：硬删除任务及其事件

        Returns:
            None 表示删除成功，否则为拒绝原因

        Raises:
            TaskNotFoundError: 任务不存在
        """
        if not actor.is_admin:
            return Rejected(
                code=RejectionCode.ADMIN_REQUIRED,
                message="Only an admin can archive tasks",
            )

        async with self._task_lock(task_id):
            deleted = await delete_task_and_events(
                self._stores.conn,
                self._stores.event_store,
                self._stores.task_store,
                task_id,
            )
        if not deleted:
            raise TaskNotFoundError(task_id)

        await log.ainfo("task_archived", task_id=task_id)
        return None

    async def get_task(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def get_events(self, task_id: str) -> list[Event]:
        return await self._stores.event_store.get_events_for_task(task_id)

    async def list_visible(
        self,
        actor: Actor,
        status: str | None = None,
        today: date | None = None,
    ) -> list[Task]:
        """调用者可见的任务列表（展示过滤，非权限边界）"""
        tasks = await self._stores.task_store.list_tasks(status)
        return filter_visible(tasks, actor.actor_id, actor.is_admin, today or _utc_today())

    async def board(self, actor: Actor, today: date | None = None) -> BoardSummary:
        today = today or _utc_today()
        tasks = await self.list_visible(actor, today=today)
        return summarize_board(tasks, today)

    async def progress(self, actor: Actor, today: date | None = None) -> DailyProgress:
        tasks = await self._stores.task_store.list_tasks(assigned_to=actor.actor_id)
        return daily_progress(tasks, actor.actor_id, today or _utc_today())

    async def _publish(self, notification: Notification | None) -> None:
        if notification is None or self._hub is None:
            return
        await self._hub.publish(notification)
