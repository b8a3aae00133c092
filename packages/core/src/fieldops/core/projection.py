"""Projection 重建模块

从 events 表重建 tasks 表（物化视图），确保事件溯源的一致性。
支持单事件应用和全量重建两种模式。
每个事件对应一次文档提交，因此重建后的 version 等于该任务的事件数。
"""

import time

import aiosqlite
import structlog

from .models.enums import EventType, TaskStatus
from .models.event import Event
from .models.payloads import (
    ChecklistItemAddedPayload,
    ChecklistItemToggledPayload,
    ExceptionRequestedPayload,
    ExceptionResolvedPayload,
    StateTransitionPayload,
    TaskDispatchedPayload,
)
from .models.task import Task
from .store.event_store import SqliteEventStore
from .store.task_store import SqliteTaskStore

log = structlog.get_logger()


def apply_event(tasks: dict[str, Task], event: Event) -> None:
    """将单个事件应用到 Task 状态（内存中操作）

    Args:
        tasks: task_id -> Task 的映射表（会被就地修改）
        event: 要应用的事件
    """
    task_id = event.task_id

    if event.type == EventType.TASK_DISPATCHED:
        payload = TaskDispatchedPayload.model_validate(event.payload)
        tasks[task_id] = Task(
            task_id=task_id,
            title=payload.title,
            description=payload.description,
            assigned_to=payload.assigned_to,
            priority=payload.priority,
            status=TaskStatus.TODO,
            due_date=payload.due_date,
            site=payload.site,
            location_name=payload.location_name,
            related_to=payload.related_to,
            logs=[payload.log],
            created_by=payload.created_by,
            created_at=event.ts,
            updated_at=event.ts,
            version=1,
        )
        return

    task = tasks.get(task_id)
    if task is None:
        # 孤立事件（任务派单事件缺失），跳过
        return

    update: dict = {"updated_at": event.ts, "version": task.version + 1}

    if event.type == EventType.STATE_TRANSITION:
        transition = StateTransitionPayload.model_validate(event.payload)
        update["status"] = transition.to_status
        update["logs"] = [*task.logs, transition.log]
    elif event.type == EventType.EXCEPTION_REQUESTED:
        requested = ExceptionRequestedPayload.model_validate(event.payload)
        update["exception_request"] = requested.request
        update["logs"] = [*task.logs, requested.log]
    elif event.type == EventType.EXCEPTION_RESOLVED:
        resolved = ExceptionResolvedPayload.model_validate(event.payload)
        update["exception_request"] = None
        update["status"] = resolved.to_status
        update["due_date"] = resolved.new_due_date
        update["logs"] = [*task.logs, resolved.log]
    elif event.type == EventType.CHECKLIST_ITEM_ADDED:
        added = ChecklistItemAddedPayload.model_validate(event.payload)
        update["sub_tasks"] = [*task.sub_tasks, added.item]
    elif event.type == EventType.CHECKLIST_ITEM_TOGGLED:
        toggled = ChecklistItemToggledPayload.model_validate(event.payload)
        update["sub_tasks"] = [
            item.model_copy(update={"completed": toggled.completed})
            if item.item_id == toggled.item_id
            else item
            for item in task.sub_tasks
        ]

    tasks[task_id] = task.model_copy(update=update)


def project_task(events: list[Event]) -> Task | None:
    """将单个任务的事件序列折叠为任务文档"""
    tasks: dict[str, Task] = {}
    for event in events:
        apply_event(tasks, event)
    return next(iter(tasks.values()), None)


async def rebuild_all(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    task_store: SqliteTaskStore,
) -> int:
    """从 events 表重建 tasks 表

    流程：
    1. 读取所有事件（按 task_id, task_seq 排序）
    2. 在内存中应用所有事件，构建 Task 状态
    3. 清空 tasks 表
    4. 写入重建后的所有 Task

    Returns:
        处理的事件总数
    """
    start_time = time.monotonic()

    events = await event_store.get_all_events()
    event_count = len(events)

    await log.ainfo(
        "projection_rebuild_started",
        event_count=event_count,
    )

    tasks: dict[str, Task] = {}
    for event in events:
        apply_event(tasks, event)

    # 临时禁用外键约束，清空 tasks 表后重建
    await conn.execute("PRAGMA foreign_keys = OFF")
    try:
        await conn.execute("DELETE FROM tasks")
        for task in tasks.values():
            await task_store.create_task(task)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    finally:
        await conn.execute("PRAGMA foreign_keys = ON")

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "projection_rebuild_completed",
        event_count=event_count,
        task_count=len(tasks),
        elapsed_ms=elapsed_ms,
    )

    return event_count
