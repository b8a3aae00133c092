"""事件 + 任务文档原子事务封装

在同一 SQLite 事务内原子提交事件和任务文档替换，
任一步失败整体回滚。
"""

import aiosqlite

from ..models.event import Event
from ..models.task import Task
from .event_store import SqliteEventStore
from .task_store import SqliteTaskStore


class TaskVersionConflictError(Exception):
    """任务已被其他写入方修改（version 不匹配）"""

    def __init__(self, task_id: str, expected_version: int) -> None:
        super().__init__(
            f"Task {task_id} was modified concurrently (expected version {expected_version})"
        )
        self.task_id = task_id
        self.expected_version = expected_version


async def create_task_with_initial_event(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    event_store: SqliteEventStore,
    task: Task,
    event: Event,
) -> None:
    """单事务写入新任务和派单事件"""
    try:
        await task_store.create_task(task)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def append_event_and_save_task(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    task_store: SqliteTaskStore,
    event: Event,
    task: Task,
    expected_version: int,
) -> None:
    """在同一事务内原子提交事件写入和任务文档替换

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        event_store: EventStore 实例
        task_store: TaskStore 实例
        event: 要写入的事件
        task: 新的任务文档（version 已由调用方递增）
        expected_version: 读取时的 version

    Raises:
        TaskVersionConflictError: 库中 version 已变化，事务回滚
    """
    try:
        saved = await task_store.save_task(task, expected_version)
        if not saved:
            raise TaskVersionConflictError(task.task_id, expected_version)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def delete_task_and_events(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    task_store: SqliteTaskStore,
    task_id: str,
) -> bool:
    """归档：删除任务及其全部事件

    Returns:
        True 如果任务存在并被删除
    """
    try:
        await event_store.delete_events_for_task(task_id)
        deleted = await task_store.delete_task(task_id)
        await conn.commit()
        return deleted
    except Exception:
        await conn.rollback()
        raise
