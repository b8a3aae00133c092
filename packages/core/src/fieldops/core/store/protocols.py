"""Store Protocol 接口定义

定义 TaskStore、EventStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.event import Event
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口 -- 完整文档读写"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(
        self,
        status: str | None = None,
        assigned_to: str | None = None,
    ) -> list[Task]:
        """查询任务列表"""
        ...

    async def save_task(self, task: Task, expected_version: int) -> bool:
        """按 task_id 整体替换，version 不匹配时返回 False"""
        ...

    async def delete_task(self, task_id: str) -> bool:
        """硬删除任务"""
        ...


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新。
    """

    async def append_event(self, event: Event) -> None:
        """追加事件（append-only）"""
        ...

    async def get_events_for_task(self, task_id: str) -> list[Event]:
        """查询指定任务的所有事件"""
        ...

    async def get_events_after(
        self,
        task_id: str,
        after_event_id: str,
    ) -> list[Event]:
        """查询指定事件之后的增量事件"""
        ...

    async def get_next_task_seq(self, task_id: str) -> int:
        """获取指定任务的下一个 task_seq（MAX+1）"""
        ...

    async def check_idempotency_key(self, key: str) -> str | None:
        """检查幂等键是否已存在，返回关联的 task_id 或 None"""
        ...
