"""任务可见性过滤 -- 按调用者角色投影任务列表

仅用于展示，不是安全边界。
"""

from collections.abc import Iterable
from datetime import date

from .models.enums import Priority, TaskStatus
from .models.task import Task


def is_visible(task: Task, actor_id: str, is_admin: bool, today: date) -> bool:
    """单个任务是否对调用者可见

    非管理员可见：自己负责的任务、所有 High 优先级任务、今天到期且已完成的任务。
    """
    if is_admin:
        return True
    if task.assigned_to == actor_id:
        return True
    if task.priority == Priority.HIGH:
        return True
    return task.status == TaskStatus.DONE and task.due_date == today


def filter_visible(
    tasks: Iterable[Task],
    actor_id: str,
    is_admin: bool,
    today: date,
) -> list[Task]:
    """过滤出调用者可见的任务，保持输入顺序"""
    if is_admin:
        return list(tasks)
    return [t for t in tasks if is_visible(t, actor_id, is_admin, today)]
