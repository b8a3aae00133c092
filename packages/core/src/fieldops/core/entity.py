"""Task 实体操作 -- 审计日志追加与检查项编辑

所有函数返回新的 Task 副本，不修改入参。
检查项编辑不写审计日志。
"""

from datetime import datetime

from ulid import ULID

from .models.task import SubTask, Task, TaskLog


def append_log(task: Task, actor_id: str, action: str, now: datetime) -> Task:
    """追加一条审计日志

    Args:
        task: 当前任务
        actor_id: 操作者 ID
        action: 动作描述
        now: 日志时间戳

    Returns:
        追加日志后的任务副本
    """
    entry = TaskLog(log_id=str(ULID()), actor_id=actor_id, action=action, ts=now)
    return task.model_copy(update={"logs": [*task.logs, entry], "updated_at": now})


def latest_log(task: Task) -> TaskLog | None:
    """最新一条审计日志"""
    return task.logs[-1] if task.logs else None


def add_checklist_item(task: Task, text: str, item_id: str | None = None) -> Task:
    """在检查项末尾追加一项

    Raises:
        ValueError: text 为空白
    """
    text = text.strip()
    if not text:
        raise ValueError("checklist item text must not be blank")
    item = SubTask(item_id=item_id or str(ULID()), text=text)
    return task.model_copy(update={"sub_tasks": [*task.sub_tasks, item]})


def toggle_checklist_item(task: Task, item_id: str) -> Task:
    """切换检查项完成状态，顺序保持不变

    Raises:
        KeyError: item_id 不存在
    """
    if not any(item.item_id == item_id for item in task.sub_tasks):
        raise KeyError(item_id)
    sub_tasks = [
        item.model_copy(update={"completed": not item.completed})
        if item.item_id == item_id
        else item
        for item in task.sub_tasks
    ]
    return task.model_copy(update={"sub_tasks": sub_tasks})


def checklist_progress(task: Task) -> tuple[int, int]:
    """返回 (已完成数, 总数)"""
    done = sum(1 for item in task.sub_tasks if item.completed)
    return done, len(task.sub_tasks)
