"""看板统计 -- 任务总数、完成数、高优先级未完成、逾期，以及技术员当日进度"""

from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, Field

from .models.enums import Priority, TaskStatus
from .models.task import Task


class BoardSummary(BaseModel):
    """看板统计"""

    total: int = 0
    completed: int = 0
    high_priority_open: int = 0
    overdue: int = 0
    by_status: dict[TaskStatus, int] = Field(
        default_factory=lambda: {status: 0 for status in TaskStatus}
    )


class DailyProgress(BaseModel):
    """技术员当日任务进度"""

    actor_id: str
    day: date
    total: int = 0
    completed: int = 0
    pending: int = 0
    percent: int = Field(default=100, description="完成百分比，无任务时为 100")

    @property
    def can_close_day(self) -> bool:
        return self.pending == 0


def is_overdue(task: Task, today: date) -> bool:
    """未完成且截止日期早于今天"""
    return task.status != TaskStatus.DONE and task.due_date < today


def summarize_board(tasks: Iterable[Task], today: date) -> BoardSummary:
    summary = BoardSummary()
    for task in tasks:
        summary.total += 1
        summary.by_status[task.status] += 1
        if task.status == TaskStatus.DONE:
            summary.completed += 1
        elif task.priority == Priority.HIGH:
            summary.high_priority_open += 1
        if is_overdue(task, today):
            summary.overdue += 1
    return summary


def daily_progress(tasks: Iterable[Task], actor_id: str, today: date) -> DailyProgress:
    """统计调用者今天到期任务的完成情况"""
    mine = [t for t in tasks if t.assigned_to == actor_id and t.due_date == today]
    completed = sum(1 for t in mine if t.status == TaskStatus.DONE)
    percent = round(completed * 100 / len(mine)) if mine else 100
    return DailyProgress(
        actor_id=actor_id,
        day=today,
        total=len(mine),
        completed=completed,
        pending=len(mine) - completed,
        percent=percent,
    )
