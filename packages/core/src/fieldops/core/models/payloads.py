"""Event Payload 子类型

所有事件的结构化 payload 定义。携带 log 的事件在重建 projection 时
会把该日志条目追加回 Task.logs。
"""

from datetime import date

from pydantic import BaseModel, Field

from .enums import Priority, TaskStatus
from .task import Coordinate, ExceptionRequest, SubTask, TaskLog


class TaskDispatchedPayload(BaseModel):
    """TASK_DISPATCHED 事件 payload"""

    title: str
    description: str = ""
    assigned_to: str
    priority: Priority
    due_date: date
    site: Coordinate | None = None
    location_name: str = ""
    related_to: str = ""
    created_by: str
    log: TaskLog


class StateTransitionPayload(BaseModel):
    """STATE_TRANSITION 事件 payload"""

    from_status: TaskStatus
    to_status: TaskStatus
    reason: str = Field(default="")
    forced: bool = Field(default=False, description="是否为管理员强制完成")
    distance_km: float | None = Field(default=None, description="提交时与现场的距离")
    log: TaskLog


class ExceptionRequestedPayload(BaseModel):
    """EXCEPTION_REQUESTED 事件 payload"""

    request: ExceptionRequest
    log: TaskLog


class ExceptionResolvedPayload(BaseModel):
    """EXCEPTION_RESOLVED 事件 payload

    approved=True 时同时携带状态重置和新截止日期。
    """

    approved: bool
    from_status: TaskStatus
    to_status: TaskStatus
    previous_due_date: date
    new_due_date: date
    log: TaskLog


class ChecklistItemAddedPayload(BaseModel):
    """CHECKLIST_ITEM_ADDED 事件 payload"""

    item: SubTask


class ChecklistItemToggledPayload(BaseModel):
    """CHECKLIST_ITEM_TOGGLED 事件 payload"""

    item_id: str
    completed: bool
