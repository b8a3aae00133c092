"""FieldOps Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .actor import Actor, work_mode_for_department
from .enums import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    Audience,
    EventType,
    ExceptionStatus,
    ExceptionType,
    Priority,
    Severity,
    TaskStatus,
    WorkMode,
    validate_transition,
)
from .event import Event
from .notification import Notification
from .payloads import (
    ChecklistItemAddedPayload,
    ChecklistItemToggledPayload,
    ExceptionRequestedPayload,
    ExceptionResolvedPayload,
    StateTransitionPayload,
    TaskDispatchedPayload,
)
from .task import Coordinate, ExceptionRequest, MoveRequest, SubTask, Task, TaskLog

__all__ = [
    # 枚举
    "TaskStatus",
    "Priority",
    "WorkMode",
    "EventType",
    "ExceptionType",
    "ExceptionStatus",
    "Severity",
    "Audience",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "validate_transition",
    # Task
    "Task",
    "Coordinate",
    "SubTask",
    "TaskLog",
    "MoveRequest",
    "ExceptionRequest",
    # Actor
    "Actor",
    "work_mode_for_department",
    # Event
    "Event",
    # Notification
    "Notification",
    # Payloads
    "TaskDispatchedPayload",
    "StateTransitionPayload",
    "ExceptionRequestedPayload",
    "ExceptionResolvedPayload",
    "ChecklistItemAddedPayload",
    "ChecklistItemToggledPayload",
]
