"""枚举定义 -- 任务状态机、优先级、工作模式、事件类型等

包含 TaskStatus 看板状态机、VALID_TRANSITIONS 合法流转映射和
TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 看板状态机"""

    TODO = "ToDo"
    IN_PROGRESS = "InProgress"
    REVIEW = "Review"
    DONE = "Done"


class Priority(StrEnum):
    """任务优先级"""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class WorkMode(StrEnum):
    """技术员工作模式，由部门决定"""

    FIELD = "Field"
    OFFICE = "Office"


# 合法状态流转（管理员强制完成单独处理，不经过此表）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.TODO: {TaskStatus.IN_PROGRESS},
    TaskStatus.IN_PROGRESS: {TaskStatus.REVIEW},
    TaskStatus.REVIEW: {TaskStatus.DONE, TaskStatus.IN_PROGRESS},
    # 终态不可再流转
    TaskStatus.DONE: set(),
}

TERMINAL_STATES: set[TaskStatus] = {TaskStatus.DONE}


class ExceptionType(StrEnum):
    """异常申请类型（tagged variant 判别字段）"""

    MOVE = "Move"


class ExceptionStatus(StrEnum):
    """异常申请处理状态"""

    PENDING = "Pending"
    RESOLVED = "Resolved"


class EventType(StrEnum):
    """事件类型"""

    TASK_DISPATCHED = "TASK_DISPATCHED"
    STATE_TRANSITION = "STATE_TRANSITION"
    EXCEPTION_REQUESTED = "EXCEPTION_REQUESTED"
    EXCEPTION_RESOLVED = "EXCEPTION_RESOLVED"
    CHECKLIST_ITEM_ADDED = "CHECKLIST_ITEM_ADDED"
    CHECKLIST_ITEM_TOGGLED = "CHECKLIST_ITEM_TOGGLED"


class Severity(StrEnum):
    """通知严重程度"""

    INFO = "info"
    ALERT = "alert"
    WARNING = "warning"
    SUCCESS = "success"


class Audience(StrEnum):
    """通知接收方"""

    ADMIN = "admin"
    ASSIGNEE = "assignee"
    ALL = "all"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
