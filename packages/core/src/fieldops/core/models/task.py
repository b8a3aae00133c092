"""Task Domain Model -- 外勤任务文档

tasks 表保存完整任务文档（含检查项、日志、异常申请），
每次提交都整体替换并递增 version。
"""

from datetime import date, datetime
from typing import Literal, TypeAlias

from pydantic import BaseModel, Field

from .enums import ExceptionStatus, ExceptionType, Priority, TaskStatus


class Coordinate(BaseModel):
    """经纬度坐标（十进制度）"""

    lat: float = Field(description="纬度")
    lng: float = Field(description="经度")


class SubTask(BaseModel):
    """检查项 -- 仅用于展示进度，不阻断流转"""

    item_id: str = Field(description="检查项 ID")
    text: str = Field(description="检查项内容")
    completed: bool = Field(default=False, description="是否完成")


class TaskLog(BaseModel):
    """审计日志条目，追加后不可修改"""

    log_id: str = Field(description="日志 ID，ULID 格式")
    actor_id: str = Field(description="操作者 ID")
    action: str = Field(description="动作描述")
    ts: datetime = Field(description="时间戳")


class MoveRequest(BaseModel):
    """改期申请"""

    type: Literal[ExceptionType.MOVE] = ExceptionType.MOVE
    reason: str = Field(description="申请理由")
    status: ExceptionStatus = Field(default=ExceptionStatus.PENDING)
    ts: datetime = Field(description="申请时间")


# 新的申请类型加入时改为 Annotated[MoveRequest | ..., Field(discriminator="type")]
ExceptionRequest: TypeAlias = MoveRequest


class Task(BaseModel):
    """Task 数据模型

    assigned_to 只能是一名技术员；logs 只追加；
    exception_request 同一时刻最多一个。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    assigned_to: str = Field(description="负责技术员 ID")
    priority: Priority = Field(default=Priority.MEDIUM, description="优先级")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="当前状态")
    due_date: date = Field(description="截止日期")
    site: Coordinate | None = Field(default=None, description="现场坐标")
    location_name: str = Field(default="", description="现场名称")
    related_to: str = Field(default="", description="关联线索或工单")
    sub_tasks: list[SubTask] = Field(default_factory=list, description="检查项，按插入顺序")
    logs: list[TaskLog] = Field(default_factory=list, description="审计日志")
    exception_request: ExceptionRequest | None = Field(
        default=None,
        description="未决的异常申请",
    )
    created_by: str = Field(default="", description="派单管理员 ID")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    version: int = Field(default=1, description="乐观并发版本号")

    @property
    def has_pending_exception(self) -> bool:
        return (
            self.exception_request is not None
            and self.exception_request.status == ExceptionStatus.PENDING
        )
