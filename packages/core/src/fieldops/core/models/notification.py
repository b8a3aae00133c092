"""Notification Domain Model -- 推送给通知中心的事件"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .enums import Audience, Severity


class Notification(BaseModel):
    """通知 -- fire-and-forget，不保证送达"""

    notification_id: str = Field(default="", description="通知 ID，发布时分配")
    title: str = Field(description="标题")
    message: str = Field(description="正文")
    severity: Severity = Field(default=Severity.INFO, description="严重程度")
    task_id: str = Field(default="", description="关联任务 ID")
    audience: Audience = Field(default=Audience.ALL, description="接收方")
    recipient_id: str = Field(default="", description="audience=assignee 时的技术员 ID")
    ts: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="时间戳",
    )
