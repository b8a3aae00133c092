"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例与调用者身份

服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
身份由上游身份提供方以请求头传入，本服务不做用户管理。
"""

from fastapi import Header, Request
from fieldops.core.models import Actor

from .services.notification_hub import NotificationHub
from .services.position_tracker import PositionTracker
from .services.task_service import TaskService

ADMIN_ROLE = "admin"


class UnauthenticatedError(Exception):
    """请求未携带调用者身份"""


def get_notification_hub(request: Request) -> NotificationHub:
    return request.app.state.notification_hub


def get_position_tracker(request: Request) -> PositionTracker:
    return request.app.state.position_tracker


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


async def get_actor(
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
    x_actor_name: str | None = Header(default=None, alias="X-Actor-Name"),
    x_actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
    x_actor_department: str | None = Header(default=None, alias="X-Actor-Department"),
) -> Actor:
    """从请求头解析调用者身份

    Raises:
        UnauthenticatedError: 缺少 X-Actor-Id
    """
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise UnauthenticatedError("X-Actor-Id header is required")
    return Actor(
        actor_id=actor_id,
        display_name=(x_actor_name or "").strip(),
        is_admin=(x_actor_role or "").strip().casefold() == ADMIN_ROLE,
        department=(x_actor_department or "").strip(),
    )
