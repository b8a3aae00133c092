"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、通知中心与位置追踪初始化、路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fieldops.core.config import get_db_path, get_geofence_radius_km
from fieldops.core.store import create_store_group

from .errors import register_error_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import checklist, commands, health, positions, stream, tasks
from .services.notification_hub import NotificationHub
from .services.position_tracker import PositionTracker
from .services.task_service import TaskService

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和内存服务，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group

    app.state.notification_hub = NotificationHub()
    app.state.position_tracker = PositionTracker()
    app.state.task_service = TaskService(
        store_group,
        app.state.notification_hub,
        app.state.position_tracker,
    )
    log.info(
        "gateway_started",
        db_path=db_path,
        geofence_radius_km=get_geofence_radius_km(),
    )

    yield

    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="FieldOps Gateway",
        version="0.1.0",
        description="FieldOps 外勤任务流转 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging，Logging 在最外层）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire(app)

    register_error_handlers(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(commands.router, tags=["commands"])
    app.include_router(checklist.router, tags=["checklist"])
    app.include_router(positions.router, tags=["positions"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
