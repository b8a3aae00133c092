"""apps/gateway 测试配置 -- 手动初始化 app.state + httpx AsyncClient"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from fieldops.core.store import create_store_group
from httpx import ASGITransport, AsyncClient

_ENV_KEYS = ["FIELDOPS_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE", "FIELDOPS_GEOFENCE_RADIUS_KM"]


@pytest_asyncio.fixture
async def test_app(tmp_path: Path):
    """创建测试用 FastAPI app 实例（绕过 lifespan 手动初始化）"""
    os.environ["FIELDOPS_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"
    os.environ["FIELDOPS_GEOFENCE_RADIUS_KM"] = "2.0"

    from fieldops.gateway.main import create_app
    from fieldops.gateway.services.notification_hub import NotificationHub
    from fieldops.gateway.services.position_tracker import PositionTracker
    from fieldops.gateway.services.task_service import TaskService

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"))
    app.state.store_group = store_group
    app.state.notification_hub = NotificationHub()
    app.state.position_tracker = PositionTracker()
    app.state.task_service = TaskService(
        store_group,
        app.state.notification_hub,
        app.state.position_tracker,
    )

    yield app

    await store_group.conn.close()
    for key in _ENV_KEYS:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
