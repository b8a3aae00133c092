"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from fieldops.core.store import StoreGroup, create_store_group
from httpx import ASGITransport, AsyncClient


def attach_services(app, store_group: StoreGroup) -> None:
    """手动初始化 app.state（绕过 lifespan）"""
    from fieldops.gateway.services.notification_hub import NotificationHub
    from fieldops.gateway.services.position_tracker import PositionTracker
    from fieldops.gateway.services.task_service import TaskService

    app.state.store_group = store_group
    app.state.notification_hub = NotificationHub()
    app.state.position_tracker = PositionTracker()
    app.state.task_service = TaskService(
        store_group,
        app.state.notification_hub,
        app.state.position_tracker,
    )


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app"""
    os.environ["FIELDOPS_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from fieldops.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(str(tmp_path / "test.db"))
    attach_services(app, store_group)

    yield app

    await store_group.conn.close()
    os.environ.pop("FIELDOPS_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
