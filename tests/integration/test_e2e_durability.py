"""持久性集成测试

进程重启后任务文档与事件完整。
"""

import os
from datetime import UTC, datetime
from pathlib import Path

from fieldops.core.store import create_store_group
from fieldops.gateway.services.notification_hub import NotificationHub
from fieldops.gateway.services.position_tracker import PositionTracker
from fieldops.gateway.services.task_service import TaskService
from httpx import ASGITransport, AsyncClient


async def _start_app(db_path: str):
    from fieldops.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    app.state.notification_hub = NotificationHub()
    app.state.position_tracker = PositionTracker()
    app.state.task_service = TaskService(
        store_group, app.state.notification_hub, app.state.position_tracker
    )
    return app


class TestDurability:
    async def test_tasks_survive_restart(self, tmp_path: Path, admin_headers, field_headers):
        """派单并开始 -> 关闭 Store -> 重新打开 -> 数据完整"""
        db_path = str(tmp_path / "durable.db")
        os.environ["FIELDOPS_DB_PATH"] = db_path
        os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

        try:
            # 第一次启动
            app1 = await _start_app(db_path)
            async with AsyncClient(
                transport=ASGITransport(app=app1), base_url="http://test"
            ) as c1:
                resp = await c1.post(
                    "/api/tasks",
                    json={
                        "title": "Durable task",
                        "assigned_to": "tech-1",
                        "due_date": datetime.now(UTC).date().isoformat(),
                        "idempotency_key": "durable-001",
                    },
                    headers=admin_headers,
                )
                assert resp.status_code == 201
                task_id = resp.json()["task"]["task_id"]
                await c1.post(f"/api/tasks/{task_id}/start", headers=field_headers)

            # 模拟进程退出
            await app1.state.store_group.conn.close()

            # 第二次启动
            app2 = await _start_app(db_path)
            async with AsyncClient(
                transport=ASGITransport(app=app2), base_url="http://test"
            ) as c2:
                resp = await c2.get(f"/api/tasks/{task_id}", headers=admin_headers)
                assert resp.status_code == 200
                data = resp.json()
                assert data["task"]["title"] == "Durable task"
                assert data["task"]["status"] == "InProgress"
                assert len(data["events"]) == 2

                # 幂等键跨重启仍然生效
                resp = await c2.post(
                    "/api/tasks",
                    json={
                        "title": "Durable task",
                        "assigned_to": "tech-1",
                        "due_date": datetime.now(UTC).date().isoformat(),
                        "idempotency_key": "durable-001",
                    },
                    headers=admin_headers,
                )
                assert resp.status_code == 200
                assert resp.json()["task"]["task_id"] == task_id

            await app2.state.store_group.conn.close()
        finally:
            os.environ.pop("FIELDOPS_DB_PATH", None)
            os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)
