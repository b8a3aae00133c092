"""端到端流转集成测试

派单 -> 检查项 -> 开始 -> 改期申请/批准 -> 开始 -> 提交（围栏内）-> 打回 -> 提交 -> 验收，
全程经 HTTP；最后从事件重建 projection，与 tasks 表一致。
"""

from datetime import UTC, datetime, timedelta

from fieldops.core.projection import rebuild_all
from httpx import AsyncClient

SITE = {"lat": 12.9716, "lng": 77.5946}
NEAR_SITE = {"lat": 12.9756, "lng": 77.5946}


class TestEndToEndWorkflow:
    async def test_full_lifecycle(
        self, client: AsyncClient, integration_app, admin_headers, field_headers
    ):
        resp = await client.post(
            "/api/tasks",
            json={
                "title": "Commission solar inverter",
                "assigned_to": "tech-1",
                "priority": "High",
                "due_date": datetime.now(UTC).date().isoformat(),
                "site": SITE,
                "location_name": "Rooftop, Block C",
                "idempotency_key": "e2e-001",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        task_id = resp.json()["task"]["task_id"]
        base = f"/api/tasks/{task_id}"

        resp = await client.post(f"{base}/checklist", json={"text": "Isolate DC"}, headers=field_headers)
        item_id = resp.json()["task"]["sub_tasks"][0]["item_id"]
        await client.post(f"{base}/start", headers=field_headers)

        resp = await client.post(
            f"{base}/move-request", json={"reason": "Panels not delivered"}, headers=field_headers
        )
        assert resp.status_code == 200
        new_due = (datetime.now(UTC).date() + timedelta(days=2)).isoformat()
        resp = await client.post(
            f"{base}/move-request/approve", json={"new_due_date": new_due}, headers=admin_headers
        )
        assert resp.json()["task"]["status"] == "ToDo"

        await client.post(f"{base}/start", headers=field_headers)
        await client.post(f"{base}/checklist/{item_id}/toggle", headers=field_headers)
        await client.put("/api/positions/me", json=NEAR_SITE, headers=field_headers)

        resp = await client.post(f"{base}/submit", headers=field_headers)
        assert resp.status_code == 200
        resp = await client.post(f"{base}/reject", json={"note": "Label the breaker"}, headers=admin_headers)
        assert resp.json()["task"]["status"] == "InProgress"
        await client.post(f"{base}/submit", headers=field_headers)
        resp = await client.post(f"{base}/approve", headers=admin_headers)
        assert resp.status_code == 200

        detail = (await client.get(base, headers=admin_headers)).json()
        task = detail["task"]
        assert task["status"] == "Done"
        assert task["due_date"] == new_due
        assert task["sub_tasks"][0]["completed"] is True
        assert task["version"] == len(detail["events"])
        assert [e["task_seq"] for e in detail["events"]] == list(range(1, len(detail["events"]) + 1))
        assert [log["action"] for log in task["logs"]] == [
            "Dispatched",
            "Started execution",
            "Requested date move: Panels not delivered",
            f"Date move approved: due {new_due}",
            "Started execution",
            "Submitted for review",
            "Rejected for redo: Label the breaker",
            "Submitted for review",
            "Approved",
        ]

        # 从事件重建 projection
        sg = integration_app.state.store_group
        await rebuild_all(sg.conn, sg.event_store, sg.task_store)

        rebuilt = (await client.get(base, headers=admin_headers)).json()
        assert rebuilt["task"] == task

    async def test_rebuild_preserves_many_tasks(
        self, client: AsyncClient, integration_app, admin_headers, field_headers
    ):
        task_ids = []
        for i in range(3):
            resp = await client.post(
                "/api/tasks",
                json={
                    "title": f"Rebuild test {i}",
                    "assigned_to": "tech-1",
                    "due_date": datetime.now(UTC).date().isoformat(),
                },
                headers=admin_headers,
            )
            task_ids.append(resp.json()["task"]["task_id"])
        await client.post(f"/api/tasks/{task_ids[1]}/start", headers=field_headers)
        await client.post(
            f"/api/tasks/{task_ids[2]}/force-finish", json={"confirmed": True}, headers=admin_headers
        )

        before = (await client.get("/api/tasks", headers=admin_headers)).json()["tasks"]

        sg = integration_app.state.store_group
        event_count = await rebuild_all(sg.conn, sg.event_store, sg.task_store)
        assert event_count == 5

        after = (await client.get("/api/tasks", headers=admin_headers)).json()["tasks"]
        assert after == before
        assert [t["status"] for t in after] == ["ToDo", "InProgress", "Done"]
