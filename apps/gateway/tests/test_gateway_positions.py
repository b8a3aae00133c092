"""PositionTracker 测试 -- 只保留每名员工的最新位置"""

from datetime import UTC, datetime, timedelta

from fieldops.core.models import Coordinate
from fieldops.gateway.services.position_tracker import PositionTracker
from httpx import AsyncClient

T0 = datetime(2024, 5, 20, 9, 30, tzinfo=UTC)


class TestPositionTracker:
    def test_latest_wins(self):
        tracker = PositionTracker()
        tracker.report("tech-1", Coordinate(lat=1.0, lng=1.0), T0)
        tracker.report("tech-1", Coordinate(lat=2.0, lng=2.0), T0 + timedelta(seconds=5))

        assert tracker.latest("tech-1") == Coordinate(lat=2.0, lng=2.0)
        assert tracker.latest_fix("tech-1").ts == T0 + timedelta(seconds=5)
        assert len(tracker) == 1

    def test_unknown_actor(self):
        tracker = PositionTracker()
        assert tracker.latest("nobody") is None
        assert tracker.clear("nobody") is False

    def test_clear(self):
        tracker = PositionTracker()
        tracker.report("tech-1", Coordinate(lat=1.0, lng=1.0), T0)

        assert tracker.clear("tech-1") is True
        assert tracker.latest("tech-1") is None
        assert len(tracker) == 0


class TestPositionRoutes:
    async def test_report_and_clear(self, client: AsyncClient, test_app, field_headers):
        resp = await client.put(
            "/api/positions/me", json={"lat": 12.9716, "lng": 77.5946}, headers=field_headers
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["actor_id"] == "tech-1"
        assert data["position"] == {"lat": 12.9716, "lng": 77.5946}
        assert test_app.state.position_tracker.latest("tech-1") is not None

        resp = await client.delete("/api/positions/me", headers=field_headers)
        assert resp.status_code == 204
        assert test_app.state.position_tracker.latest("tech-1") is None

    async def test_requires_identity(self, client: AsyncClient):
        resp = await client.put("/api/positions/me", json={"lat": 0, "lng": 0})
        assert resp.status_code == 401
