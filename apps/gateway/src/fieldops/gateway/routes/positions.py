"""实时位置路由

PUT /api/positions/me: 上报调用者当前位置（覆盖上一次）。
DELETE /api/positions/me: 停止位置追踪。
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fieldops.core.models import Actor, Coordinate
from pydantic import Field
from starlette.responses import Response

from ..deps import get_actor, get_position_tracker
from ..services.position_tracker import PositionTracker

router = APIRouter()


class PositionReport(Coordinate):
    lat: float = Field(ge=-90, le=90, description="纬度")
    lng: float = Field(ge=-180, le=180, description="经度")


@router.put("/api/positions/me")
async def report_position(
    body: PositionReport,
    actor: Actor = Depends(get_actor),
    tracker: PositionTracker = Depends(get_position_tracker),
):
    fix = tracker.report(
        actor.actor_id,
        Coordinate(lat=body.lat, lng=body.lng),
        datetime.now(UTC),
    )
    return {
        **fix.model_dump(mode="json"),
        "work_mode": actor.work_mode.value,
    }


@router.delete("/api/positions/me")
async def clear_position(
    actor: Actor = Depends(get_actor),
    tracker: PositionTracker = Depends(get_position_tracker),
):
    tracker.clear(actor.actor_id)
    return Response(status_code=204)
