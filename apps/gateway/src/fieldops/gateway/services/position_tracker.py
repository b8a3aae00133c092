"""PositionTracker -- 员工实时位置（最新值）

客户端持续上报位置，服务端只保留每个员工的最新一次；
提交审核时读取决策时刻的最新值。停止追踪时移除记录。
"""

from datetime import datetime

import structlog
from fieldops.core.models import Coordinate
from pydantic import BaseModel

log = structlog.get_logger()


class PositionFix(BaseModel):
    """一次位置上报"""

    actor_id: str
    position: Coordinate
    ts: datetime


class PositionTracker:
    def __init__(self) -> None:
        self._fixes: dict[str, PositionFix] = {}

    def report(self, actor_id: str, position: Coordinate, ts: datetime) -> PositionFix:
        fix = PositionFix(actor_id=actor_id, position=position, ts=ts)
        self._fixes[actor_id] = fix
        return fix

    def latest(self, actor_id: str) -> Coordinate | None:
        fix = self._fixes.get(actor_id)
        return fix.position if fix else None

    def latest_fix(self, actor_id: str) -> PositionFix | None:
        return self._fixes.get(actor_id)

    def clear(self, actor_id: str) -> bool:
        """停止追踪，返回之前是否存在位置记录"""
        removed = self._fixes.pop(actor_id, None) is not None
        if removed:
            log.info("position_watch_cleared", actor_id=actor_id)
        return removed

    def __len__(self) -> int:
        return len(self._fixes)
