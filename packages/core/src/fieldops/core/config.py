"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、地理围栏半径、外勤部门列表、SSE 心跳间隔等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("FIELDOPS_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "FIELDOPS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "fieldops.db"),
    )


def get_geofence_radius_km() -> float:
    """提交审核时允许的最大现场距离（公里）"""
    return float(os.environ.get("FIELDOPS_GEOFENCE_RADIUS_KM", "2.0"))


def get_field_departments() -> frozenset[str]:
    """外勤部门集合（小写），逗号分隔配置"""
    raw = os.environ.get("FIELDOPS_FIELD_DEPARTMENTS", "Service,Sales")
    return frozenset(
        part.strip().casefold() for part in raw.split(",") if part.strip()
    )


# 地球平均半径（公里），haversine 计算使用
EARTH_RADIUS_KM: float = 6371.0

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("FIELDOPS_SSE_HEARTBEAT_INTERVAL", "15")
)

# 通知订阅队列上限，队列满的订阅者会被移除
NOTIFICATION_QUEUE_MAXSIZE: int = 100

# 派单日志的固定动作文本
DISPATCH_LOG_ACTION: str = "Dispatched"
