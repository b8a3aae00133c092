"""地理距离计算 -- haversine 大圆距离

纯函数，不做输入校验：超出范围的经纬度会得到数学上有定义但无意义的结果。
"""

import math

from .config import EARTH_RADIUS_KM
from .models.task import Coordinate


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """计算两点间的大圆距离（公里）

    Args:
        a: 第一个坐标（十进制度）
        b: 第二个坐标（十进制度）

    Returns:
        距离，单位公里
    """
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    # 浮点误差可能让 h 略大于 1（对跖点附近）
    h = min(h, 1.0)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(a: Coordinate, b: Coordinate, radius_km: float) -> bool:
    """判断两点距离是否不超过 radius_km（含边界）"""
    return haversine_km(a, b) <= radius_km
