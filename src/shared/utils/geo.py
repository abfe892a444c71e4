"""地理計算ユーティリティ"""

import math

from ..exceptions.errors import ValidationError

# 地球の半径（km）
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    2点間の大円距離をHaversine公式で計算

    Args:
        lat1: 地点1の緯度（度）
        lon1: 地点1の経度（度）
        lat2: 地点2の緯度（度）
        lon2: 地点2の経度（度）

    Returns:
        float: 距離（km）
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2)
        * math.sin(d_lon / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def is_valid_coordinate(value: object) -> bool:
    """数値かつNaN/無限大でないか"""
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False
    return math.isfinite(number)


def validate_coordinates(latitude: float, longitude: float) -> None:
    """
    緯度・経度の範囲を検証

    Raises:
        ValidationError: 範囲外、または数値でない場合
    """
    if not is_valid_coordinate(latitude) or not -90 <= float(latitude) <= 90:
        raise ValidationError(f"Latitude must be between -90 and 90: {latitude}")
    if not is_valid_coordinate(longitude) or not -180 <= float(longitude) <= 180:
        raise ValidationError(f"Longitude must be between -180 and 180: {longitude}")
