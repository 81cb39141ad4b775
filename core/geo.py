from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

from core.constants import EARTH_RADIUS_M, MIN_DISTANCE_M, MIN_SPEED_M_S


def _lat_lng(pos: Any) -> tuple[float, float]:
    if isinstance(pos, Mapping):
        lng = pos["lng"] if "lng" in pos else pos["lon"]
        return float(pos["lat"]), float(lng)
    if isinstance(pos, Sequence):
        return float(pos[0]), float(pos[1])
    return float(pos.lat), float(pos.lng)


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance orthodromique en metres (rayon terrestre 6 371 000 m)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) * math.sin(d_lng / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance(pos1: Any, pos2: Any) -> float:
    """Distance between two ``(lat, lng)`` positions given as tuples, dicts or objects."""
    lat1, lng1 = _lat_lng(pos1)
    lat2, lng2 = _lat_lng(pos2)
    return haversine_distance(lat1, lng1, lat2, lng2)


def speed_between(distance_m: float, elapsed_s: float) -> float | None:
    if not (elapsed_s > 0) or not math.isfinite(distance_m):
        return None
    return distance_m / elapsed_s


def acceleration_magnitude(x: float | None, y: float | None, z: float | None) -> float:
    """Norme 3D, independante de l'orientation du telephone. Axe absent = 0."""
    return math.sqrt((x or 0.0) ** 2 + (y or 0.0) ** 2 + (z or 0.0) ** 2)


def is_real_movement(
    distance_m: float,
    speed_m_s: float,
    min_distance_m: float = MIN_DISTANCE_M,
    min_speed_m_s: float = MIN_SPEED_M_S,
) -> bool:
    # derive GPS: +-5-10 m a l'arret
    return distance_m > min_distance_m and speed_m_s >= min_speed_m_s
