"""Geographic helpers."""

import math
from dataclasses import dataclass, field


EARTH_RADIUS_METERS = 6_371_000


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


@dataclass(frozen=True)
class LocationCheck:
    """Outcome of comparing a reported position with a task site."""

    distance: float
    within_range: bool
    warnings: list[str] = field(default_factory=list)


def verify_location(
    task_lat: float,
    task_lng: float,
    lat: float,
    lng: float,
    *,
    threshold_meters: float = 100.0,
) -> LocationCheck:
    """Measure distance to the task site and warn when beyond the threshold. Never rejects."""
    distance = haversine_distance(task_lat, task_lng, lat, lng)
    within_range = distance <= threshold_meters
    warnings = [] if within_range else [f"Bạn đang ở cách vị trí công việc {round(distance)}m"]
    return LocationCheck(distance=distance, within_range=within_range, warnings=warnings)
