from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from .geo import haversine_km, round_half_up
from .models import EtaEntry, PositionSample, Waypoint

DEFAULT_SPEED_KMH = 30.0


def effective_speed(speed_kmh: Optional[float], default_speed_kmh: float = DEFAULT_SPEED_KMH) -> float:
    # A stationary bus (speed 0) would give an infinite ETA
    return speed_kmh if speed_kmh and speed_kmh > 0 else default_speed_kmh


def estimate_etas(
    position: Optional[PositionSample],
    speed_kmh: Optional[float],
    waypoints: Sequence[Waypoint],
    from_index: int,
    now: Optional[datetime] = None,
    default_speed_kmh: float = DEFAULT_SPEED_KMH,
) -> List[EtaEntry]:
    """
    Estimate arrival at every waypoint from `from_index` to the end of the route.

    The first hop is measured from the current position, later hops between
    consecutive waypoints. Times accumulate, so each entry includes all the
    segments before it.
    """
    if position is None or not waypoints:
        return []

    now = now or datetime.now()
    speed = effective_speed(speed_kmh, default_speed_kmh)
    start = max(int(from_index or 0), 0)

    etas = []
    cumulative_minutes = 0.0
    cumulative_km = 0.0
    prev_lat, prev_lng = position.latitude, position.longitude
    for index in range(start, len(waypoints)):
        waypoint = waypoints[index]
        distance = haversine_km(prev_lat, prev_lng, waypoint.latitude, waypoint.longitude)
        cumulative_km += distance
        cumulative_minutes += distance / speed * 60
        etas.append(
            EtaEntry(
                waypoint_index=index,
                waypoint_name=waypoint.name,
                distance_km=round(distance, 2),
                cumulative_distance_km=round(cumulative_km, 2),
                eta_minutes=round_half_up(cumulative_minutes),
                estimated_arrival=now + timedelta(minutes=cumulative_minutes),
            )
        )
        prev_lat, prev_lng = waypoint.latitude, waypoint.longitude
    return etas
