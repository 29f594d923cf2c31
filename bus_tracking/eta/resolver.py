from typing import List, Optional, Sequence

from .geo import haversine_km
from .models import PositionSample, Route, RouteLocation, Waypoint

DEFAULT_ARRIVAL_RADIUS_KM = 0.1


def _endpoint(location: RouteLocation, kind: str, scheduled: bool = True) -> Waypoint:
    return Waypoint(
        name=location.name or kind.title(),
        latitude=location.latitude,
        longitude=location.longitude,
        kind=kind,
        scheduled_time=location.time if scheduled else None,
    )


def build_waypoints(route: Optional[Route], return_trip: bool = False) -> List[Waypoint]:
    """
    Flatten a route into its ordered waypoints: start, stops, end.

    On the return trip the bus leaves from the end location and visits the
    stops in reverse. Route times describe the outbound run only, so return
    waypoints carry no schedule.
    """
    if route is None:
        return []

    scheduled = not return_trip
    stops = [
        Waypoint(
            name=stop.name,
            latitude=stop.latitude,
            longitude=stop.longitude,
            kind="stop",
            scheduled_time=stop.time if scheduled else None,
            estimated_arrival_minutes_from_start=stop.estimated_arrival_time if scheduled else None,
        )
        for stop in route.stops
    ]
    if return_trip:
        return [
            _endpoint(route.end_location, "start", scheduled=False),
            *reversed(stops),
            _endpoint(route.start_location, "end", scheduled=False),
        ]
    return [_endpoint(route.start_location, "start"), *stops, _endpoint(route.end_location, "end")]


def resolve_current_waypoint(
    position: Optional[PositionSample],
    waypoints: Sequence[Waypoint],
    last_index: int = 0,
    arrival_radius_km: float = DEFAULT_ARRIVAL_RADIUS_KM,
) -> int:
    """
    Return the index of the next waypoint the vehicle has not reached yet.

    Starting at `last_index`, every waypoint within `arrival_radius_km` of the
    position counts as reached and the scan moves past it. The scan stops at
    the first waypoint that is still out of range, so the result never drops
    below `last_index`. `len(waypoints)` means every waypoint was reached.
    """
    if not waypoints:
        return 0
    index = min(max(int(last_index or 0), 0), len(waypoints))
    if position is None:
        return index

    while index < len(waypoints):
        waypoint = waypoints[index]
        distance = haversine_km(position.latitude, position.longitude, waypoint.latitude, waypoint.longitude)
        if distance >= arrival_radius_km:
            break
        index += 1
    return index
