from typing import Iterable, List, Optional, Sequence

from .geo import format_distance, format_duration, haversine_km, minutes_to_clock, round_half_up
from .models import EtaEntry, PositionSample, ProgressSummary, StopDisplay, Waypoint


def _segment_km(a: Waypoint, b: Waypoint) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def route_length_km(waypoints: Sequence[Waypoint]) -> float:
    return sum(_segment_km(prev, cur) for prev, cur in zip(waypoints, waypoints[1:]))


def _stop_rows(waypoints: Sequence[Waypoint], current_index: int, etas: Iterable[EtaEntry]) -> List[StopDisplay]:
    etas_by_index = {eta.waypoint_index: eta for eta in etas}
    rows = []
    for index, waypoint in enumerate(waypoints):
        if index < current_index:
            status = "passed"
        elif index == current_index:
            status = "current"
        else:
            status = "upcoming"
        eta = etas_by_index.get(index)
        rows.append(
            StopDisplay(
                index=index,
                name=waypoint.name,
                kind=waypoint.kind,
                status=status,
                scheduled_time=waypoint.scheduled_time,
                actual_arrival_time=waypoint.actual_arrival_time,
                eta_minutes=eta.eta_minutes if eta else None,
                eta_display=format_duration(eta.eta_minutes) if eta else None,
                estimated_arrival=minutes_to_clock(eta.estimated_arrival.hour * 60 + eta.estimated_arrival.minute) if eta else None,
                distance=format_distance(eta.cumulative_distance_km) if eta else None,
            )
        )
    return rows


def compute_progress(
    waypoints: Sequence[Waypoint],
    position: Optional[PositionSample],
    current_index: int,
    etas: Iterable[EtaEntry] = (),
) -> ProgressSummary:
    """
    Summarise how far along the route the bus is.

    `current_index` is the last waypoint the bus reached. Distance travelled is
    every completed segment up to it plus the stretch from that waypoint to the
    bus, unless the bus is already at the final waypoint.
    """
    if not waypoints:
        return ProgressSummary()

    current_index = min(max(int(current_index or 0), 0), len(waypoints) - 1)
    rows = _stop_rows(waypoints, current_index, etas)
    current = waypoints[current_index]
    following = waypoints[current_index + 1] if current_index + 1 < len(waypoints) else None

    summary = ProgressSummary(
        current_waypoint_name=current.name,
        next_waypoint_name=following.name if following else None,
        per_stop_display=rows,
    )
    if position is None:
        return summary

    total = route_length_km(waypoints)
    traveled = route_length_km(waypoints[: current_index + 1])
    if current_index < len(waypoints) - 1:
        traveled += haversine_km(current.latitude, current.longitude, position.latitude, position.longitude)

    percent = 0
    if total > 0:
        percent = min(100, max(0, round_half_up(traveled / total * 100)))

    summary.percent_complete = percent
    summary.total_distance_km = round(total, 2)
    summary.traveled_distance_km = round(traveled, 2)
    return summary
