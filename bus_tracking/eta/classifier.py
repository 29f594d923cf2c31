from datetime import datetime
from typing import Mapping, Optional, Sequence

from .geo import clock_to_minutes, round_half_up
from .models import DelayVerdict, EtaEntry, PositionSample, RouteDelaySummary, StopArrival, UpcomingStop, Waypoint

STOPPED_THRESHOLD_MINUTES = 5.0
VEHICLE_STOPPED = "vehicle stopped"

# Per-stop and per-route thresholds (minutes)
STOP_DELAYED_AFTER = 5
STOP_EARLY_BEFORE = -2
ROUTE_DELAYED_AFTER = 10
ROUTE_EARLY_BEFORE = -5


def _clock_minutes(moment: datetime) -> int:
    # Minutes since midnight; schedules that cross midnight are not supported
    return moment.hour * 60 + moment.minute


def next_unvisited(waypoints: Sequence[Waypoint]) -> Optional[Waypoint]:
    return next((wp for wp in waypoints if wp.actual_arrival_time is None), None)


def classify_delay(
    waypoints: Sequence[Waypoint],
    etas: Sequence[EtaEntry],
    current_sample: Optional[PositionSample],
    now: Optional[datetime] = None,
    stopped_threshold_minutes: float = STOPPED_THRESHOLD_MINUTES,
) -> DelayVerdict:
    """
    Decide whether the trip is running late.

    Checks run in a fixed order and the first one that fires wins:

    1. the bus reports zero speed and has not updated for longer than
       `stopped_threshold_minutes`;
    2. a visited waypoint whose recorded arrival is later than scheduled;
    3. the first unvisited waypoint, whose ETA (or, without an ETA, the
       current time) is past its scheduled time.

    Waypoints after the first unvisited one are not looked at.
    """
    if not waypoints or current_sample is None:
        return DelayVerdict(reason="No data available")

    now = now or datetime.now()
    upcoming = next_unvisited(waypoints)
    next_stop = upcoming.name if upcoming else "Unknown"

    minutes_since_update = (now - current_sample.timestamp).total_seconds() / 60
    if current_sample.speed_kmh == 0 and minutes_since_update > stopped_threshold_minutes:
        return DelayVerdict(
            is_delayed=True,
            delay_minutes=round_half_up(minutes_since_update),
            reason=VEHICLE_STOPPED,
            affected_waypoint=next_stop if upcoming else None,
            next_stop=next_stop,
        )

    etas_by_index = {eta.waypoint_index: eta for eta in etas}
    current_minutes = _clock_minutes(now)

    for index, waypoint in enumerate(waypoints):
        scheduled = clock_to_minutes(waypoint.scheduled_time)

        if waypoint.actual_arrival_time is not None:
            actual = clock_to_minutes(waypoint.actual_arrival_time)
            if scheduled is not None and actual is not None and actual > scheduled:
                return DelayVerdict(
                    is_delayed=True,
                    delay_minutes=actual - scheduled,
                    reason=f"Delayed at {waypoint.name}",
                    affected_waypoint=waypoint.name,
                    next_stop=next_stop,
                )
            continue

        # An unscheduled waypoint (e.g. a start point with no departure time) cannot be late
        if scheduled is None:
            break

        eta = etas_by_index.get(index)
        if eta is not None:
            estimated = _clock_minutes(eta.estimated_arrival)
            if estimated > scheduled:
                return DelayVerdict(
                    is_delayed=True,
                    delay_minutes=estimated - scheduled,
                    reason=f"Expected delay at {waypoint.name}",
                    affected_waypoint=waypoint.name,
                    next_stop=waypoint.name,
                )
        elif current_minutes > scheduled:
            return DelayVerdict(
                is_delayed=True,
                delay_minutes=current_minutes - scheduled,
                reason=f"Expected delay at {waypoint.name}",
                affected_waypoint=waypoint.name,
                next_stop=waypoint.name,
            )
        break

    return DelayVerdict(next_stop=next_stop)


def classify_stop_arrival(waypoint: Waypoint, actual_minutes_from_start: float) -> StopArrival:
    """Grade an arrival against the stop's planned minutes from trip start."""
    planned = waypoint.estimated_arrival_minutes_from_start
    delay = actual_minutes_from_start - planned if planned is not None else 0.0
    if delay > STOP_DELAYED_AFTER:
        status = "Delayed"
    elif delay < STOP_EARLY_BEFORE:
        status = "Early"
    else:
        status = "On Time"
    return StopArrival(name=waypoint.name, actual_minutes=actual_minutes_from_start, delay=delay, status=status)


def summarize_route_delays(arrivals: Mapping[int, StopArrival], waypoints: Sequence[Waypoint]) -> RouteDelaySummary:
    """Roll per-stop arrivals up into a route status keyed on the average delay."""
    if not arrivals:
        upcoming = [UpcomingStop(name=wp.name, scheduled_time=wp.scheduled_time) for wp in waypoints]
        return RouteDelaySummary(
            next_stop=upcoming[0].name if upcoming else "Route complete",
            upcoming_stops=upcoming,
        )

    average = sum(arrival.delay for arrival in arrivals.values()) / len(arrivals)
    if average > ROUTE_DELAYED_AFTER:
        status = "Delayed"
    elif average < ROUTE_EARLY_BEFORE:
        status = "Early"
    else:
        status = "On Time"

    last_reported = arrivals[max(arrivals)]
    upcoming = [
        UpcomingStop(name=wp.name, scheduled_time=wp.scheduled_time, estimated_delay=average)
        for index, wp in enumerate(waypoints)
        if index not in arrivals
    ]
    return RouteDelaySummary(
        average_delay=average,
        status=status,
        is_delayed=status == "Delayed",
        current_delay=last_reported.delay,
        current_stop=last_reported.name,
        next_stop=upcoming[0].name if upcoming else "Route complete",
        upcoming_stops=upcoming,
    )
