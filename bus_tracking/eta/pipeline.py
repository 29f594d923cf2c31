from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel

from bus_tracking import config

from .classifier import classify_delay
from .estimator import estimate_etas
from .models import PositionSample, RouteProgress, TripEvaluation, Waypoint
from .progress import compute_progress
from .resolver import resolve_current_waypoint


class TrackingSettings(BaseModel):
    arrival_radius_km: float = config.ARRIVAL_RADIUS_KM
    default_speed_kmh: float = config.DEFAULT_SPEED_KMH
    stopped_threshold_minutes: float = config.STOPPED_THRESHOLD_MINUTES


def evaluate_trip(
    waypoints: Sequence[Waypoint],
    sample: Optional[PositionSample],
    last_index: int = 0,
    now: Optional[datetime] = None,
    settings: Optional[TrackingSettings] = None,
) -> TripEvaluation:
    """
    Run one position sample through resolver, estimator, classifier and reporter.

    Nothing is stored between calls; the caller keeps `last_index` and any
    recorded arrivals on the waypoints.
    """
    settings = settings or TrackingSettings()
    now = now or datetime.now()

    next_index = resolve_current_waypoint(sample, waypoints, last_index, settings.arrival_radius_km)
    current_index = max(next_index - 1, 0)
    speed = sample.speed_kmh if sample is not None else 0.0

    etas = estimate_etas(sample, speed, waypoints, next_index, now, settings.default_speed_kmh)
    verdict = classify_delay(waypoints, etas, sample, now, settings.stopped_threshold_minutes)
    summary = compute_progress(waypoints, sample, current_index, etas)

    progress = RouteProgress(
        current_waypoint_index=current_index,
        next_waypoint_index=next_index,
        percent_complete=summary.percent_complete,
        per_waypoint_eta=etas,
    )
    return TripEvaluation(
        progress=progress,
        verdict=verdict,
        summary=summary,
        completed=bool(waypoints) and next_index >= len(waypoints),
    )
