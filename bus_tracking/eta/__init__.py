from .classifier import classify_delay, classify_stop_arrival, summarize_route_delays
from .estimator import estimate_etas
from .geo import haversine_km
from .ingest import average_speed_kmh, ingest_sample
from .models import (
    DelayVerdict,
    EtaEntry,
    PositionSample,
    ProgressSummary,
    Route,
    RouteProgress,
    TripEvaluation,
    Waypoint,
)
from .pipeline import TrackingSettings, evaluate_trip
from .progress import compute_progress
from .resolver import build_waypoints, resolve_current_waypoint
