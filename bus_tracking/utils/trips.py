"""
In-memory state for trips that are currently running.

Each bus on the road has one TripState. Position samples go through the
stateless ETA pipeline; the TripState only remembers what the pipeline needs
between calls (last waypoint index, recorded arrivals, recent samples).
"""
import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from bus_tracking import config
from bus_tracking.eta.classifier import classify_stop_arrival, summarize_route_delays
from bus_tracking.eta.geo import bearing_deg, minutes_to_clock
from bus_tracking.eta.ingest import average_speed_kmh
from bus_tracking.eta.models import PositionSample, Route, StopArrival, TripEvaluation, Waypoint
from bus_tracking.eta.pipeline import TrackingSettings, evaluate_trip
from bus_tracking.eta.resolver import build_waypoints, resolve_current_waypoint

logger = logging.getLogger(__name__)


class TripState:
    def __init__(
        self,
        bus: Dict[str, Any],
        route: Route,
        driver_id: Optional[int] = None,
        return_trip: bool = False,
        started_at: Optional[datetime] = None,
        settings: Optional[TrackingSettings] = None,
    ):
        self.bus_id: int = bus["id"]
        self.bus_number: str = bus.get("bus_number", f"GIT-{str(bus['id']).zfill(3)}")
        self.driver_id = driver_id
        self.route = route
        self.return_trip = return_trip
        self.started_at = started_at or datetime.now()
        self.settings = settings or TrackingSettings()

        self.waypoints: List[Waypoint] = build_waypoints(route, return_trip)
        self.last_index = 0
        self.arrivals: Dict[int, StopArrival] = {}
        self.history: Deque[PositionSample] = deque(maxlen=config.SPEED_HISTORY_SIZE)
        self.last_sample: Optional[PositionSample] = None
        self.evaluation: Optional[TripEvaluation] = None
        self.notified = False
        self.manual_delay: Optional[Dict[str, Any]] = None

    @property
    def completed(self) -> bool:
        return bool(self.waypoints) and self.last_index >= len(self.waypoints)

    def _record_arrival(self, index: int, at: datetime):
        waypoint = self.waypoints[index]
        minutes_from_start = (at - self.started_at).total_seconds() / 60
        self.waypoints[index] = waypoint.model_copy(
            update={"actual_arrival_time": minutes_to_clock(at.hour * 60 + at.minute)}
        )
        arrival = classify_stop_arrival(waypoint, minutes_from_start)
        self.arrivals[index] = arrival
        logger.info("Bus %s reached %s (%s, %+.1f min)", self.bus_id, waypoint.name, arrival.status, arrival.delay)

    def apply_sample(self, sample: PositionSample, now: Optional[datetime] = None) -> TripEvaluation:
        """Advance the trip with a new position sample and return the fresh evaluation."""
        now = now or datetime.now()
        next_index = resolve_current_waypoint(sample, self.waypoints, self.last_index, self.settings.arrival_radius_km)
        for index in range(self.last_index, next_index):
            self._record_arrival(index, sample.timestamp)
        self.last_index = next_index

        self.last_sample = sample
        self.history.append(sample)
        if self.completed:
            logger.info("Bus %s completed route %s", self.bus_id, self.route.name)
        return self.evaluate(now)

    def evaluate(self, now: Optional[datetime] = None) -> TripEvaluation:
        """Re-run the pipeline on the last known sample, e.g. to notice a bus that stopped reporting."""
        self.evaluation = evaluate_trip(self.waypoints, self.last_sample, self.last_index, now, self.settings)
        return self.evaluation

    def delay_alert(self, evaluation: TripEvaluation) -> Optional[Dict[str, Any]]:
        """
        Return an alert the first time a delay crosses the notify threshold.

        The flag resets once the trip is back on schedule.
        """
        verdict = evaluation.verdict
        if not verdict.is_delayed:
            if self.notified:
                logger.info("Bus %s is back on schedule", self.bus_id)
            self.notified = False
            return None
        if self.notified or verdict.delay_minutes <= config.DELAY_NOTIFY_MINUTES:
            return None
        self.notified = True
        logger.warning("Bus %s delayed %s min: %s", self.bus_id, verdict.delay_minutes, verdict.reason)
        return {
            "type": "delay",
            "bus_id": self.bus_id,
            "bus_number": self.bus_number,
            "delay_minutes": verdict.delay_minutes,
            "reason": verdict.reason,
            "next_stop": verdict.next_stop,
        }

    def heading(self) -> Optional[float]:
        """Compass bearing between the last two samples, or None until the bus has moved."""
        if len(self.history) < 2:
            return None
        prev, last = self.history[-2], self.history[-1]
        if (prev.latitude, prev.longitude) == (last.latitude, last.longitude):
            return None
        return round(bearing_deg(prev.latitude, prev.longitude, last.latitude, last.longitude), 1)

    @property
    def is_delayed(self) -> bool:
        if self.manual_delay is not None:
            return True
        return bool(self.evaluation and self.evaluation.verdict.is_delayed)

    def snapshot(self) -> Dict[str, Any]:
        evaluation = self.evaluation or self.evaluate()
        sample = self.last_sample
        return {
            "bus_id": self.bus_id,
            "bus_number": self.bus_number,
            "route_id": self.route.id,
            "route_name": self.route.name,
            "driver_id": self.driver_id,
            "return_trip": self.return_trip,
            "lat": sample.latitude if sample else None,
            "lng": sample.longitude if sample else None,
            "speed": sample.speed_kmh if sample else 0,
            "heading": self.heading(),
            "average_speed": round(average_speed_kmh(self.history), 2),
            "last_updated": sample.timestamp.isoformat() if sample else None,
            "completed": self.completed,
            "progress": evaluation.progress.model_dump(mode="json"),
            "delay": evaluation.verdict.model_dump(mode="json"),
            "summary": evaluation.summary.model_dump(mode="json"),
            "route_delays": summarize_route_delays(self.arrivals, self.waypoints).model_dump(mode="json"),
            "manual_delay": self.manual_delay,
        }


class TripRegistry:
    def __init__(self, settings: Optional[TrackingSettings] = None):
        self.settings = settings or TrackingSettings()
        self.trips: Dict[int, TripState] = {}
        self.alerts: List[Dict[str, Any]] = []

    def start(self, bus: Dict[str, Any], route: Route, driver_id: Optional[int] = None,
              return_trip: bool = False, now: Optional[datetime] = None) -> TripState:
        trip = TripState(bus, route, driver_id, return_trip, now, self.settings)
        self.trips[trip.bus_id] = trip
        logger.info("Trip started for bus %s on route %s (return=%s)", trip.bus_id, route.name, return_trip)
        return trip

    def get(self, bus_id: int) -> Optional[TripState]:
        return self.trips.get(bus_id)

    def for_driver(self, driver_id: int) -> Optional[TripState]:
        return next((t for t in self.trips.values() if t.driver_id == driver_id), None)

    def end(self, bus_id: int) -> Optional[TripState]:
        trip = self.trips.pop(bus_id, None)
        if trip is not None:
            logger.info("Trip ended for bus %s", bus_id)
        return trip

    def all(self) -> List[TripState]:
        return list(self.trips.values())

    def refresh(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Re-evaluate every trip and queue alerts for newly delayed buses."""
        for trip in self.all():
            alert = trip.delay_alert(trip.evaluate(now))
            if alert:
                self.alerts.append(alert)
        return [trip.snapshot() for trip in self.all()]

    def drain_alerts(self) -> List[Dict[str, Any]]:
        alerts, self.alerts = self.alerts, []
        return alerts
