from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

WaypointKind = Literal["start", "stop", "end"]
StopStatus = Literal["On Time", "Delayed", "Early"]


# Route records as stored by the admin tool
class RouteLocation(BaseModel):
    name: str = ""
    latitude: float
    longitude: float
    time: Optional[str] = None

class RouteStop(RouteLocation):
    estimated_arrival_time: Optional[float] = None  # minutes from start

class Route(BaseModel):
    id: int
    name: str
    start_location: RouteLocation
    end_location: RouteLocation
    stops: List[RouteStop] = []


class Waypoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    latitude: float
    longitude: float
    kind: WaypointKind = "stop"
    scheduled_time: Optional[str] = None
    estimated_arrival_minutes_from_start: Optional[float] = None
    actual_arrival_time: Optional[str] = None

class PositionSample(BaseModel):
    latitude: float
    longitude: float
    speed_kmh: float = 0.0
    timestamp: datetime

class EtaEntry(BaseModel):
    waypoint_index: int
    waypoint_name: str
    distance_km: float
    cumulative_distance_km: float
    eta_minutes: int
    estimated_arrival: datetime

class DelayVerdict(BaseModel):
    is_delayed: bool = False
    delay_minutes: int = 0
    reason: str = "On schedule"
    affected_waypoint: Optional[str] = None
    next_stop: str = "Unknown"

class StopDisplay(BaseModel):
    index: int
    name: str
    kind: WaypointKind
    status: Literal["passed", "current", "upcoming"]
    scheduled_time: Optional[str] = None
    actual_arrival_time: Optional[str] = None
    eta_minutes: Optional[int] = None
    eta_display: Optional[str] = None
    estimated_arrival: Optional[str] = None
    distance: Optional[str] = None

class ProgressSummary(BaseModel):
    percent_complete: int = 0
    current_waypoint_name: Optional[str] = None
    next_waypoint_name: Optional[str] = None
    total_distance_km: float = 0.0
    traveled_distance_km: float = 0.0
    per_stop_display: List[StopDisplay] = []

class RouteProgress(BaseModel):
    current_waypoint_index: int = 0
    next_waypoint_index: int = 0
    percent_complete: int = 0
    per_waypoint_eta: List[EtaEntry] = []

class TripEvaluation(BaseModel):
    progress: RouteProgress
    verdict: DelayVerdict
    summary: ProgressSummary
    completed: bool = False

class StopArrival(BaseModel):
    name: str
    actual_minutes: float
    delay: float
    status: StopStatus

class UpcomingStop(BaseModel):
    name: str
    scheduled_time: Optional[str] = None
    estimated_delay: float = 0.0

class RouteDelaySummary(BaseModel):
    average_delay: float = 0.0
    status: StopStatus = "On Time"
    is_delayed: bool = False
    current_delay: float = 0.0
    current_stop: str = "Not started"
    next_stop: str = "Route complete"
    upcoming_stops: List[UpcomingStop] = Field(default_factory=list)
