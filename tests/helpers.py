import math
from datetime import datetime

from bus_tracking.eta.geo import EARTH_RADIUS_KM
from bus_tracking.eta.models import EtaEntry, PositionSample, Route, Waypoint

NOW = datetime(2026, 10, 18, 8, 0)


def lat_for_km(km):
    """Latitude (on the prime meridian) that lies `km` north of the equator."""
    return math.degrees(km / EARTH_RADIUS_KM)


def waypoint(name, lat, lng, time=None, kind="stop", planned=None, actual=None):
    return Waypoint(
        name=name,
        latitude=lat,
        longitude=lng,
        kind=kind,
        scheduled_time=time,
        estimated_arrival_minutes_from_start=planned,
        actual_arrival_time=actual,
    )


def sample(lat, lng, speed=20.0, timestamp=NOW):
    return PositionSample(latitude=lat, longitude=lng, speed_kmh=speed, timestamp=timestamp)


def eta(index, arrival, name="stop"):
    return EtaEntry(
        waypoint_index=index,
        waypoint_name=name,
        distance_km=1.0,
        cumulative_distance_km=1.0,
        eta_minutes=5,
        estimated_arrival=arrival,
    )


def meridian_route():
    """Start, two stops and end, 10 km apart going north along longitude 0."""
    return Route(
        id=1,
        name="Depot - Campus",
        start_location={"name": "Depot", "latitude": 0.0, "longitude": 0.0, "time": "08:00"},
        stops=[
            {"name": "Library", "latitude": lat_for_km(10), "longitude": 0.0, "time": "08:20", "estimated_arrival_time": 20},
            {"name": "Hostel", "latitude": lat_for_km(20), "longitude": 0.0, "time": "08:40", "estimated_arrival_time": 40},
        ],
        end_location={"name": "Campus", "latitude": lat_for_km(30), "longitude": 0.0, "time": "09:00"},
    )
