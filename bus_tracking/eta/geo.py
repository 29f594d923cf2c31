"""
Geodesic and clock helpers shared by the ETA pipeline.
"""
import math
import re
from typing import Optional

EARTH_RADIUS_KM = 6371.0

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp][Mm])?\s*$")


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; arrival minutes round .5 upwards.
    return int(math.floor(value + 0.5))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two lat/lon points."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from the first point to the second, in [0, 360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)
    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def clock_to_minutes(text: Optional[str]) -> Optional[int]:
    """
    Convert "08:30", "8:30 AM" or "08:30:00" to minutes since midnight.

    Returns None for empty or unparseable input.
    """
    if not text:
        return None
    match = _CLOCK_RE.match(str(text))
    if not match:
        return None
    hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
    if minutes > 59:
        return None
    if meridiem:
        if not 1 <= hours <= 12:
            return None
        hours = hours % 12
        if meridiem.lower() == "pm":
            hours += 12
    elif hours > 23:
        return None
    return hours * 60 + minutes


def minutes_to_clock(total_minutes: int) -> str:
    total_minutes = int(total_minutes) % (24 * 60)
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def format_duration(minutes: int) -> str:
    hrs, mins = divmod(int(minutes), 60)
    return f"{hrs}h {mins}m" if hrs > 0 else f"{mins}m"


def format_distance(distance_km: float) -> str:
    if distance_km < 1:
        return f"{round_half_up(distance_km * 1000)} meters"
    return f"{distance_km:.1f} km"
