import logging
import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from .geo import haversine_km
from .models import PositionSample

logger = logging.getLogger(__name__)

# Epoch values above this are taken to be milliseconds (as sent by browsers)
_EPOCH_MS_CUTOFF = 1e11


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def parse_timestamp(value: Any, now: Optional[datetime] = None) -> datetime:
    """
    Normalise a device timestamp to a naive local datetime.

    Accepts datetimes, ISO-8601 strings and epoch seconds or milliseconds.
    Anything else falls back to `now`.
    """
    now = now or datetime.now()
    if value is None:
        return now
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > _EPOCH_MS_CUTOFF else value
        try:
            return datetime.fromtimestamp(seconds)
        except (OverflowError, OSError, ValueError):
            return now
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return now
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def ingest_sample(raw: Optional[Mapping[str, Any]], now: Optional[datetime] = None) -> Optional[PositionSample]:
    """
    Build a PositionSample from a raw device payload.

    Returns None when the coordinates are missing or out of range.
    """
    if not raw:
        return None

    latitude = _as_float(_first(raw, "latitude", "lat"))
    longitude = _as_float(_first(raw, "longitude", "lng", "lon"))
    if latitude is None or longitude is None:
        return None
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        logger.debug("Discarding sample with out-of-range coordinates (%s, %s)", latitude, longitude)
        return None

    speed = _as_float(_first(raw, "speed_kmh", "speed"))
    if speed is None:
        # Geolocation APIs report metres per second
        speed_mps = _as_float(raw.get("speed_mps"))
        speed = speed_mps * 3.6 if speed_mps is not None else 0.0
    if speed < 0:
        speed = 0.0

    return PositionSample(
        latitude=latitude,
        longitude=longitude,
        speed_kmh=speed,
        timestamp=parse_timestamp(raw.get("timestamp"), now),
    )


def average_speed_kmh(samples: Iterable[PositionSample]) -> float:
    """Average speed over a sample history: path length divided by elapsed time."""
    history = sorted(samples, key=lambda s: s.timestamp)
    if len(history) < 2:
        return 0.0
    distance = sum(
        haversine_km(prev.latitude, prev.longitude, cur.latitude, cur.longitude)
        for prev, cur in zip(history, history[1:])
    )
    hours = (history[-1].timestamp - history[0].timestamp).total_seconds() / 3600
    return distance / hours if hours > 0 else 0.0
