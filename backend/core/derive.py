"""
Time-bucket and geo-location derivation.

Buckets are truncated instants (pandas Timestamps, naive UTC), never labels.
Weeks start on Monday (ISO).
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from core.models import NA, Location, TimeBucket
from core.utils import is_number

logger = logging.getLogger("uvicorn.error")

LAT_NAMES = ("lat", "latitude", "lt", "ltd")
LON_NAMES = ("lon", "long", "longitude", "lng", "ln")


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a record's `time` value into a naive UTC Timestamp.

    Numbers are epoch milliseconds; strings and datetimes go through
    pandas. Anything unparseable returns None.
    """
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            ts = pd.to_datetime(value, unit="ms", utc=True, errors="coerce")
        elif isinstance(value, (str, datetime, date)):
            ts = pd.to_datetime(value, utc=True, errors="coerce")
        else:
            return None
    except (ValueError, OverflowError) as e:
        logger.debug("Unparseable timestamp %r: %s", value, e)
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.tz_convert(None)


def truncate(ts: pd.Timestamp, bucket: TimeBucket) -> pd.Timestamp:
    """Truncate *ts* to the start of its *bucket*."""
    day = ts.normalize()
    if bucket == TimeBucket.hour:
        return ts.floor("h")
    if bucket == TimeBucket.day:
        return day
    if bucket == TimeBucket.week:
        return day - pd.Timedelta(days=day.weekday())
    if bucket == TimeBucket.month:
        return day.replace(day=1)
    return day.replace(month=1, day=1)


def time_buckets(ts: pd.Timestamp) -> Dict[str, pd.Timestamp]:
    """All five calendar buckets for *ts*, keyed by bucket name."""
    return {b.value: truncate(ts, b) for b in TimeBucket}


# ---------------------------------------------------------------------------
# Time granularity for charts
# ---------------------------------------------------------------------------

_HOUR = pd.Timedelta(hours=1)
_GRANULARITY_STEPS: List[Tuple[pd.Timedelta, Optional[TimeBucket]]] = [
    (12 * _HOUR, None),
    (pd.Timedelta(days=7), TimeBucket.hour),
    (pd.Timedelta(weeks=10), TimeBucket.day),
    (pd.Timedelta(days=365), TimeBucket.week),
    (pd.Timedelta(days=3650), TimeBucket.month),
]


def native_granularity(span: Optional[pd.Timedelta]) -> Optional[TimeBucket]:
    """Pick the bucket that gives a readable number of points over *span*."""
    if span is None:
        return None
    for limit, bucket in _GRANULARITY_STEPS:
        if span < limit:
            return bucket
    return TimeBucket.year


# ---------------------------------------------------------------------------
# Geo
# ---------------------------------------------------------------------------

def _find_coordinate(location: Mapping[str, Any], names: Tuple[str, ...]) -> Optional[float]:
    for sub_key, value in location.items():
        if isinstance(sub_key, str) and sub_key.lower() in names and is_number(value):
            return float(value)
    return None


def extract_position(location: Any) -> Optional[Location]:
    """Lat/lon from heterogeneously named numeric sub-keys, or None."""
    if not isinstance(location, Mapping):
        return None
    lat = _find_coordinate(location, LAT_NAMES)
    lon = _find_coordinate(location, LON_NAMES)
    if lat is None or lon is None:
        return None
    return Location(lat=lat, lon=lon)


def location_key(location: Any) -> str:
    """
    Canonical key for a `location` mapping.

    String-valued sub-keys sorted by name and joined as
    `subkey-value-subkey-value`. A location with coordinates but no
    string sub-keys falls back to `<lat>-<lon>`; anything else is NA.
    """
    if not isinstance(location, Mapping):
        return NA
    pairs = sorted(
        (k, v) for k, v in location.items()
        if isinstance(k, str) and isinstance(v, str)
    )
    if pairs:
        return "-".join(f"{k}-{v}" for k, v in pairs)
    position = extract_position(location)
    if position is not None:
        return f"{position.lat:g}-{position.lon:g}"
    return NA
