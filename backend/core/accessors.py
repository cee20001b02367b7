"""
Accessor builders and the single dispatcher that interprets them.

Every resolver is a pure function of one record and never raises:
missing or mistyped input degrades to the accessor's default.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Union

import pandas as pd

from core.derive import location_key
from core.models import (
    NA,
    EqualsFilter,
    FieldAccessor,
    LocationKeyAccessor,
    MetricAccessor,
    TimeBucket,
    TimeBucketAccessor,
)
from core.utils import metric_number


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def field_accessor(*path: str, strings_only: bool = True) -> FieldAccessor:
    return FieldAccessor(path=tuple(path), strings_only=strings_only)


def time_accessor(bucket: Union[TimeBucket, str]) -> TimeBucketAccessor:
    return TimeBucketAccessor(bucket=TimeBucket(bucket))


def metric_accessor(name: str) -> MetricAccessor:
    return MetricAccessor(name=name)


def location_accessor() -> LocationKeyAccessor:
    return LocationKeyAccessor()


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------

def _resolve_field(accessor: FieldAccessor, record: Mapping[str, Any]) -> Any:
    value: Any = record
    for part in accessor.path:
        if not isinstance(value, Mapping) or part not in value:
            return NA
        value = value[part]
    if accessor.strings_only:
        return value if isinstance(value, str) else NA
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return NA
    return value


def _resolve_time_bucket(accessor: TimeBucketAccessor, record: Mapping[str, Any]) -> Optional[pd.Timestamp]:
    value = record.get(accessor.bucket.value)
    return value if isinstance(value, pd.Timestamp) else None


def _resolve_metric(accessor: MetricAccessor, record: Mapping[str, Any]) -> Optional[float]:
    metrics = record.get("metrics")
    if not isinstance(metrics, (list, tuple)):
        return None
    for m in metrics:
        if isinstance(m, Mapping) and m.get("name") == accessor.name:
            return metric_number(m.get("value"))
    return None


def _resolve_location_key(accessor: LocationKeyAccessor, record: Mapping[str, Any]) -> str:
    return location_key(record.get("location"))


_RESOLVERS: Dict[str, Callable[[Any, Mapping[str, Any]], Any]] = {
    "field": _resolve_field,
    "time_bucket": _resolve_time_bucket,
    "metric": _resolve_metric,
    "location_key": _resolve_location_key,
}


def resolve(accessor: Any, record: Any) -> Any:
    """Extract the value *accessor* describes from *record*."""
    if not isinstance(record, Mapping):
        return None if accessor.kind in ("time_bucket", "metric") else NA
    return _RESOLVERS[accessor.kind](accessor, record)


def matches(where: Optional[EqualsFilter], record: Any) -> bool:
    """True when *record* passes the filter (no filter passes everything)."""
    if where is None:
        return True
    return resolve(where.accessor, record) == where.value
