"""
Field classification skill.

Maps a record's top-level field names to the semantic kind that decides
how the scanner extracts dimensions and metrics from it. Unknown fields
classify to None and are ignored.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Tuple

from slugify import slugify

from core.models import DimensionCategory
from core.utils import titleize

logger = logging.getLogger("uvicorn.error")


class FieldKind(str, Enum):
    location = "location"
    categorical = "categorical"
    time = "time"
    metrics = "metrics"
    data_source = "data_source"


_FIELD_KINDS = {
    "location": FieldKind.location,
    "system": FieldKind.categorical,
    "activity": FieldKind.categorical,
    "organization": FieldKind.categorical,
    "time": FieldKind.time,
    "metrics": FieldKind.metrics,
    "rep": FieldKind.data_source,
    "baseline": FieldKind.data_source,
    "produced_by": FieldKind.data_source,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify_field(name: str) -> Optional[FieldKind]:
    """Semantic kind of a top-level field, or None when unrecognized."""
    return _FIELD_KINDS.get(name)


def field_category(name: str) -> DimensionCategory:
    """Dimension category for dimensions discovered under field *name*."""
    if _FIELD_KINDS.get(name) == FieldKind.data_source:
        return DimensionCategory.data_source
    return DimensionCategory(name)


def categorical_items(value: Any) -> Iterator[Tuple[str, str]]:
    """(sub-key, value) pairs of a mapping whose values are strings."""
    if not isinstance(value, Mapping):
        return
    for sub_key, sub_value in value.items():
        if isinstance(sub_key, str) and isinstance(sub_value, str):
            yield sub_key, sub_value
        else:
            logger.debug("Skipping non-string sub-value %r=%r", sub_key, sub_value)


def is_scalar(value: Any) -> bool:
    """Data-source tags must be plain scalars."""
    return isinstance(value, (str, int, float, bool))


def metric_entries(value: Any) -> Iterator[Tuple[str, str, str, Optional[str]]]:
    """
    Normalize a `metrics` list.

    Yields (group key, raw name, display title, units) for every entry
    that carries a usable name.
    """
    if not isinstance(value, (list, tuple)):
        return
    for entry in value:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("name")
        if not isinstance(name, str):
            continue
        key = slugify(name)
        if not key:
            logger.debug("Metric name %r has no usable characters", name)
            continue
        units = entry.get("units")
        yield key, name, titleize(name), units if isinstance(units, str) else None
