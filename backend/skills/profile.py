"""
Corpus scanning skill: builds a Registry from a list of records.

One forward pass. Each record is processed in two phases: classify every
field and collect the dimensions and groups it touches, then cross-link
them. Field order inside a record therefore never matters.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence

from core.accessors import field_accessor
from core.derive import extract_position, location_key, parse_timestamp, time_buckets
from core.models import DimensionCategory
from core.registry import Registry
from skills.classify import (
    FieldKind,
    categorical_items,
    classify_field,
    field_category,
    is_scalar,
    metric_entries,
)

logger = logging.getLogger("uvicorn.error")


class InvalidInputError(ValueError):
    """Raised when the input is not a sequence of mapping records."""


def validate_records(records: Any) -> Sequence[Mapping[str, Any]]:
    """Reject input that violates the record contract before scanning."""
    if not isinstance(records, (list, tuple)):
        raise InvalidInputError(
            f"Expected a list of records, got {type(records).__name__}."
        )
    for i, rec in enumerate(records):
        if not isinstance(rec, Mapping):
            raise InvalidInputError(
                f"Record {i} is {type(rec).__name__}, expected a mapping."
            )
    return records


# ---------------------------------------------------------------------------
# Per-field handlers: each returns (dimension keys, group keys) touched
# ---------------------------------------------------------------------------

def _scan_location(registry: Registry, field: str, value: Any, rec: Dict[str, Any]):
    dims: List[str] = []
    category = field_category(field)
    for sub_key, sub_value in categorical_items(value):
        registry.observe(sub_key, category, field_accessor(field, sub_key), sub_value)
        dims.append(sub_key)

    position = extract_position(value)
    if position is not None:
        dim = registry.add_location(location_key(value), position)
        if dim is not None:
            dims.append(dim.key)
    return dims, []


def _scan_categorical(registry: Registry, field: str, value: Any, rec: Dict[str, Any]):
    dims: List[str] = []
    category = field_category(field)
    for sub_key, sub_value in categorical_items(value):
        registry.observe(sub_key, category, field_accessor(field, sub_key), sub_value)
        dims.append(sub_key)
    return dims, []


def _scan_time(registry: Registry, field: str, value: Any, rec: Dict[str, Any]):
    ts = parse_timestamp(value)
    if ts is None:
        logger.debug("Skipping unparseable time %r", value)
        return [], []

    buckets = time_buckets(ts)
    if isinstance(rec, MutableMapping):
        rec["dt"] = ts
        rec.update(buckets)

    return registry.add_time(ts, buckets), []


def _scan_metrics(registry: Registry, field: str, value: Any, rec: Dict[str, Any]):
    groups: List[str] = []
    for key, name, title, units in metric_entries(value):
        registry.ensure_group(key, name, title, units)
        groups.append(key)
    return [], groups


def _scan_data_source(registry: Registry, field: str, value: Any, rec: Dict[str, Any]):
    if not is_scalar(value):
        logger.debug("Skipping non-scalar data source %r=%r", field, value)
        return [], []
    registry.observe(
        field,
        DimensionCategory.data_source,
        field_accessor(field, strings_only=False),
        value,
    )
    return [field], []


_HANDLERS = {
    FieldKind.location: _scan_location,
    FieldKind.categorical: _scan_categorical,
    FieldKind.time: _scan_time,
    FieldKind.metrics: _scan_metrics,
    FieldKind.data_source: _scan_data_source,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def scan_record(registry: Registry, rec: Dict[str, Any]) -> None:
    """Classify-and-collect, then cross-link one record."""
    rec_dims: Dict[str, None] = {}
    rec_metrics: Dict[str, None] = {}

    # snapshot: the time handler adds derived keys to the record
    for field in list(rec.keys()):
        kind = classify_field(field)
        if kind is None:
            continue
        dims, groups = _HANDLERS[kind](registry, field, rec[field], rec)
        rec_dims.update(dict.fromkeys(dims))
        rec_metrics.update(dict.fromkeys(groups))

    registry.cross_link(rec_dims, rec_metrics)
    registry.record_count += 1


def scan_records(records: Any, registry: Optional[Registry] = None) -> Registry:
    """
    Scan the whole corpus into a registry.

    Records are extended in place with `dt` and the five bucket values.
    Raises InvalidInputError if *records* is not a list of mappings.
    """
    records = validate_records(records)
    registry = registry if registry is not None else Registry()

    for rec in records:
        scan_record(registry, rec)

    logger.info(
        "Scanned %d records: %d dimensions, %d groups, %d locations",
        registry.record_count,
        len(registry.dimensions),
        len(registry.groups),
        len(registry.locations),
    )
    return registry
