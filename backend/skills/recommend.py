"""
Deterministic filter and chart recommendation.

recommend_filters() proposes one filter widget per (dimension, metric) pair.
recommend_charts() runs the time-series pass, then the cross-tabulation pass.
Both read a fully populated Registry; neither mutates it.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from slugify import slugify

from core.config import Settings, get_settings
from core.derive import native_granularity
from core.models import (
    BarChart,
    CandleChart,
    Dimension,
    DimensionCategory,
    EqualsFilter,
    FilterSpec,
    FilterType,
    Group,
    LineChart,
    Reducer,
    SandChart,
    Series,
    TimeBucket,
)
from core.registry import Registry
from core.utils import join_titles

logger = logging.getLogger("uvicorn.error")

_NON_CATEGORICAL = (DimensionCategory.time, DimensionCategory.geo)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sorted_dims(registry: Registry) -> List[Dimension]:
    return [registry.dimensions[k] for k in sorted(registry.dimensions)]


def _categoricals(registry: Registry) -> List[Dimension]:
    return [d for d in _sorted_dims(registry) if d.category not in _NON_CATEGORICAL]


def _title(group: Group, *dims: Dimension) -> str:
    return " by ".join([group.title] + [d.title for d in dims])


def _split_series(group: Group, split: Dimension, values: List[str]) -> List[Series]:
    """One reducer per distinct value of *split*, filtering the metric by it."""
    return [
        Series(
            key=slugify(f"{value}-{group.key}"),
            label=value,
            reducer=Reducer(
                key=slugify(f"{value}-{group.key}"),
                accessor=group.accessor,
                where=EqualsFilter(accessor=split.accessor, value=value),
            ),
        )
        for value in values
    ]


def filter_type(dim: Dimension, settings: Optional[Settings] = None) -> FilterType:
    settings = settings or get_settings()
    if dim.category == DimensionCategory.geo:
        return FilterType.geo
    if dim.cardinality > settings.row_filter_threshold:
        return FilterType.row
    return FilterType.pie


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def recommend_filters(registry: Registry, settings: Optional[Settings] = None) -> List[FilterSpec]:
    """Filter widgets for every discriminating non-time dimension."""
    settings = settings or get_settings()
    filters: List[FilterSpec] = []

    for dim in _sorted_dims(registry):
        if dim.category == DimensionCategory.time or dim.cardinality <= 1:
            continue
        widget = filter_type(dim, settings)
        for metric_key in sorted(dim.metrics):
            group = registry.groups[metric_key]
            filters.append(FilterSpec(
                type=widget,
                dimension=dim.key,
                groups=[metric_key],
                title=_title(group, dim),
            ))

    logger.info("Recommended %d filters", len(filters))
    return filters


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------

def _time_series_charts(registry: Registry, settings: Settings) -> List:
    bucket: Optional[TimeBucket] = native_granularity(registry.time_range.span())
    tdim = registry.dimensions.get(bucket.value) if bucket is not None else None
    if tdim is None or tdim.category != DimensionCategory.time:
        return []

    metric_keys = sorted(tdim.metrics)
    charts: List = []

    # Distribution over time per metric, plus one averaged line per units-group
    seen_units: set = set()
    for key in metric_keys:
        group = registry.groups[key]
        charts.append(CandleChart(
            dimension=tdim.key,
            groups=[key],
            title=_title(group, tdim),
        ))

        if not group.units or group.units in seen_units:
            continue
        seen_units.add(group.units)
        same_units: List[Group] = [
            registry.groups[k] for k in metric_keys
            if registry.groups[k].units == group.units
        ]
        if len(same_units) >= 2:
            charts.append(LineChart(
                dimension=tdim.key,
                groups=[g.key for g in same_units],
                units=group.units,
                title=f"{join_titles([g.title for g in same_units])} by {tdim.title}",
            ))

    # Stacked area over time, split by each co-occurring category
    for key in metric_keys:
        group = registry.groups[key]
        for split in _categoricals(registry):
            if key not in split.metrics:
                continue
            values = split.string_values()
            if len(values) < settings.min_split_values:
                continue
            charts.append(SandChart(
                dimension=tdim.key,
                split=split.key,
                groups=[key],
                series=_split_series(group, split, values),
                title=_title(group, tdim, split),
            ))

    return charts


def _cross_tab_charts(registry: Registry, settings: Settings) -> List:
    charts: List = []
    categoricals = _categoricals(registry)

    for primary in categoricals:
        n = len(primary.string_values())
        if n < settings.min_split_values or n > settings.crosstab_max_values:
            continue
        for key in sorted(primary.metrics):
            group = registry.groups[key]
            for split in categoricals:
                if split.key == primary.key or split.category == primary.category:
                    continue
                if key not in split.metrics:
                    continue
                values = split.string_values()
                if len(values) < settings.min_split_values:
                    continue
                charts.append(BarChart(
                    dimension=primary.key,
                    split=split.key,
                    groups=[key],
                    series=_split_series(group, split, values),
                    title=_title(group, primary, split),
                ))

    return charts


def recommend_charts(registry: Registry, settings: Optional[Settings] = None) -> List:
    """Time-series charts first, then cross-tabulations."""
    settings = settings or get_settings()
    charts = _time_series_charts(registry, settings) + _cross_tab_charts(registry, settings)

    counts: Dict[str, int] = {}
    for c in charts:
        counts[c.type] = counts.get(c.type, 0) + 1
    logger.info("Recommended %d charts: %s", len(charts), counts)
    return charts
