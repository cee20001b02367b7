"""
Accumulating dimension / group tables filled by the corpus scan.

Keys are unique: re-registering a key returns the existing entry, so
repeated sightings only accumulate values and co-occurrence links.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from core.accessors import location_accessor, metric_accessor, time_accessor
from core.models import (
    POSITION,
    Accessor,
    Dimension,
    DimensionCategory,
    Group,
    Location,
    Reducer,
    TimeBucket,
    TimeRange,
)

logger = logging.getLogger("uvicorn.error")


class Registry:
    """Mutable state shared by the scanner and read by the recommenders."""

    def __init__(self) -> None:
        self.dimensions: Dict[str, Dimension] = {}
        self.groups: Dict[str, Group] = {}
        self.locations: Dict[str, Location] = {}
        self.time_range = TimeRange()
        self.record_count = 0

    # -- dimensions ---------------------------------------------------------

    def ensure_dimension(
        self,
        key: str,
        category: DimensionCategory,
        accessor: Accessor,
    ) -> Dimension:
        """First writer wins for category and accessor."""
        dim = self.dimensions.get(key)
        if dim is None:
            dim = Dimension(category=category, key=key, accessor=accessor)
            self.dimensions[key] = dim
            logger.debug("New dimension %r (%s)", key, category.value)
        return dim

    def observe(
        self,
        key: str,
        category: DimensionCategory,
        accessor: Accessor,
        value: Any,
    ) -> Dimension:
        dim = self.ensure_dimension(key, category, accessor)
        dim.add(value)
        return dim

    def _derived_dimension(
        self,
        key: str,
        category: DimensionCategory,
        accessor: Accessor,
    ) -> Optional[Dimension]:
        """
        Get-or-create a derived dimension (time bucket or position).

        Returns None when a dimension of another category already owns
        *key*; that entry is left untouched and receives no derived values.
        """
        dim = self.ensure_dimension(key, category, accessor)
        if dim.category != category:
            logger.debug("Key %r is taken by a %s dimension", key, dim.category.value)
            return None
        return dim

    def ensure_time_dimensions(self) -> List[Dimension]:
        """Bucket dimensions, created together on first use; keys owned elsewhere are skipped."""
        dims = [
            self._derived_dimension(b.value, DimensionCategory.time, time_accessor(b))
            for b in TimeBucket
        ]
        return [d for d in dims if d is not None]

    def add_time(self, ts: pd.Timestamp, buckets: Dict[str, pd.Timestamp]) -> List[str]:
        """Record one timestamp; returns the bucket dimension keys it touched."""
        touched: List[str] = []
        for dim in self.ensure_time_dimensions():
            dim.add(buckets[dim.key])
            touched.append(dim.key)
        self.time_range.extend(ts)
        return touched

    def add_location(self, key: str, position: Location) -> Optional[Dimension]:
        """Record a geo point; the position dimension is created lazily."""
        self.locations[key] = position
        dim = self._derived_dimension(POSITION, DimensionCategory.geo, location_accessor())
        if dim is not None:
            dim.add(key)
        return dim

    # -- groups -------------------------------------------------------------

    def ensure_group(self, key: str, name: str, title: str, units: Optional[str]) -> Group:
        group = self.groups.get(key)
        if group is None:
            accessor = metric_accessor(name)
            group = Group(
                key=key,
                title=title,
                units=units,
                accessor=accessor,
                reducer=Reducer(key=key, accessor=accessor),
            )
            self.groups[key] = group
            logger.debug("New group %r (%s)", key, units)
        return group

    # -- co-occurrence ------------------------------------------------------

    def cross_link(self, dim_keys: Iterable[str], group_keys: Iterable[str]) -> None:
        """Link every dimension with every group seen in the same record."""
        dim_keys = list(dim_keys)
        group_keys = list(group_keys)
        for d in dim_keys:
            self.dimensions[d].metrics.update(group_keys)
        for g in group_keys:
            self.groups[g].dimensions.update(dim_keys)
