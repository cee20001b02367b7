"""
Core Pydantic models for the schema deduction engine.

All domain types live here so every module shares the same vocabulary.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Tuple, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from core.utils import titleize


NA = "NA"
POSITION = "position"


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class DimensionCategory(str, Enum):
    location = "location"
    system = "system"
    activity = "activity"
    organization = "organization"
    time = "time"
    geo = "geo"
    data_source = "data_source"


class TimeBucket(str, Enum):
    year = "year"
    month = "month"
    week = "week"
    day = "day"
    hour = "hour"


# ---------------------------------------------------------------------------
# Accessors (value objects interpreted by core.accessors.resolve)
# ---------------------------------------------------------------------------

class FieldAccessor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["field"] = "field"
    path: Tuple[str, ...]
    strings_only: bool = True        # False for scalar data-source tags


class TimeBucketAccessor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["time_bucket"] = "time_bucket"
    bucket: TimeBucket


class MetricAccessor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["metric"] = "metric"
    name: str


class LocationKeyAccessor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["location_key"] = "location_key"


Accessor = Annotated[
    Union[FieldAccessor, TimeBucketAccessor, MetricAccessor, LocationKeyAccessor],
    Field(discriminator="kind"),
]


class EqualsFilter(BaseModel):
    """Keep only records whose *accessor* resolves to *value*."""
    model_config = ConfigDict(frozen=True)

    accessor: Accessor
    value: Any


# ---------------------------------------------------------------------------
# Reduction
# ---------------------------------------------------------------------------

class ValueAccessor(str, Enum):
    sum = "sum"
    average = "average"
    count = "count"
    min = "min"
    max = "max"
    median = "median"
    values = "values"


class Reduction(BaseModel):
    count: int = 0
    sum: float = 0.0
    min: Optional[float] = None
    max: Optional[float] = None
    median: Optional[float] = None
    values: List[float] = Field(default_factory=list)

    @property
    def average(self) -> Optional[float]:
        return self.sum / self.count if self.count else None


class Reducer(BaseModel):
    """
    Handle for one metric, optionally restricted by a filter.

    The heavy lifting lives in core.reduce; this object only describes
    what to select so it can be serialized alongside recommendations.
    """
    key: str
    accessor: MetricAccessor
    where: Optional[EqualsFilter] = None

    def reduce(self, records) -> Reduction:
        from core.reduce import reduce_records

        return reduce_records(self, records)

    def reduce_by(self, records, by: Any) -> Dict[Any, Reduction]:
        from core.reduce import reduce_records_by

        return reduce_records_by(self, records, by)


# ---------------------------------------------------------------------------
# Dimensions, groups, locations, time extent
# ---------------------------------------------------------------------------

class Dimension(BaseModel):
    category: DimensionCategory
    key: str
    accessor: Accessor
    values: Set[Any] = Field(default_factory=set)
    metrics: Set[str] = Field(default_factory=set)   # co-occurring group keys
    # (type name, value): keeps True, 1 and 1.0 apart
    typed_values: Set[Tuple[str, Any]] = Field(default_factory=set, exclude=True)

    @property
    def title(self) -> str:
        return titleize(self.key)

    @property
    def cardinality(self) -> int:
        return len(self.typed_values)

    def add(self, value: Any) -> None:
        self.values.add(value)
        self.typed_values.add((type(value).__name__, value))

    def sorted_values(self) -> List[Any]:
        """Distinct values grouped by type name, then ordered within each type."""
        return [v for _, v in sorted(self.typed_values)]

    def string_values(self) -> List[str]:
        return sorted(v for v in self.values if isinstance(v, str))


class Group(BaseModel):
    key: str
    title: str
    units: Optional[str] = None
    accessor: MetricAccessor
    reducer: Reducer
    dimensions: Set[str] = Field(default_factory=set)  # co-occurring dimension keys
    value_accessors: List[ValueAccessor] = Field(default_factory=lambda: list(ValueAccessor))

    def value(self, reduction: Reduction, accessor: Union[ValueAccessor, str]) -> Any:
        from core.reduce import read_value

        return read_value(reduction, ValueAccessor(accessor))


class Location(BaseModel):
    lat: float
    lon: float


class TimeRange(BaseModel):
    """Running [min, max] over record timestamps, in epoch milliseconds."""
    start: float = math.inf
    end: float = 0.0

    @property
    def is_empty(self) -> bool:
        return math.isinf(self.start)

    def extend(self, ts: pd.Timestamp) -> None:
        ms = ts.value / 1_000_000
        if self.is_empty:
            self.start = self.end = ms
            return
        self.start = min(self.start, ms)
        self.end = max(self.end, ms)

    def span(self) -> Optional[pd.Timedelta]:
        if self.is_empty:
            return None
        return pd.Timedelta(milliseconds=self.end - self.start)

    def bounds(self) -> Optional[Tuple[pd.Timestamp, pd.Timestamp]]:
        if self.is_empty:
            return None
        return pd.Timestamp(self.start, unit="ms"), pd.Timestamp(self.end, unit="ms")

    def as_list(self) -> List[float]:
        return [self.start, self.end]


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

class FilterType(str, Enum):
    geo = "geo"
    row = "row"
    pie = "pie"


class ChartKind(str, Enum):
    candle = "candle"
    line = "line"
    sand = "sand"
    bar = "bar"


class Recommendation(BaseModel):
    """Envelope shared by every filter and chart."""
    dimension: str
    groups: List[str]
    default_group_accessor: ValueAccessor = ValueAccessor.sum
    title: str = ""


class FilterSpec(Recommendation):
    type: FilterType


class Series(BaseModel):
    key: str                 # slug of "<value>-<metric key>"
    label: str               # the split value
    reducer: Reducer


class CandleChart(Recommendation):
    type: Literal["candle"] = "candle"
    default_group_accessor: ValueAccessor = ValueAccessor.values


class LineChart(Recommendation):
    type: Literal["line"] = "line"
    default_group_accessor: ValueAccessor = ValueAccessor.average
    units: str


class SandChart(Recommendation):
    type: Literal["sand"] = "sand"
    split: str
    series: List[Series] = Field(default_factory=list)


class BarChart(Recommendation):
    type: Literal["bar"] = "bar"
    split: str
    series: List[Series] = Field(default_factory=list)


ChartSpec = Annotated[
    Union[CandleChart, LineChart, SandChart, BarChart],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Derived schema
# ---------------------------------------------------------------------------

class DerivedSchema(BaseModel):
    dimensions: Dict[str, Dimension] = Field(default_factory=dict)
    groups: Dict[str, Group] = Field(default_factory=dict)
    locations: Dict[str, Location] = Field(default_factory=dict)
    time_range: TimeRange = Field(default_factory=TimeRange)
    filters: List[FilterSpec] = Field(default_factory=list)
    charts: List[ChartSpec] = Field(default_factory=list)
    records: List[Dict[str, Any]] = Field(default_factory=list, exclude=True)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class SchemaRequest(BaseModel):
    records: List[Any]
    include_totals: bool = True
