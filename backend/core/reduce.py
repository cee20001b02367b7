"""
Reduction engine behind every group and sub-series reducer.

Selects metric values from a partition of records and summarizes them
with pandas. `reduce_records_by` is the crossfilter-style "group": it
partitions by another accessor before summarizing.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from core.accessors import matches, resolve
from core.models import Reducer, Reduction, ValueAccessor


def _summarize(series: pd.Series) -> Reduction:
    s = series.dropna().astype("float64")
    if s.empty:
        return Reduction()
    return Reduction(
        count=int(s.count()),
        sum=float(s.sum()),
        min=float(s.min()),
        max=float(s.max()),
        median=float(s.median()),
        values=s.tolist(),
    )


def select_values(reducer: Reducer, records: Iterable[Mapping[str, Any]]) -> List[float]:
    """Metric values of the records that pass the reducer's filter."""
    out: List[float] = []
    for rec in records:
        if not matches(reducer.where, rec):
            continue
        value = resolve(reducer.accessor, rec)
        if value is not None:
            out.append(value)
    return out


def reduce_records(reducer: Reducer, records: Iterable[Mapping[str, Any]]) -> Reduction:
    """Summarize one partition."""
    return _summarize(pd.Series(select_values(reducer, records), dtype="float64"))


def reduce_records_by(
    reducer: Reducer,
    records: Iterable[Mapping[str, Any]],
    by: Any,
) -> Dict[Any, Reduction]:
    """Partition by accessor *by*, then summarize each partition."""
    rows = []
    for rec in records:
        if not matches(reducer.where, rec):
            continue
        value = resolve(reducer.accessor, rec)
        if value is None:
            continue
        bucket = resolve(by, rec)
        if bucket is None:
            continue
        rows.append({"bucket": bucket, "value": value})

    if not rows:
        return {}
    df = pd.DataFrame(rows)
    return {
        bucket: _summarize(values)
        for bucket, values in df.groupby("bucket", sort=False)["value"]
    }


def read_value(reduction: Reduction, accessor: ValueAccessor) -> Any:
    """The single reader behind every group's value accessors."""
    return getattr(reduction, accessor.value)
