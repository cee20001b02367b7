"""
Schema summary skill: renders a DerivedSchema as JSON-safe data.
"""

from __future__ import annotations

from typing import Any, Dict, List

from core.models import DerivedSchema, DimensionCategory
from core.utils import json_safe


def summarize_findings(schema: DerivedSchema) -> Dict[str, Any]:
    """Return headline + findings strings for the derived schema."""
    findings: List[str] = []

    findings.append(
        f"{len(schema.records):,} records, {len(schema.dimensions)} dimensions, "
        f"{len(schema.groups)} metrics."
    )

    category_counts: Dict[str, int] = {}
    for d in schema.dimensions.values():
        category_counts[d.category.value] = category_counts.get(d.category.value, 0) + 1
    if category_counts:
        bits = ", ".join(f"{k}: {v}" for k, v in sorted(category_counts.items()))
        findings.append(f"Dimension categories: {bits}.")

    bounds = schema.time_range.bounds()
    if bounds:
        findings.append(f"Time extent {bounds[0].isoformat()} to {bounds[1].isoformat()}.")
    else:
        findings.append("No time data.")

    if schema.locations:
        findings.append(f"{len(schema.locations)} distinct locations.")

    chart_counts: Dict[str, int] = {}
    for c in schema.charts:
        chart_counts[c.type] = chart_counts.get(c.type, 0) + 1
    if chart_counts:
        bits = ", ".join(f"{k}: {v}" for k, v in sorted(chart_counts.items()))
        findings.append(f"Recommended charts: {bits}.")

    return {"headline": "Derived schema", "findings": findings}


def summarize_schema(schema: DerivedSchema, *, include_totals: bool = True) -> Dict[str, Any]:
    """JSON-safe view of the schema for API responses."""
    dimensions = {
        key: {
            "category": d.category.value,
            "key": d.key,
            "values": json_safe(d.sorted_values())
            if d.category != DimensionCategory.time else d.cardinality,
            "metrics": sorted(d.metrics),
            "accessor": d.accessor.model_dump(mode="json"),
        }
        for key, d in schema.dimensions.items()
    }

    groups: Dict[str, Any] = {}
    for key, g in schema.groups.items():
        entry: Dict[str, Any] = {
            "key": g.key,
            "title": g.title,
            "units": g.units,
            "dimensions": sorted(g.dimensions),
            "value_accessors": [a.value for a in g.value_accessors],
        }
        if include_totals:
            reduction = g.reducer.reduce(schema.records)
            entry["totals"] = json_safe({
                a.value: g.value(reduction, a) for a in g.value_accessors if a.value != "values"
            })
        groups[key] = entry

    time_range = schema.time_range
    return {
        **summarize_findings(schema),
        "dimensions": dimensions,
        "groups": groups,
        "locations": {k: v.model_dump() for k, v in schema.locations.items()},
        "time_range": json_safe(time_range.as_list()) if not time_range.is_empty else None,
        "filters": [f.model_dump(mode="json") for f in schema.filters],
        "charts": [c.model_dump(mode="json") for c in schema.charts],
    }
