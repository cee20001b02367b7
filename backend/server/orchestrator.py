"""
Deduction orchestrator: runs the deterministic pipeline.

Three strictly sequential phases over one Registry:
  1. scan the corpus
  2. recommend filters
  3. recommend charts
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.config import Settings, get_settings
from core.models import DerivedSchema
from skills.profile import scan_records
from skills.recommend import recommend_charts, recommend_filters

logger = logging.getLogger("uvicorn.error")


def run_deduce(records: Any, settings: Optional[Settings] = None) -> DerivedSchema:
    """
    Derive dimensions, groups, locations, time extent and recommendations.

    Records are extended in place with their time buckets. Raises
    InvalidInputError before scanning if *records* is not a list of
    mappings; malformed fields inside records are skipped.
    """
    settings = settings or get_settings()

    registry = scan_records(records)
    filters = recommend_filters(registry, settings)
    charts = recommend_charts(registry, settings)

    schema = DerivedSchema(
        dimensions=registry.dimensions,
        groups=registry.groups,
        locations=registry.locations,
        time_range=registry.time_range,
        filters=filters,
        charts=charts,
        records=list(records),
    )
    logger.info(
        "Derived schema: %d dimensions, %d groups, %d filters, %d charts",
        len(schema.dimensions),
        len(schema.groups),
        len(schema.filters),
        len(schema.charts),
    )
    return schema
