"""Settings loader.

Reads tunables from the environment (and a local .env file) so the
recommendation thresholds can be adjusted without code changes.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

logger = logging.getLogger("uvicorn.error")


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip() or default


def _env_int(key: str, default: int) -> int:
    raw = _env(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", key, raw, default)
        return default


class Settings(BaseModel):
    # distinct values above which a filter is rendered as a row list
    row_filter_threshold: int = 9
    # max distinct values of the primary dimension of a bar chart
    crosstab_max_values: int = 10
    # min distinct string values for a dimension to split a chart
    min_split_values: int = 2
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


@lru_cache
def get_settings() -> Settings:
    """
    Build settings from DEDUCE_* environment variables.

    Cached; call get_settings.cache_clear() in tests to re-read.
    """
    origins = _env("DEDUCE_CORS_ORIGINS", "*") or "*"
    return Settings(
        row_filter_threshold=_env_int("DEDUCE_ROW_FILTER_THRESHOLD", 9),
        crosstab_max_values=_env_int("DEDUCE_CROSSTAB_MAX_VALUES", 10),
        min_split_values=_env_int("DEDUCE_MIN_SPLIT_VALUES", 2),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
