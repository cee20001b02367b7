"""
Shared utility helpers.

Pure functions: no I/O, no side effects.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, List, Optional

import numpy as np
import pandas as pd


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def tokenize(text: str) -> List[str]:
    """Split text into alphanumeric words, breaking camelCase humps."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", str(text))
    return re.findall(r"[A-Za-z0-9]+", spaced)


def titleize(text: str) -> str:
    """Human title: 'produced_by' -> 'Produced By', 'cpuTemp' -> 'Cpu Temp'."""
    return " ".join(w[:1].upper() + w[1:] for w in tokenize(text))


def join_titles(titles: List[str]) -> str:
    """'A', 'A and B', 'A, B and C'."""
    if len(titles) <= 1:
        return "".join(titles)
    return ", ".join(titles[:-1]) + " and " + titles[-1]


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def metric_number(val: Any) -> Optional[float]:
    """
    Parse a reported metric value.

    Numbers pass through; strings must be plain decimals (thousands
    separators allowed). Suffixes and percent signs are rejected: the
    group's units carry the scale. Anything else, including non-finite
    numbers, is None.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        try:
            val = float(val.strip().replace(",", ""))
        except ValueError:
            return None
    if not isinstance(val, (int, float)):
        return None
    val = float(val)
    return val if math.isfinite(val) else None


def is_number(val: Any) -> bool:
    """True for real, finite numbers (bools excluded)."""
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return False
    return math.isfinite(val)


# ---------------------------------------------------------------------------
# JSON safety
# ---------------------------------------------------------------------------

def json_safe(value: Any) -> Any:
    """Timestamps -> ISO strings, non-finite floats -> None, containers recursed."""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, np.generic):
        return json_safe(value.item())
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [json_safe(v) for v in value]
    return value

