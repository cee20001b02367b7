"""
Shared pytest fixtures for the schema deduction tests.
"""

import pytest

from core.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings for every test so env overrides do not leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_records():
    """Three readings of one metric in one region."""
    return [
        {"system": {"region": "east"}, "metrics": [{"name": "Temp", "units": "C", "value": 10}]},
        {"system": {"region": "east"}, "metrics": [{"name": "Temp", "units": "C", "value": 20}]},
        {"system": {"region": "east"}, "metrics": [{"name": "Temp", "units": "C", "value": 30}]},
    ]


@pytest.fixture
def telemetry_records():
    """A small mixed corpus: two regions, two teams, two sites, one day of readings."""
    return [
        {
            "system": {"region": "east", "host": "h1"},
            "organization": {"team": "ops"},
            "location": {"lat": 10, "lon": 20, "site": "A"},
            "time": "2024-03-04T00:00:00Z",
            "rep": "r1",
            "metrics": [
                {"name": "CPU Temp", "units": "C", "value": 40},
                {"name": "GPU Temp", "units": "C", "value": 60},
                {"name": "Load", "units": "%", "value": 0.5},
            ],
        },
        {
            "system": {"region": "west", "host": "h2"},
            "organization": {"team": "dev"},
            "location": {"lat": 11, "lon": 21, "site": "B"},
            "time": "2024-03-04T12:00:00Z",
            "rep": "r2",
            "metrics": [
                {"name": "CPU Temp", "units": "C", "value": 50},
                {"name": "GPU Temp", "units": "C", "value": 70},
                {"name": "Load", "units": "%", "value": 0.7},
            ],
        },
        {
            "system": {"region": "east", "host": "h3"},
            "organization": {"team": "dev"},
            "location": {"lat": 10, "lon": 20, "site": "A"},
            "time": "2024-03-05T00:00:00Z",
            "rep": "r1",
            "metrics": [
                {"name": "CPU Temp", "units": "C", "value": 45},
                {"name": "Load", "units": "%", "value": 0.9},
            ],
        },
    ]
