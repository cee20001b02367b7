"""
Tests for the corpus scan: registry contents, co-occurrence and time extent.
"""

import copy
import math

import pandas as pd
import pytest

from core.models import DimensionCategory, Location
from core.registry import Registry
from skills.profile import InvalidInputError, scan_record, scan_records


class TestScanScenarios:
    """End-to-end scans of small corpora."""

    def test_single_metric_single_region(self, temp_records):
        registry = scan_records(temp_records)

        assert set(registry.dimensions) == {"region"}
        region = registry.dimensions["region"]
        assert region.category == DimensionCategory.system
        assert region.values == {"east"}

        assert set(registry.groups) == {"temp"}
        temp = registry.groups["temp"]
        assert temp.title == "Temp"
        assert temp.units == "C"

        assert region.metrics == {"temp"}
        assert temp.dimensions == {"region"}
        assert temp.value(temp.reducer.reduce(temp_records), "sum") == 60

    def test_geo_location(self):
        registry = scan_records([{"location": {"lat": 10, "lon": 20, "site": "A"}}])

        position = registry.dimensions["position"]
        assert position.category == DimensionCategory.geo
        assert position.values == {"site-A"}
        assert registry.locations == {"site-A": Location(lat=10, lon=20)}
        # string sub-keys of location are categorical too
        assert registry.dimensions["site"].category == DimensionCategory.location

    def test_no_position_without_coordinates(self):
        registry = scan_records([{"location": {"site": "A"}}])
        assert "position" not in registry.dimensions
        assert registry.locations == {}
        assert registry.dimensions["site"].values == {"A"}

    def test_position_created_once(self):
        records = [
            {"location": {"lat": 10, "lon": 20, "site": "A"}},
            {"location": {"lat": 11, "lon": 21, "site": "B"}},
            {"location": {"lat": 10, "lon": 20, "site": "A"}},
        ]
        registry = scan_records(records)
        assert registry.dimensions["position"].values == {"site-A", "site-B"}
        assert set(registry.locations) == {"site-A", "site-B"}

    def test_unknown_fields_ignored(self):
        registry = scan_records([{"conditions": {"weather": "rain"}, "foo": 1}])
        assert registry.dimensions == {}
        assert registry.groups == {}
        assert registry.record_count == 1

    def test_non_string_sub_values_skipped(self):
        registry = scan_records([{"system": {"region": "east", "rack": 7}}])
        assert set(registry.dimensions) == {"region"}

    def test_first_writer_wins_on_key_collision(self):
        records = [
            {"system": {"name": "alpha"}},
            {"organization": {"name": "acme"}},
        ]
        registry = scan_records(records)
        name = registry.dimensions["name"]
        assert name.category == DimensionCategory.system
        assert name.accessor.path == ("system", "name")
        assert name.values == {"alpha", "acme"}

    def test_data_source_tags(self):
        records = [
            {"rep": "r1", "baseline": True, "produced_by": {"tool": "x"}},
            {"rep": 2},
        ]
        registry = scan_records(records)
        assert registry.dimensions["rep"].category == DimensionCategory.data_source
        assert registry.dimensions["rep"].values == {"r1", 2}
        assert registry.dimensions["baseline"].values == {True}
        assert "produced_by" not in registry.dimensions

    def test_group_reused_across_records(self):
        records = [
            {"metrics": [{"name": "Temp", "units": "C", "value": 1}]},
            {"metrics": [{"name": "Temp", "units": "F", "value": 2}]},
        ]
        registry = scan_records(records)
        assert list(registry.groups) == ["temp"]
        assert registry.groups["temp"].units == "C"


class TestCoOccurrence:
    """Dimension and group cross-references."""

    def test_symmetry(self, telemetry_records):
        registry = scan_records(telemetry_records)
        for dim in registry.dimensions.values():
            for group in registry.groups.values():
                assert (group.key in dim.metrics) == (dim.key in group.dimensions)

    def test_links_only_what_shares_a_record(self):
        records = [
            {"system": {"region": "east"}, "metrics": [{"name": "X", "value": 1}]},
            {"activity": {"task": "idle"}, "metrics": [{"name": "Y", "value": 2}]},
        ]
        registry = scan_records(records)
        assert registry.dimensions["region"].metrics == {"x"}
        assert registry.dimensions["task"].metrics == {"y"}
        assert registry.groups["x"].dimensions == {"region"}
        assert registry.groups["y"].dimensions == {"task"}

    def test_field_order_does_not_matter(self):
        """Metrics listed before the categorical fields are still linked."""
        record = {
            "metrics": [{"name": "Temp", "value": 1}],
            "rep": "r1",
            "system": {"region": "east"},
        }
        registry = scan_records([record])
        assert registry.groups["temp"].dimensions == {"rep", "region"}
        assert registry.dimensions["region"].metrics == {"temp"}

    def test_time_dimensions_link_to_metrics(self):
        record = {"time": "2024-03-04T10:00:00Z", "metrics": [{"name": "Temp", "value": 1}]}
        registry = scan_records([record])
        assert registry.groups["temp"].dimensions == {"year", "month", "week", "day", "hour"}
        assert registry.dimensions["hour"].metrics == {"temp"}


class TestTimeScan:
    """Time buckets, record extension and the time extent."""

    def test_time_dimensions_created_together(self):
        registry = scan_records([{"time": "2024-03-07T15:42:10Z"}, {"time": "2024-03-08T01:00:00Z"}])
        time_dims = {k for k, d in registry.dimensions.items() if d.category == DimensionCategory.time}
        assert time_dims == {"year", "month", "week", "day", "hour"}
        assert registry.dimensions["day"].values == {pd.Timestamp("2024-03-07"), pd.Timestamp("2024-03-08")}

    def test_records_extended_in_place(self):
        record = {"time": "2024-03-07T15:42:10Z"}
        scan_records([record])
        assert record["dt"] == pd.Timestamp("2024-03-07 15:42:10")
        assert record["week"] == pd.Timestamp("2024-03-04")
        assert record["hour"] == pd.Timestamp("2024-03-07 15:00")

    def test_time_range_bounds(self, telemetry_records):
        registry = scan_records(telemetry_records)
        start, end = registry.time_range.bounds()
        assert start == pd.Timestamp("2024-03-04")
        assert end == pd.Timestamp("2024-03-05")
        for rec in telemetry_records:
            ms = rec["dt"].value / 1_000_000
            assert registry.time_range.start <= ms <= registry.time_range.end

    def test_time_range_sentinel_without_time(self, temp_records):
        registry = scan_records(temp_records)
        assert registry.time_range.as_list() == [math.inf, 0.0]
        assert registry.time_range.is_empty
        assert registry.time_range.bounds() is None

    def test_time_range_before_epoch(self):
        registry = scan_records([{"time": "1969-07-20T20:17:40Z"}, {"time": "1969-07-21T02:56:00Z"}])
        start, end = registry.time_range.bounds()
        assert start == pd.Timestamp("1969-07-20 20:17:40")
        assert end == pd.Timestamp("1969-07-21 02:56:00")

    def test_unparseable_time_skipped(self):
        record = {"time": "yesterday-ish", "metrics": [{"name": "Temp", "value": 1}]}
        registry = scan_records([record])
        assert "year" not in registry.dimensions
        assert "dt" not in record
        assert registry.time_range.is_empty
        assert registry.groups["temp"].dimensions == set()


class TestDerivedKeyCollisions:
    """Sub-keys that share a name with a time bucket or the position dimension."""

    BUCKETS = ["year", "month", "week", "day", "hour"]

    @pytest.mark.parametrize("bucket", BUCKETS)
    def test_sub_key_before_time(self, bucket):
        records = [
            {"system": {bucket: "label"}, "metrics": [{"name": "T", "value": 1}]},
            {"time": "2024-03-04T10:00:00Z", "metrics": [{"name": "T", "value": 2}]},
        ]
        registry = scan_records(records)

        taken = registry.dimensions[bucket]
        assert taken.category == DimensionCategory.system
        assert taken.values == {"label"}
        assert taken.metrics == {"t"}

        others = [b for b in self.BUCKETS if b != bucket]
        for b in others:
            assert registry.dimensions[b].category == DimensionCategory.time
        assert registry.groups["t"].dimensions == {bucket, *others}
        assert "dt" in records[1]

    @pytest.mark.parametrize("bucket", BUCKETS)
    def test_time_before_sub_key(self, bucket):
        records = [
            {"time": "2024-03-04T10:00:00Z", "metrics": [{"name": "T", "value": 1}]},
            {"system": {bucket: "label"}, "metrics": [{"name": "T", "value": 2}]},
        ]
        registry = scan_records(records)

        dim = registry.dimensions[bucket]
        assert dim.category == DimensionCategory.time
        assert dim.accessor.kind == "time_bucket"
        assert "label" in dim.values
        assert dim.metrics == {"t"}

    @pytest.mark.parametrize("records", [
        [{"time": "2024-03-04T10:00:00Z"}, {"system": {"month": "march"}}],
        [{"system": {"month": "march"}}, {"time": "2024-03-04T10:00:00Z"}],
    ])
    def test_symmetry_survives_collision(self, records):
        for rec in records:
            rec["metrics"] = [{"name": "T", "value": 1}]
        registry = scan_records(records)
        for dim in registry.dimensions.values():
            for group in registry.groups.values():
                assert (group.key in dim.metrics) == (dim.key in group.dimensions)

    def test_position_sub_key_before_geo(self):
        records = [
            {"system": {"position": "rack-1"}, "metrics": [{"name": "T", "value": 1}]},
            {"location": {"lat": 10, "lon": 20, "site": "A"}, "metrics": [{"name": "T", "value": 2}]},
        ]
        registry = scan_records(records)

        position = registry.dimensions["position"]
        assert position.category == DimensionCategory.system
        assert position.values == {"rack-1"}
        assert registry.locations == {"site-A": Location(lat=10, lon=20)}
        assert registry.groups["t"].dimensions == {"position", "site"}

    def test_geo_before_position_sub_key(self):
        records = [
            {"location": {"lat": 10, "lon": 20, "site": "A"}},
            {"system": {"position": "rack-1"}},
        ]
        registry = scan_records(records)
        position = registry.dimensions["position"]
        assert position.category == DimensionCategory.geo
        assert position.values == {"site-A", "rack-1"}


class TestMixedTypeValues:
    """Distinct values are counted per type."""

    def test_bool_and_int_tags_kept_apart(self):
        registry = scan_records([{"rep": True}, {"rep": 1}, {"rep": 1.0}, {"rep": "1"}])
        rep = registry.dimensions["rep"]
        assert rep.cardinality == 4
        assert rep.sorted_values() == [True, 1.0, 1, "1"]

    def test_repeated_values_counted_once(self):
        registry = scan_records([{"rep": 2}, {"rep": 2}, {"rep": "r1"}])
        assert registry.dimensions["rep"].cardinality == 2


class TestScanContract:
    """Input validation and repeatability."""

    @pytest.mark.parametrize("records", [
        "not a list",
        {"system": {"region": "east"}},
        None,
        [1, 2],
        [{"rep": "r1"}, "oops"],
    ])
    def test_invalid_input_rejected(self, records):
        with pytest.raises(InvalidInputError):
            scan_records(records)

    def test_empty_corpus(self):
        registry = scan_records([])
        assert registry.dimensions == {}
        assert registry.record_count == 0

    def test_rescan_is_repeatable(self, telemetry_records):
        first = scan_records(copy.deepcopy(telemetry_records))
        second = scan_records(copy.deepcopy(telemetry_records))
        assert set(first.dimensions) == set(second.dimensions)
        assert set(first.groups) == set(second.groups)
        for key, dim in first.dimensions.items():
            assert dim.values == second.dimensions[key].values
            assert dim.metrics == second.dimensions[key].metrics

    def test_scan_record_accumulates_into_registry(self):
        registry = Registry()
        scan_record(registry, {"system": {"region": "east"}})
        scan_record(registry, {"system": {"region": "west"}})
        assert registry.dimensions["region"].values == {"east", "west"}
        assert registry.record_count == 2
