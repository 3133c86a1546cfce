"""
Tests for record assembly and record serialization
"""

import pytest
from pydantic import ValidationError

from src.models.measures import FALLBACK_MEASURE, MeasureValue, MeasureValueType, MultiMeasure
from src.models.records import VerifiedEvent
from src.services.measure_extractor import extract
from src.services.record_assembler import (
    assemble,
    assemble_custom,
    common_dimensions,
    custom_dimensions,
)

from tests.helpers import FIXED_NOW_MS


@pytest.fixture
def verified():
    return VerifiedEvent(event_type="push", delivery_id="d-1", raw_body="{}")


class TestCommonDimensions:
    """Test cases for dimension extraction"""

    def test_full_payload(self, verified, push_payload):
        dimensions = common_dimensions(verified, push_payload)
        assert [(d.name, d.value) for d in dimensions] == [
            ("event_type", "push"),
            ("delivery_id", "d-1"),
            ("repository_id", "1296269"),
            ("repository_name", "hello-world"),
            ("repository_full_name", "octo-org/hello-world"),
            ("organization_id", "9919"),
            ("organization_login", "octo-org"),
            ("sender_id", "583231"),
            ("sender_login", "alice"),
        ]

    def test_absent_fields_are_omitted(self, verified):
        dimensions = common_dimensions(verified, {"organization": None, "action": "opened"})
        assert [d.name for d in dimensions] == ["event_type", "delivery_id", "action"]


class TestAssemble:
    """Test cases for webhook record assembly"""

    def test_uses_clock(self, verified, push_payload):
        record = assemble(verified, push_payload, extract("push", push_payload), clock=lambda: FIXED_NOW_MS)
        assert record.timestamp == FIXED_NOW_MS
        assert record.event_type == "push"
        assert record.measure.name == "push"

    def test_explicit_timestamp_wins(self, verified):
        record = assemble(verified, {}, FALLBACK_MEASURE, timestamp_ms=5, clock=lambda: FIXED_NOW_MS)
        assert record.timestamp == 5

    def test_record_is_immutable(self, verified):
        record = assemble(verified, {}, FALLBACK_MEASURE, clock=lambda: FIXED_NOW_MS)
        with pytest.raises(ValidationError):
            record.timestamp = 0


class TestAssembleCustom:
    """Test cases for custom data record assembly"""

    def test_caller_time_wins(self):
        payload = {"Dimensions": [{"Name": "team", "Value": "infra"}], "Time": 1704067200000}
        record = assemble_custom(payload, FALLBACK_MEASURE, clock=lambda: FIXED_NOW_MS)
        assert record.timestamp == 1704067200000

    def test_iso_time(self):
        record = assemble_custom({"Time": "2024-01-01T00:00:00Z"}, FALLBACK_MEASURE, clock=lambda: FIXED_NOW_MS)
        assert record.timestamp == 1704067200000

    def test_unparseable_time_uses_clock(self):
        record = assemble_custom({"Time": "yesterday"}, FALLBACK_MEASURE, clock=lambda: FIXED_NOW_MS)
        assert record.timestamp == FIXED_NOW_MS

    def test_out_of_range_time_uses_clock(self):
        record = assemble_custom({"Time": "999999999999999999"}, FALLBACK_MEASURE, clock=lambda: FIXED_NOW_MS)
        assert record.timestamp == FIXED_NOW_MS
        assert record.to_flat_dict()["timestamp_ms"] == FIXED_NOW_MS

    def test_custom_dimensions(self):
        dimensions = custom_dimensions(
            {
                "Dimensions": [
                    {"Name": "team", "Value": "infra"},
                    {"Name": "team", "Value": "duplicate"},
                    {"Name": "event_type", "Value": "spoofed"},
                    {"Name": "shard", "Value": 3},
                    {"Value": "nameless"},
                ]
            }
        )
        assert [(d.name, d.value) for d in dimensions] == [
            ("event_type", "custom_data"),
            ("team", "infra"),
            ("shard", "3"),
        ]


class TestRecordSerialization:
    """Test cases for sink wire formats"""

    @pytest.fixture
    def multi_record(self, verified):
        measure = MultiMeasure(
            name="push",
            values=(
                MeasureValue(name="push_ref", type=MeasureValueType.STRING, value="refs/heads/main"),
                MeasureValue(name="push_forced", type=MeasureValueType.BOOL, value="false"),
                MeasureValue(name="push_commits_length", type=MeasureValueType.INT64, value="2"),
            ),
        )
        return assemble(verified, {"action": "x"}, measure, timestamp_ms=1704067200123)

    def test_timestream_multi_record(self, multi_record):
        record = multi_record.to_timestream_record()
        assert record["MeasureName"] == "push"
        assert record["MeasureValueType"] == "MULTI"
        assert record["Time"] == "1704067200123"
        assert record["TimeUnit"] == "MILLISECONDS"
        assert record["MeasureValues"] == [
            {"Name": "push_ref", "Value": "refs/heads/main", "Type": "VARCHAR"},
            {"Name": "push_forced", "Value": "false", "Type": "BOOLEAN"},
            {"Name": "push_commits_length", "Value": "2", "Type": "BIGINT"},
        ]
        assert {"Name": "action", "Value": "x", "DimensionValueType": "VARCHAR"} in record["Dimensions"]
        assert "MeasureValue" not in record

    def test_timestream_single_record(self, verified):
        record = assemble(verified, {}, FALLBACK_MEASURE, timestamp_ms=1).to_timestream_record()
        assert record["MeasureName"] == "dummyMeasure"
        assert record["MeasureValueType"] == "BIGINT"
        assert record["MeasureValue"] == "1"
        assert "MeasureValues" not in record

    def test_flat_row(self, multi_record):
        row = multi_record.to_flat_dict()
        assert row["timestamp"] == "2024-01-01T00:00:00.123Z"
        assert row["timestamp_ms"] == 1704067200123
        assert row["event_type"] == "push"
        assert row["measure_name"] == "push"
        assert row["measure_value_type"] == "MULTI"
        assert row["push_commits_length"] == "2"

    def test_timestamp_outside_datetime_range_is_rejected(self, verified):
        with pytest.raises(ValidationError):
            assemble(verified, {}, FALLBACK_MEASURE, timestamp_ms=999999999999999999)

    def test_flat_row_at_range_limit(self, verified):
        row = assemble(verified, {}, FALLBACK_MEASURE, timestamp_ms=253402300799999).to_flat_dict()
        assert row["timestamp"] == "9999-12-31T23:59:59.999Z"
