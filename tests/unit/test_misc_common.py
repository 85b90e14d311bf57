from datetime import datetime, timezone

from fuelwatch.common.deterministic import stable_sorted
from fuelwatch.common.ids import generate_run_id
from fuelwatch.common.time_utils import as_utc, format_timestamp, parse_feed_timestamp


def test_stable_sorted_orders_values_and_keeps_ties():
    items = [{"k": 2, "id": "a"}, {"k": 1, "id": "b"}, {"k": 2, "id": "c"}]
    assert [item["id"] for item in stable_sorted(items, key=lambda item: item["k"])] == ["b", "a", "c"]


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")
    assert generate_run_id("ingest").startswith("ingest-")


def test_parse_feed_timestamp_iso_and_uk_formats():
    assert parse_feed_timestamp("2026-03-01T10:15:00Z") == datetime(2026, 3, 1, 10, 15, tzinfo=timezone.utc)
    assert parse_feed_timestamp("2026-03-01T10:15:00+01:00") == datetime(2026, 3, 1, 9, 15, tzinfo=timezone.utc)
    assert parse_feed_timestamp("01/03/2026 10:15:00") == datetime(2026, 3, 1, 10, 15, tzinfo=timezone.utc)


def test_parse_feed_timestamp_reads_naive_values_as_uk_local_time():
    # British Summer Time is UTC+1.
    assert parse_feed_timestamp("01/07/2026 10:15:00") == datetime(2026, 7, 1, 9, 15, tzinfo=timezone.utc)
    assert parse_feed_timestamp("2026-07-01T10:15:00") == datetime(2026, 7, 1, 9, 15, tzinfo=timezone.utc)
    assert parse_feed_timestamp("2026-07-01T10:15:00Z") == datetime(2026, 7, 1, 10, 15, tzinfo=timezone.utc)


def test_parse_feed_timestamp_rejects_unusable_values():
    assert parse_feed_timestamp(None) is None
    assert parse_feed_timestamp("") is None
    assert parse_feed_timestamp("yesterday") is None
    assert parse_feed_timestamp(1700000000) is None


def test_format_timestamp_uses_utc_z_suffix():
    assert format_timestamp(datetime(2026, 3, 1, 10, 15)) == "2026-03-01T10:15:00.000Z"
    assert as_utc(datetime(2026, 3, 1)).tzinfo == timezone.utc
