from datetime import datetime, timedelta, timezone

import pytest

from loadrush_analytics.store.records import (
    LoadRecord,
    LoadStatus,
    SubscriptionRecord,
    normalize_status,
    parse_timestamp,
)


class TestNormalizeStatus:
    @pytest.mark.parametrize("raw,expected", [
        ("Completed", LoadStatus.DELIVERED),
        ("delivered", LoadStatus.DELIVERED),
        ("Available", LoadStatus.POSTED),
        ("posted", LoadStatus.POSTED),
        ("active", LoadStatus.POSTED),
        ("In Transit", LoadStatus.IN_TRANSIT),
        ("in_transit", LoadStatus.IN_TRANSIT),
        ("Pickup", LoadStatus.IN_TRANSIT),
        ("matched", LoadStatus.MATCHED),
        ("Cancelled", LoadStatus.CANCELLED),
        ("canceled", LoadStatus.CANCELLED),
    ])
    def test_known_literals(self, raw, expected):
        assert normalize_status(raw) is expected

    def test_unknown_and_non_string(self):
        assert normalize_status("lost at sea") is None
        assert normalize_status(None) is None
        assert normalize_status(3) is None

    def test_enum_passes_through(self):
        assert normalize_status(LoadStatus.MATCHED) is LoadStatus.MATCHED


class TestParseTimestamp:
    def test_iso_with_z(self):
        ts = parse_timestamp("2024-06-20T14:45:30Z")
        assert ts == datetime(2024, 6, 20, 14, 45, 30, tzinfo=timezone.utc)

    def test_naive_datetime_treated_as_utc(self):
        ts = parse_timestamp(datetime(2024, 1, 1, 8, 0))
        assert ts.tzinfo is not None
        assert ts.hour == 8

    def test_aware_datetime_converted_to_utc(self):
        cst = timezone(timedelta(hours=-6))
        ts = parse_timestamp(datetime(2024, 1, 1, 8, 0, tzinfo=cst))
        assert ts.hour == 14

    def test_epoch_seconds_and_millis(self):
        assert parse_timestamp(1700000000) == parse_timestamp(1700000000000)

    def test_firestore_style_map(self):
        ts = parse_timestamp({"seconds": 1700000000, "nanoseconds": 0})
        assert ts == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_missing(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("not a date")
        with pytest.raises(ValueError):
            parse_timestamp(["2024"])


class TestLoadRecord:
    def test_price_preferred(self):
        load = LoadRecord.from_dict("l1", {"status": "Completed", "price": 1200, "rate": 900})
        assert load.amount == 1200
        assert load.is_completed

    def test_rate_fallback_when_price_missing_or_zero(self):
        assert LoadRecord.from_dict("l1", {"rate": 900}).amount == 900
        assert LoadRecord.from_dict("l2", {"price": 0, "rate": 750}).amount == 750

    def test_no_money_fields(self):
        assert LoadRecord.from_dict("l1", {}).amount == 0

    @pytest.mark.parametrize("bad", ["NaN", float("nan"), float("inf"), "-Infinity", "TBD", True])
    def test_unusable_price_falls_back_to_rate(self, bad):
        assert LoadRecord.from_dict("l1", {"price": bad, "rate": 500}).amount == 500

    def test_unusable_price_and_rate(self):
        assert LoadRecord.from_dict("l1", {"price": float("nan"), "rate": "inf"}).amount == 0

    def test_invalid_timestamp_recorded_not_raised(self):
        load = LoadRecord.from_dict("l1", {"createdAt": "yesterday-ish", "acceptedAt": "2024-01-01T10:00:00Z"})
        assert load.created_at is None
        assert load.accepted_at is not None
        assert load.invalid_timestamps == ("created_at",)

    def test_active_statuses(self):
        assert LoadRecord.from_dict("a", {"status": "Available"}).is_active
        assert LoadRecord.from_dict("b", {"status": "In Transit"}).is_active
        assert not LoadRecord.from_dict("c", {"status": "matched"}).is_active
        assert not LoadRecord.from_dict("d", {"status": "Completed"}).is_active


class TestSubscriptionRecord:
    def test_normalizes_case(self):
        sub = SubscriptionRecord.from_dict("s1", {"role": "Driver", "status": " Active "})
        assert sub.role == "driver"
        assert sub.is_active

    def test_inactive(self):
        assert not SubscriptionRecord.from_dict("s1", {"role": "shipper", "status": "inactive"}).is_active

    def test_price_and_plan(self):
        sub = SubscriptionRecord.from_dict("s1", {"role": "driver", "status": "active", "plan": "pro", "price": "49.99"})
        assert sub.price == 49.99
        assert sub.plan == "pro"

    def test_unusable_price_is_zero(self):
        assert SubscriptionRecord.from_dict("s1", {"price": "NaN"}).price == 0
        assert SubscriptionRecord.from_dict("s2", {}).price == 0
