from datetime import datetime, timedelta, timezone

import pytest

from loadrush_analytics.ops.bulk_upload import (
    BulkUploadError,
    BulkUploader,
    build_load,
    parse_csv,
)
from loadrush_analytics.store import MemoryRecordStore, StoreError

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)

CSV = """Origin,Origin State,Destination,Destination State,Vehicle Type,Weight,Price
Las Vegas,NV,Phoenix,AZ,Reefer,42000,2100
"Los Angeles",CA,San Diego,CA,,18000,650.50

,NV,Reno,NV,Flatbed,1000,300
"""


class FailingStore(MemoryRecordStore):
    def add(self, collection, data):
        if data["dropoff"]["city"] == "Phoenix":
            raise StoreError("write rejected", collection)
        return super().add(collection, data)


def uploader(store):
    return BulkUploader(store, clock=lambda: NOW)


class TestParseCsv:
    def test_trims_and_drops_blank_lines(self):
        rows = parse_csv(" a , b \n\n c ,d\n")
        assert rows == [["a", "b"], ["c", "d"]]

    def test_quoted_commas(self):
        rows = parse_csv('origin,description\nReno,"fragile, keep dry"\n')
        assert rows[1] == ["Reno", "fragile, keep dry"]


class TestBuildLoad:
    def test_defaults(self):
        load = build_load({"origin": "Reno", "destination": "Boise"}, "u1", "ops@acme.test", NOW)
        assert load["status"] == "posted"
        assert load["vehicleType"] == "Flatbed"
        assert load["price"] == 0
        assert load["pickup"]["time"] == "08:00"
        assert load["dropoff"]["time"] == "17:00"
        assert load["expiresAt"] == NOW + timedelta(days=30)

    def test_header_aliases(self):
        load = build_load({"pickup city": "Reno", "delivery city": "Boise", "vehicle": "Reefer"}, "u1", "", NOW)
        assert load["pickup"]["city"] == "Reno"
        assert load["dropoff"]["city"] == "Boise"
        assert load["vehicleType"] == "Reefer"

    def test_missing_destination(self):
        assert build_load({"origin": "Reno"}, "u1", "", NOW) is None

    def test_bad_number_becomes_zero(self):
        load = build_load({"origin": "Reno", "destination": "Boise", "price": "call us"}, "u1", "", NOW)
        assert load["price"] == 0


class TestBulkUploader:
    def test_upload(self):
        store = MemoryRecordStore()
        result = uploader(store).upload(CSV, shipper_id="u-42", shipper_email="ops@acme.test")

        assert result.success == 2
        assert result.failed == 1
        assert len(result.load_ids) == 2

        first = store.get("loads", result.load_ids[0])
        assert first["pickup"]["city"] == "Las Vegas"
        assert first["dropoff"]["state"] == "AZ"
        assert first["vehicleType"] == "Reefer"
        assert first["price"] == 2100
        assert first["shipperId"] == "u-42"
        assert first["createdAt"] == NOW

        second = store.get("loads", result.load_ids[1])
        assert second["vehicleType"] == "Flatbed"
        assert second["price"] == 650.5

    def test_store_error_counts_as_failed(self):
        store = FailingStore()
        result = uploader(store).upload(CSV, shipper_id="u-42")
        assert result.success == 1
        assert result.failed == 2

    def test_header_only(self):
        with pytest.raises(BulkUploadError):
            uploader(MemoryRecordStore()).upload("Origin,Destination\n", shipper_id="u-42")

    def test_empty_file(self):
        with pytest.raises(BulkUploadError):
            uploader(MemoryRecordStore()).upload("", shipper_id="u-42")
