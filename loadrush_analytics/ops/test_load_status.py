from datetime import datetime, timezone

import pytest

from loadrush_analytics.ops.load_status import update_load_status
from loadrush_analytics.store import LoadStatus, MemoryRecordStore, NotFoundError

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryRecordStore({"loads": {"l1": {"status": "Available", "price": 900}}})


class TestUpdateLoadStatus:
    def test_match_stamps_accepted_at(self, store):
        status = update_load_status(store, "l1", "matched", now=NOW)
        data = store.get("loads", "l1")

        assert status is LoadStatus.MATCHED
        assert data["status"] == "matched"
        assert data["acceptedAt"] == NOW
        assert "completedAt" not in data

    def test_delivery_stamps_completed_at(self, store):
        update_load_status(store, "l1", "Completed", now=NOW)
        data = store.get("loads", "l1")
        assert data["status"] == "delivered"
        assert data["completedAt"] == NOW
        assert data["price"] == 900

    def test_in_transit_only_updates_status(self, store):
        update_load_status(store, "l1", LoadStatus.IN_TRANSIT, now=NOW)
        data = store.get("loads", "l1")
        assert data["status"] == "in_transit"
        assert data["updatedAt"] == NOW
        assert "acceptedAt" not in data

    def test_unknown_status(self, store):
        with pytest.raises(ValueError):
            update_load_status(store, "l1", "teleported")
        assert store.get("loads", "l1")["status"] == "Available"

    def test_missing_load(self, store):
        with pytest.raises(NotFoundError):
            update_load_status(store, "nope", "delivered")
