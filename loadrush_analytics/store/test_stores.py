from datetime import datetime, timezone

import pytest

from loadrush_analytics.store import (
    LoadStatus,
    MemoryRecordStore,
    NotFoundError,
    Query,
    StoreError,
    status_in,
)
from loadrush_analytics.store.sql import SqlRecordStore


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryRecordStore()
    return SqlRecordStore.from_url(f"sqlite:///{tmp_path / 'records.db'}")


class TestQueries:
    def test_equality_filters(self, store):
        store.set("subscriptions", "a", {"role": "driver", "status": "active"})
        store.set("subscriptions", "b", {"role": "driver", "status": "inactive"})
        store.set("subscriptions", "c", {"role": "shipper", "status": "active"})

        query = Query("subscriptions").where("role", "==", "driver").where("status", "==", "active")
        assert [d.id for d in store.fetch(query)] == ["a"]

    def test_in_filter(self, store):
        store.set("loads", "a", {"vehicleType": "Reefer"})
        store.set("loads", "b", {"vehicleType": "Flatbed"})
        store.set("loads", "c", {"vehicleType": "Dry Van"})

        query = Query("loads").where("vehicleType", "in", ["Reefer", "Dry Van"])
        assert sorted(d.id for d in store.fetch(query)) == ["a", "c"]

    def test_status_filter_matches_every_spelling(self, store):
        store.set("loads", "a", {"status": "Completed"})
        store.set("loads", "b", {"status": "delivered"})
        store.set("loads", "c", {"status": "Available"})

        query = Query("loads").matching(status_in(LoadStatus.DELIVERED))
        assert sorted(d.id for d in store.fetch(query)) == ["a", "b"]

    def test_unknown_operator(self, store):
        store.set("loads", "a", {"price": 1})
        with pytest.raises(ValueError):
            store.fetch(Query("loads").where("price", ">", 0))


class TestWrites:
    def test_add_returns_id(self, store):
        doc_id = store.add("loads", {"status": "posted"})
        assert store.get("loads", doc_id) == {"status": "posted"}

    def test_update_dotted_fields(self, store):
        store.set("loads", "a", {"pickup": {"city": "Reno", "location": ""}, "status": "posted"})
        store.update("loads", "a", {"pickup.location": "1 Main St, Reno, NV 89501"})

        data = store.get("loads", "a")
        assert data["pickup"] == {"city": "Reno", "location": "1 Main St, Reno, NV 89501"}
        assert data["status"] == "posted"

    def test_update_missing_document(self, store):
        with pytest.raises(NotFoundError):
            store.update("loads", "nope", {"status": "posted"})

    def test_not_found_is_store_error(self):
        assert issubclass(NotFoundError, StoreError)

    def test_get_missing(self, store):
        assert store.get("loads", "nope") is None


class TestSubscriptions:
    def test_delivers_immediately_and_on_change(self, store):
        snapshots = []
        store.subscribe(Query("loads"), lambda docs: snapshots.append(len(docs)))

        store.add("loads", {"status": "posted"})
        store.add("loads", {"status": "posted"})

        assert snapshots == [0, 1, 2]

    def test_only_matching_collection_notified(self, store):
        snapshots = []
        store.subscribe(Query("loads"), lambda docs: snapshots.append(len(docs)))
        store.add("subscriptions", {"role": "driver"})
        assert snapshots == [0]

    def test_unsubscribe_stops_delivery(self, store):
        snapshots = []
        subscription = store.subscribe(Query("loads"), lambda docs: snapshots.append(len(docs)))
        subscription.unsubscribe()
        subscription.unsubscribe()

        store.add("loads", {"status": "posted"})

        assert snapshots == [0]
        assert store.subscription_count == 0

    def test_fetch_error_goes_to_on_error(self, store):
        errors = []
        query = Query("loads").where("price", ">", 0)
        store.set("loads", "a", {"price": 1})
        store.subscribe(query, lambda docs: None, errors.append)
        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)


class TestSqlStore:
    def test_datetimes_stored_as_iso(self, tmp_path):
        store = SqlRecordStore.from_url(f"sqlite:///{tmp_path / 'records.db'}")
        ts = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        store.set("loads", "a", {"createdAt": ts})
        assert store.get("loads", "a") == {"createdAt": "2024-05-01T12:00:00+00:00"}

    def test_persists_across_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'records.db'}"
        SqlRecordStore.from_url(url).set("loads", "a", {"status": "posted"})
        assert SqlRecordStore.from_url(url).get("loads", "a") == {"status": "posted"}
