import random

from loadrush_analytics.scripts import add_addresses, migrate_status
from loadrush_analytics.scripts.add_addresses import CITY_ADDRESSES, backfill, pick_address
from loadrush_analytics.scripts.migrate_status import migrate
from loadrush_analytics.store import MemoryRecordStore, StoreError


class ReadOnlyStore(MemoryRecordStore):
    def update(self, collection, doc_id, fields):
        raise StoreError("read-only", collection)


def loads():
    return {
        "loads": {
            "vegas": {"pickup": {"city": "Las Vegas"}, "dropoff": {"city": "Phoenix"}, "status": "Completed"},
            "done": {
                "pickup": {"city": "Reno", "location": "1200 Kietzke Ln, Reno, NV 89502"},
                "dropoff": {"city": "Boise", "location": "3201 W Airport Way, Boise, ID 83705"},
                "status": "delivered",
            },
            "nowhere": {"status": "Lost"},
        }
    }


class TestPickAddress:
    def test_known_city(self):
        address = pick_address("Las Vegas", "pickup", random.Random(1))
        assert address in CITY_ADDRESSES["Las Vegas"]["pickup"]

    def test_partial_match(self):
        address = pick_address("North Las Vegas", "dropoff", random.Random(1))
        assert address in CITY_ADDRESSES["Las Vegas"]["dropoff"]

    def test_fallback(self):
        address = pick_address("Boise", "pickup", random.Random(1))
        assert address.endswith(" Main St, Boise")


class TestBackfill:
    def test_fills_missing_addresses(self):
        store = MemoryRecordStore(loads())
        report = backfill(store, rng=random.Random(3))

        assert report.updated == 2
        assert report.skipped == 1
        assert report.exit_code == 0

        vegas = store.get("loads", "vegas")
        assert vegas["pickup"]["location"] in CITY_ADDRESSES["Las Vegas"]["pickup"]
        assert vegas["pickup"]["city"] == "Las Vegas"
        assert vegas["dropoff"]["location"] in CITY_ADDRESSES["Phoenix"]["dropoff"]

        nowhere = store.get("loads", "nowhere")
        assert nowhere["pickup"]["location"].endswith("Main St, Unknown")

    def test_second_run_skips_everything(self):
        store = MemoryRecordStore(loads())
        backfill(store, rng=random.Random(3))
        report = backfill(store, rng=random.Random(3))
        assert report.updated == 0
        assert report.skipped == 3

    def test_dry_run_writes_nothing(self):
        store = MemoryRecordStore(loads())
        report = backfill(store, dry_run=True)
        assert report.updated == 2
        assert "location" not in store.get("loads", "vegas")["pickup"]

    def test_failures_set_exit_code(self):
        report = backfill(ReadOnlyStore(loads()))
        assert report.failed == 2
        assert report.exit_code == 1

    def test_main(self, tmp_path):
        assert add_addresses.main(["--database-url", f"sqlite:///{tmp_path / 'loadrush.db'}"]) == 0


class TestMigrateStatus:
    def test_rewrites_to_canonical(self):
        store = MemoryRecordStore(loads())
        report = migrate(store)

        assert report.migrated == 1
        assert report.skipped == 1
        assert report.unknown == 1
        assert report.by_label == {"Completed": 1}
        assert store.get("loads", "vegas")["status"] == "delivered"
        assert store.get("loads", "nowhere")["status"] == "Lost"

    def test_dry_run(self):
        store = MemoryRecordStore(loads())
        report = migrate(store, dry_run=True)
        assert report.migrated == 1
        assert store.get("loads", "vegas")["status"] == "Completed"

    def test_failures(self):
        report = migrate(ReadOnlyStore(loads()))
        assert report.failed == 1
        assert report.exit_code == 1

    def test_main(self, tmp_path):
        assert migrate_status.main(["--database-url", f"sqlite:///{tmp_path / 'loadrush.db'}"]) == 0
