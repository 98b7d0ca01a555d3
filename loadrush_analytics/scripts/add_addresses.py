#!/usr/bin/env python3
"""
Address Backfill

One-time job: give every load a street-level pickup.location and
dropoff.location so navigation has something to route to.

Idempotent per load - a location of 20+ characters is treated as already
filled in and left alone. Exits 1 if any load failed to update.

Usage:
    loadrush-add-addresses [--database-url URL] [--dry-run]
"""

import argparse
import random
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from loadrush_analytics.core.config import Config
from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.store.base import RecordStore, StoreError
from loadrush_analytics.store.sql import open_store

log = get_logger("scripts.add_addresses", labels={"component": "add-addresses"})

MIN_ADDRESS_LENGTH = 20

CITY_ADDRESSES = {
    "Las Vegas": {
        "pickup": [
            "3355 S Las Vegas Blvd, Las Vegas, NV 89109",
            "5757 Wayne Newton Blvd, Las Vegas, NV 89119",
            "2880 S Las Vegas Blvd, Las Vegas, NV 89109",
        ],
        "dropoff": [
            "3799 S Las Vegas Blvd, Las Vegas, NV 89109",
            "3131 S Las Vegas Blvd, Las Vegas, NV 89109",
            "128 Fremont St, Las Vegas, NV 89101",
        ],
    },
    "Los Angeles": {
        "pickup": [
            "1 World Way, Los Angeles, CA 90045",
            "800 Olympic Blvd, Los Angeles, CA 90015",
            "750 S Alameda St, Los Angeles, CA 90021",
        ],
        "dropoff": [
            "6801 Hollywood Blvd, Los Angeles, CA 90028",
            "135 N Grand Ave, Los Angeles, CA 90012",
            "301 E Ocean Blvd, Long Beach, CA 90802",
        ],
    },
    "Phoenix": {
        "pickup": [
            "3400 E Sky Harbor Blvd, Phoenix, AZ 85034",
            "1111 W Jefferson St, Phoenix, AZ 85007",
        ],
        "dropoff": [
            "455 N Galvin Pkwy, Phoenix, AZ 85008",
            "250 W Washington St, Phoenix, AZ 85003",
        ],
    },
    "San Diego": {
        "pickup": [
            "3225 N Harbor Dr, San Diego, CA 92101",
            "1549 El Prado, San Diego, CA 92101",
        ],
        "dropoff": [
            "525 B St, San Diego, CA 92101",
            "1355 N Harbor Dr, San Diego, CA 92101",
        ],
    },
    "Sacramento": {
        "pickup": [
            "6900 Airport Blvd, Sacramento, CA 95837",
            "1315 10th St, Sacramento, CA 95814",
        ],
        "dropoff": [
            "3000 Arena Blvd, Sacramento, CA 95834",
            "1000 Front St, Sacramento, CA 95814",
        ],
    },
}


@dataclass
class BackfillReport:
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def pick_address(city: str, kind: str, rng: random.Random) -> str:
    for name, addresses in CITY_ADDRESSES.items():
        if name.lower() in city.lower():
            return rng.choice(addresses[kind])
    return f"{rng.randint(1000, 9999)} Main St, {city}"


def _has_address(stop) -> bool:
    location = stop.get("location") if isinstance(stop, dict) else None
    return isinstance(location, str) and len(location) >= MIN_ADDRESS_LENGTH


def _city(load: dict, *keys: str) -> str:
    for key in keys:
        stop = load.get(key)
        if isinstance(stop, dict) and stop.get("city"):
            return stop["city"]
    return "Unknown"


def backfill(store: RecordStore, rng: Optional[random.Random] = None, dry_run: bool = False) -> BackfillReport:
    rng = rng or random.Random()
    report = BackfillReport()
    documents = store.documents("loads")
    log.info(f"Found {len(documents)} loads")

    for doc in documents:
        load = doc.data
        has_pickup = _has_address(load.get("pickup"))
        has_dropoff = _has_address(load.get("dropoff"))

        if has_pickup and has_dropoff:
            log.info(f"{doc.id}: already has addresses - skipping")
            report.skipped += 1
            continue

        pickup_city = _city(load, "origin", "pickup")
        dropoff_city = _city(load, "destination", "dropoff")

        fields = {"updatedAt": datetime.now(timezone.utc)}
        if not has_pickup:
            fields["pickup.location"] = pick_address(pickup_city, "pickup", rng)
        if not has_dropoff:
            fields["dropoff.location"] = pick_address(dropoff_city, "dropoff", rng)

        if dry_run:
            log.info(f"{doc.id}: would set {fields}")
            report.updated += 1
            continue

        try:
            store.update("loads", doc.id, fields)
        except StoreError as e:
            log.error(f"Failed to update {doc.id}: {e}", extra={"labels": {"load_id": doc.id}})
            report.failed += 1
            continue

        log.info(f"{doc.id}: {pickup_city} → {dropoff_city}", extra={"labels": {"load_id": doc.id}})
        report.updated += 1

    log.info(f"Update complete: updated={report.updated} skipped={report.skipped} failed={report.failed}")
    return report


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Backfill street addresses onto loads")
    parser.add_argument("--database-url", default=Config.DATABASE_URL)
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    args = parser.parse_args(argv)

    try:
        store = open_store(args.database_url)
        report = backfill(store, dry_run=args.dry_run)
    except StoreError:
        log.exception("Address backfill failed")
        return 1
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
