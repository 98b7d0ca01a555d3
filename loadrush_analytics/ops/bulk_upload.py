"""
CSV Bulk Upload

Shippers post many loads at once from a CSV export. The first row holds
headers (case-insensitive, several aliases accepted); every following row
becomes one posted load. Rows are written one at a time: a bad row is
counted as failed and the rest carry on.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.core.metrics import metrics
from loadrush_analytics.store.base import RecordStore, StoreError
from loadrush_analytics.store.records import LoadStatus

logger = get_logger("ops.bulk_upload", labels={"component": "bulk-upload"})

LISTING_TTL = timedelta(days=30)
DEFAULT_TRANSIT = timedelta(days=2)

# field -> header aliases, first non-empty wins
ALIASES = {
    "origin_city": ("origin", "origin city", "pickup city"),
    "origin_state": ("origin state", "pickup state"),
    "dest_city": ("destination", "dest city", "delivery city"),
    "dest_state": ("destination state", "dest state", "delivery state"),
    "vehicle_type": ("vehicletype", "vehicle type", "vehicle"),
    "origin_address": ("origin address", "pickup address"),
    "dest_address": ("destination address", "delivery address"),
}


class BulkUploadError(Exception):
    """The file as a whole can't be processed."""


@dataclass
class UploadResult:
    success: int = 0
    failed: int = 0
    load_ids: list = field(default_factory=list)


def parse_csv(text: str) -> list[list[str]]:
    """Rows of trimmed cells; blank lines dropped. Quoted cells may contain commas."""
    rows = []
    for row in csv.reader(io.StringIO(text)):
        cells = [cell.strip() for cell in row]
        if any(cells):
            rows.append(cells)
    return rows


def _pick(row: dict, key: str, default: str = "") -> str:
    for alias in ALIASES[key]:
        if row.get(alias):
            return row[alias]
    return default


def _number(value: Optional[str]) -> float:
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def build_load(row: dict, shipper_id: str, shipper_email: str, now: datetime) -> Optional[dict]:
    """Map one CSV row to a load document. None if origin or destination is missing."""
    origin_city = _pick(row, "origin_city")
    dest_city = _pick(row, "dest_city")
    if not origin_city or not dest_city:
        return None

    return {
        "shipperId": shipper_id,
        "shipperEmail": shipper_email,
        "status": LoadStatus.POSTED.value,
        "vehicleType": _pick(row, "vehicle_type", "Flatbed"),
        "weight": _number(row.get("weight")),
        "price": _number(row.get("price")),
        "pickup": {
            "city": origin_city,
            "state": _pick(row, "origin_state"),
            "address": _pick(row, "origin_address"),
            "date": row.get("pickup date") or now.isoformat(),
            "time": row.get("pickup time") or "08:00",
            "coordinates": {
                "latitude": _number(row.get("origin lat")),
                "longitude": _number(row.get("origin lng")),
            },
        },
        "dropoff": {
            "city": dest_city,
            "state": _pick(row, "dest_state"),
            "address": _pick(row, "dest_address"),
            "date": row.get("delivery date") or (now + DEFAULT_TRANSIT).isoformat(),
            "time": row.get("delivery time") or "17:00",
            "coordinates": {
                "latitude": _number(row.get("destination lat")),
                "longitude": _number(row.get("destination lng")),
            },
        },
        "distance": _number(row.get("distance")),
        "description": row.get("description", ""),
        "requirements": row.get("requirements", ""),
        "createdAt": now,
        "updatedAt": now,
        "expiresAt": now + LISTING_TTL,
    }


class BulkUploader:
    """
    Example:
        uploader = BulkUploader(store)
        result = uploader.upload(csv_text, shipper_id="u-42", shipper_email="ops@acme.test")
        print(result.success, result.failed)
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.store = store
        self.clock = clock

    def upload(self, text: str, shipper_id: str, shipper_email: str = "") -> UploadResult:
        rows = parse_csv(text)
        if len(rows) < 2:
            raise BulkUploadError("CSV file must have at least a header row and one data row")

        headers = [h.lower() for h in rows[0]]
        logger.info(f"Processing {len(rows) - 1} rows", extra={"labels": {"shipper_id": shipper_id}})

        result = UploadResult()
        now = self.clock()
        for line_no, cells in enumerate(rows[1:], start=2):
            row = {header: cells[i] if i < len(cells) else "" for i, header in enumerate(headers)}
            load = build_load(row, shipper_id, shipper_email, now)
            if load is None:
                logger.warning(f"Skipping row {line_no}: missing origin or destination",
                               extra={"labels": {"line": line_no}})
                result.failed += 1
                metrics.loads_uploaded.labels(outcome="skipped").inc()
                continue
            try:
                load_id = self.store.add("loads", load)
            except StoreError as e:
                logger.error(f"Row {line_no} failed: {e}", extra={"labels": {"line": line_no}})
                result.failed += 1
                metrics.loads_uploaded.labels(outcome="failed").inc()
                continue
            result.success += 1
            result.load_ids.append(load_id)
            metrics.loads_uploaded.labels(outcome="created").inc()
            logger.info(f"Created load {load_id}: {load['pickup']['city']} → {load['dropoff']['city']}")

        logger.info(f"Upload complete: {result.success} created, {result.failed} failed")
        return result
