"""
Previous-Period Sources

Headcount KPIs (active loads, drivers, shippers) can't be queried
point-in-time from the record store, so the trend pipeline asks a
PreviousPeriodSource for last week's value.

- SnapshotHistory persists one rollup per UTC day and reads back the one
  from seven days ago.
- SynthesizedHistory scales the current value by a random factor. It is an
  approximation kept for environments with no snapshot history yet.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.store.base import RecordStore
from loadrush_analytics.store.records import parse_timestamp

logger = get_logger("history", labels={"component": "history"})

HEADCOUNT_KPIS = ("active_loads", "driver_count", "shipper_count")


def js_round(value: float) -> int:
    """Round half up, like Math.round."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class KpiSnapshot:
    day: date
    active_loads: int
    driver_count: int
    shipper_count: int
    captured_at: datetime

    @property
    def doc_id(self) -> str:
        return self.day.isoformat()

    def value(self, kpi: str) -> int:
        return getattr(self, kpi)

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "activeLoads": self.active_loads,
            "driverCount": self.driver_count,
            "shipperCount": self.shipper_count,
            "capturedAt": self.captured_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KpiSnapshot":
        return cls(
            day=date.fromisoformat(data["day"]),
            active_loads=int(data.get("activeLoads", 0)),
            driver_count=int(data.get("driverCount", 0)),
            shipper_count=int(data.get("shipperCount", 0)),
            captured_at=parse_timestamp(data.get("capturedAt")) or datetime.now(timezone.utc),
        )


class PreviousPeriodSource(ABC):
    @abstractmethod
    def previous(self, kpi: str, current: int, now: datetime) -> int:
        """Value of `kpi` for the week before `now`."""
        pass

    def record(self, snapshot: KpiSnapshot) -> None:
        """Remember today's values. No-op by default."""
        pass


class SynthesizedHistory(PreviousPeriodSource):
    """
    previous = round(current * U(low, high))

    Not a real historical comparison.
    """

    RANGES = {
        "active_loads": (0.85, 1.15),
        "driver_count": (0.90, 1.10),
        "shipper_count": (0.88, 1.12),
    }

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def previous(self, kpi: str, current: int, now: datetime) -> int:
        low, high = self.RANGES[kpi]
        return js_round(current * (low + self.rng.random() * (high - low)))


class SnapshotHistory(PreviousPeriodSource):
    """
    Daily KPI rollups stored in the record store.

    Example:
        history = SnapshotHistory(store)
        history.record(KpiSnapshot(day=today, active_loads=40, driver_count=22,
                                   shipper_count=9, captured_at=now))
        history.previous("driver_count", current=22, now=now + timedelta(days=7))  # 22
    """

    def __init__(self, store: RecordStore, collection: str = "kpi_snapshots", lookback_days: int = 7):
        self.store = store
        self.collection = collection
        self.lookback_days = lookback_days

    def snapshot_for(self, day: date) -> Optional[KpiSnapshot]:
        data = self.store.get(self.collection, day.isoformat())
        if data is None:
            return None
        return KpiSnapshot.from_dict(data)

    def previous(self, kpi: str, current: int, now: datetime) -> int:
        day = (now.astimezone(timezone.utc) - timedelta(days=self.lookback_days)).date()
        snapshot = self.snapshot_for(day)
        if snapshot is None:
            # No history for that day: report no change rather than invent one
            logger.debug(f"No {kpi} snapshot for {day}", extra={"labels": {"kpi": kpi}})
            return current
        return snapshot.value(kpi)

    def record(self, snapshot: KpiSnapshot) -> None:
        self.store.set(self.collection, snapshot.doc_id, snapshot.to_dict())


def create_history(kind: str, store: RecordStore) -> PreviousPeriodSource:
    if kind == "snapshots":
        return SnapshotHistory(store)
    if kind == "synthesized":
        return SynthesizedHistory()
    raise ValueError(f"Unknown previous-period source: {kind}")
