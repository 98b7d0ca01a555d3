"""
Usage Pipeline

Hour-of-day activity histograms:
- shipper activity: loads bucketed by `created_at`
- driver activity:  loads bucketed by `accepted_at`

Hours are taken in one explicit timezone, never the host's local zone.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.store.records import LoadRecord

logger = get_logger("pipelines.usage", labels={"component": "usage"})

HOURS = 24
DEFAULT_TIMEZONE = "America/Chicago"


@dataclass(frozen=True)
class HourlyActivity:
    hour: int
    driver_activity: int
    shipper_activity: int


def _zeros() -> tuple:
    return (0,) * HOURS


def peak_hour(activity: Iterable[int]) -> int:
    """Index of the first maximum bucket."""
    buckets = list(activity)
    return max(range(len(buckets)), key=lambda h: buckets[h])


@dataclass(frozen=True)
class UsageAnalytics:
    driver_activity: tuple = field(default_factory=_zeros)
    shipper_activity: tuple = field(default_factory=_zeros)
    peak_driver_hour: int = 0
    peak_shipper_hour: int = 0
    total_driver_accepts: int = 0
    total_shipper_posts: int = 0
    timezone_label: str = "UTC"
    skipped_records: int = 0
    is_loading: bool = True
    error: Optional[str] = None

    @property
    def hourly_data(self) -> list[HourlyActivity]:
        return [
            HourlyActivity(hour, self.driver_activity[hour], self.shipper_activity[hour])
            for hour in range(HOURS)
        ]

    def with_error(self, message: str) -> "UsageAnalytics":
        return replace(self, error=message, is_loading=False)


class UsageAggregator(Pipeline):
    """
    Example:
        aggregator = UsageAggregator(tz="America/Chicago")
        usage = aggregator.process(loads)
        print(usage.peak_driver_hour, usage.driver_activity[usage.peak_driver_hour])
    """

    def __init__(self, tz: "str | tzinfo" = DEFAULT_TIMEZONE):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    @property
    def name(self) -> str:
        return "usage"

    def _hour(self, moment: datetime) -> int:
        return moment.astimezone(self.tz).hour

    def process(self, loads: Iterable[LoadRecord]) -> UsageAnalytics:
        driver_activity = [0] * HOURS
        shipper_activity = [0] * HOURS
        skipped = 0

        for load in loads:
            # Bad timestamps are dropped per record, the pass carries on
            bad = [attr for attr in load.invalid_timestamps if attr in ("created_at", "accepted_at")]
            if bad:
                skipped += 1
            for attr in bad:
                logger.warning(f"Invalid {attr} timestamp on load {load.id}",
                               extra={"labels": {"load_id": load.id, "field": attr}})

            if load.created_at is not None:
                shipper_activity[self._hour(load.created_at)] += 1
            if load.accepted_at is not None:
                driver_activity[self._hour(load.accepted_at)] += 1

        return UsageAnalytics(
            driver_activity=tuple(driver_activity),
            shipper_activity=tuple(shipper_activity),
            peak_driver_hour=peak_hour(driver_activity),
            peak_shipper_hour=peak_hour(shipper_activity),
            total_driver_accepts=sum(driver_activity),
            total_shipper_posts=sum(shipper_activity),
            timezone_label=datetime.now(self.tz).tzname() or str(self.tz),
            skipped_records=skipped,
            is_loading=False,
            error=None,
        )
