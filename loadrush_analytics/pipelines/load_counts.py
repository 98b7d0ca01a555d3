"""
Load Status Pipeline

Admin rollup of the loads collection:
- how many loads sit in each lifecycle status
- loads posted per UTC day, for the most recent days that had any
"""

from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional

from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.store.records import LoadRecord, LoadStatus

DAYS_SHOWN = 7


@dataclass(frozen=True)
class DailyCount:
    day: date
    count: int


@dataclass(frozen=True)
class LoadStatusCounts:
    posted: int = 0
    matched: int = 0
    in_transit: int = 0
    delivered: int = 0
    cancelled: int = 0
    unknown: int = 0
    total: int = 0
    loads_by_day: tuple = field(default_factory=tuple)
    is_loading: bool = True
    error: Optional[str] = None

    def count(self, status: LoadStatus) -> int:
        return getattr(self, status.name.lower())

    def with_error(self, message: str) -> "LoadStatusCounts":
        return replace(self, error=message, is_loading=False)


class LoadStatusAggregator(Pipeline):
    """
    Statuses are counted after normalization, so 'Completed' and
    'delivered' land in the same bucket. Loads whose status is not
    recognised are counted as unknown.

    Example:
        counts = LoadStatusAggregator().process(loads)
        print(counts.delivered, counts.total, counts.loads_by_day[-1])
    """

    def __init__(self, days_shown: int = DAYS_SHOWN):
        self.days_shown = days_shown

    @property
    def name(self) -> str:
        return "load_counts"

    def process(self, loads: Iterable[LoadRecord]) -> LoadStatusCounts:
        statuses = Counter()
        per_day = Counter()
        total = 0

        for load in loads:
            total += 1
            statuses[load.status] += 1
            if load.created_at is not None:
                per_day[load.created_at.date()] += 1

        days = sorted(per_day.items())[-self.days_shown:] if self.days_shown > 0 else []

        return LoadStatusCounts(
            **{status.name.lower(): statuses[status] for status in LoadStatus},
            unknown=statuses[None],
            total=total,
            loads_by_day=tuple(DailyCount(day, count) for day, count in days),
            is_loading=False,
            error=None,
        )
