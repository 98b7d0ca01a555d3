"""
Trend Pipeline

Week-over-week movement of five business KPIs:
revenue, active loads, active drivers, active shippers, completed loads.

Revenue and completed loads are windowed on `completed_at`:
    current  = completed_at >= now - 7d
    previous = now - 14d <= completed_at < now - 7d
Loads without `completed_at` fall in neither window.

Headcounts have no point-in-time history in the store; their previous
value comes from a PreviousPeriodSource.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from loadrush_analytics.history import KpiSnapshot, PreviousPeriodSource, SynthesizedHistory
from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.pipelines.formatting import format_currency, format_number
from loadrush_analytics.store.records import LoadRecord, SubscriptionRecord

WINDOW = timedelta(days=7)

# Raw change (in percent) must exceed this to count as movement
DIRECTION_THRESHOLD = 0.5


class TrendDirection(Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Trend:
    percent_change: float
    direction: TrendDirection


def calculate_trend(current: float, previous: float) -> Trend:
    """
    percent_change is always reported as an absolute value; the sign lives
    in direction.

    >>> calculate_trend(110, 100)
    Trend(percent_change=10.0, direction=<TrendDirection.UP: 'up'>)
    """
    if previous == 0:
        if current > 0:
            return Trend(100.0, TrendDirection.UP)
        return Trend(0.0, TrendDirection.NEUTRAL)

    change = (current - previous) / previous * 100

    direction = TrendDirection.NEUTRAL
    if change > DIRECTION_THRESHOLD:
        direction = TrendDirection.UP
    elif change < -DIRECTION_THRESHOLD:
        direction = TrendDirection.DOWN

    return Trend(abs(change), direction)


@dataclass(frozen=True)
class TrendMetric:
    label: str
    current_value: float
    previous_value: float
    percent_change: float
    direction: TrendDirection
    formatted_current: str
    formatted_previous: str

    @property
    def signed_change(self) -> float:
        if self.direction is TrendDirection.DOWN:
            return -self.percent_change
        return self.percent_change

    @classmethod
    def build(cls, label: str, current: float, previous: float, currency: bool = False) -> "TrendMetric":
        trend = calculate_trend(current, previous)
        fmt = (lambda v: format_currency(v, decimals=0)) if currency else format_number
        return cls(
            label=label,
            current_value=current,
            previous_value=previous,
            percent_change=trend.percent_change,
            direction=trend.direction,
            formatted_current=fmt(current),
            formatted_previous=fmt(previous),
        )


LABELS = {
    "revenue": "Total Revenue",
    "active_loads": "Active Loads",
    "driver_count": "Active Drivers",
    "shipper_count": "Active Shippers",
    "completed_loads": "Completed Loads",
}


def _empty(kpi: str) -> TrendMetric:
    return TrendMetric.build(LABELS[kpi], 0, 0, currency=(kpi == "revenue"))


@dataclass(frozen=True)
class TrendAnalytics:
    revenue: TrendMetric = _empty("revenue")
    active_loads: TrendMetric = _empty("active_loads")
    driver_count: TrendMetric = _empty("driver_count")
    shipper_count: TrendMetric = _empty("shipper_count")
    completed_loads: TrendMetric = _empty("completed_loads")
    is_loading: bool = True
    error: Optional[str] = None
    last_updated: Optional[datetime] = None

    def metrics(self) -> dict[str, TrendMetric]:
        return {kpi: getattr(self, kpi) for kpi in LABELS}

    def with_error(self, message: str) -> "TrendAnalytics":
        return replace(self, error=message, is_loading=False)


class TrendAggregator(Pipeline):
    """
    Example:
        aggregator = TrendAggregator(history=SnapshotHistory(store))
        trends = aggregator.process(completed, active, drivers, shippers)
        print(trends.revenue.direction, trends.revenue.percent_change)
    """

    def __init__(self, history: Optional[PreviousPeriodSource] = None):
        self.history = history or SynthesizedHistory()

    @property
    def name(self) -> str:
        return "trend"

    def process(
        self,
        completed_loads: Iterable[LoadRecord],
        active_loads: Iterable[LoadRecord],
        drivers: Iterable[SubscriptionRecord],
        shippers: Iterable[SubscriptionRecord],
        now: Optional[datetime] = None,
    ) -> TrendAnalytics:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        current_start = now - WINDOW
        previous_start = now - 2 * WINDOW

        current_revenue = previous_revenue = 0.0
        current_completed = previous_completed = 0

        for load in completed_loads:
            if not load.is_completed or load.completed_at is None:
                continue
            if load.completed_at >= current_start:
                current_revenue += load.amount
                current_completed += 1
            elif previous_start <= load.completed_at < current_start:
                previous_revenue += load.amount
                previous_completed += 1

        counts = {
            "active_loads": sum(1 for load in active_loads if load.is_active),
            "driver_count": sum(1 for sub in drivers if sub.is_active),
            "shipper_count": sum(1 for sub in shippers if sub.is_active),
        }
        previous = {kpi: self.history.previous(kpi, value, now) for kpi, value in counts.items()}

        self.history.record(KpiSnapshot(
            day=now.astimezone(timezone.utc).date(),
            captured_at=now,
            **counts,
        ))

        return TrendAnalytics(
            revenue=TrendMetric.build(LABELS["revenue"], current_revenue, previous_revenue, currency=True),
            active_loads=TrendMetric.build(LABELS["active_loads"], counts["active_loads"], previous["active_loads"]),
            driver_count=TrendMetric.build(LABELS["driver_count"], counts["driver_count"], previous["driver_count"]),
            shipper_count=TrendMetric.build(LABELS["shipper_count"], counts["shipper_count"], previous["shipper_count"]),
            completed_loads=TrendMetric.build(LABELS["completed_loads"], current_completed, previous_completed),
            is_loading=False,
            error=None,
            last_updated=now,
        )
