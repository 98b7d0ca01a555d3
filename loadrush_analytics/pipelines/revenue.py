"""
Platform Revenue Pipeline

Sums the amount of every completed load and derives the platform
commission. No infrastructure dependencies - pure data processing.
"""

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.pipelines.formatting import format_currency
from loadrush_analytics.store.records import LoadRecord

COMMISSION_RATE = 0.05


@dataclass(frozen=True)
class PlatformRevenue:
    total_revenue: float = 0.0
    commission: float = 0.0
    formatted_revenue: str = "$0.00"
    formatted_commission: str = "$0.00"
    completed_loads_count: int = 0
    is_loading: bool = True
    error: Optional[str] = None

    def with_error(self, message: str) -> "PlatformRevenue":
        """Keep the last good figures, flag the failure."""
        return replace(self, error=message, is_loading=False)


class RevenueAggregator(Pipeline):
    """
    Example:
        aggregator = RevenueAggregator()
        revenue = aggregator.process(completed_loads)
        print(revenue.formatted_commission)  # "$95.00"
    """

    def __init__(self, commission_rate: float = COMMISSION_RATE):
        self.commission_rate = commission_rate

    @property
    def name(self) -> str:
        return "revenue"

    def process(self, loads: Iterable[LoadRecord]) -> PlatformRevenue:
        completed = [load for load in loads if load.is_completed]
        total_revenue = sum(load.amount for load in completed)
        commission = total_revenue * self.commission_rate

        return PlatformRevenue(
            total_revenue=total_revenue,
            commission=commission,
            formatted_revenue=format_currency(total_revenue, decimals=2),
            formatted_commission=format_currency(commission, decimals=2),
            completed_loads_count=len(completed),
            is_loading=False,
            error=None,
        )
